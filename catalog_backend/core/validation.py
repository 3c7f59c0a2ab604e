from __future__ import annotations

from typing import Iterable

SUPPORTED_PLATFORMS = ("shopify", "woocommerce")

PLATFORM_CREDENTIAL_FIELDS: dict[str, tuple[str, ...]] = {
    "shopify": ("shopify_domain", "shopify_token"),
    "woocommerce": ("woo_url", "woo_key", "woo_secret"),
}


class ValidationError(Exception):
    """Raised when a request is missing data or carries invalid values."""


class CredentialError(Exception):
    """Raised when platform credentials are missing or rejected by the platform."""


class AuthenticationError(Exception):
    """Raised when an API key is absent or does not resolve to a store."""


class JobAlreadyRunningError(Exception):
    """Raised when a run is requested for a store whose job is still running."""

    def __init__(self, resource_key: str) -> None:
        super().__init__(f"a job is already running for {resource_key}")
        self.resource_key = resource_key


def validate_platform(platform: str | None) -> str:
    if platform not in SUPPORTED_PLATFORMS:
        raise ValidationError("Platform must be either 'shopify' or 'woocommerce'")
    return platform


def require_fields(values: dict[str, object], fields: Iterable[str]) -> None:
    missing = [name for name in fields if _is_blank(values.get(name))]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")


def require_platform_credentials(platform: str, credentials: dict[str, object]) -> None:
    missing = [name for name in PLATFORM_CREDENTIAL_FIELDS[platform] if _is_blank(credentials.get(name))]
    if missing:
        if platform == "shopify":
            raise CredentialError("Shopify domain and access token are required")
        raise CredentialError("WooCommerce URL, consumer key, and consumer secret are required")


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
