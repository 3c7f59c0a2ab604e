"""Credential checks against the e-commerce platforms' admin APIs."""
from __future__ import annotations

import logging
import re
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

SHOPIFY_API_VERSION = "2023-10"
_SHOPIFY_DOMAIN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*\.myshopify\.com$")


class PlatformCredentialValidator(Protocol):
    async def validate(self, platform: str, credentials: dict[str, Any]) -> bool: ...


def normalise_shopify_domain(domain: str) -> str | None:
    """Strip scheme and trailing slash and append ``.myshopify.com`` if absent."""

    cleaned = re.sub(r"^https?://", "", domain.strip()).rstrip("/")
    if ".myshopify.com" not in cleaned:
        cleaned = f"{cleaned}.myshopify.com"
    if not _SHOPIFY_DOMAIN.match(cleaned):
        return None
    return cleaned


class HttpPlatformCredentialValidator:
    """Validates credentials by calling a cheap authenticated endpoint."""

    def __init__(self, *, timeout: float = 20.0, http_client: httpx.AsyncClient | None = None) -> None:
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def validate(self, platform: str, credentials: dict[str, Any]) -> bool:
        if platform == "shopify":
            return await self._validate_shopify(credentials.get("shopify_domain"), credentials.get("shopify_token"))
        if platform == "woocommerce":
            return await self._validate_woocommerce(
                credentials.get("woo_url"),
                credentials.get("woo_key"),
                credentials.get("woo_secret"),
            )
        return False

    async def _validate_shopify(self, domain: str | None, token: str | None) -> bool:
        if not domain or not token:
            return False
        clean_domain = normalise_shopify_domain(domain)
        if clean_domain is None:
            logger.warning("invalid Shopify domain format: %s", domain)
            return False

        url = f"https://{clean_domain}/admin/api/{SHOPIFY_API_VERSION}/shop.json"
        try:
            response = await self._client.get(
                url,
                headers={"X-Shopify-Access-Token": token, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Shopify validation request failed for %s: %s", clean_domain, exc)
            return False

        if response.status_code != 200:
            logger.warning("Shopify validation failed for %s: HTTP %s", clean_domain, response.status_code)
            return False
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Shopify returned invalid JSON for %s", clean_domain)
            return False
        shop = (payload.get("shop") if isinstance(payload, dict) else None) or {}
        logger.info("Shopify credentials valid for %s", shop.get("name") or clean_domain)
        return True

    async def _validate_woocommerce(self, url: str | None, key: str | None, secret: str | None) -> bool:
        if not url or not key or not secret:
            return False
        endpoint = f"{url.rstrip('/')}/wp-json/wc/v3/system_status"
        try:
            response = await self._client.get(endpoint, auth=(key, secret))
        except httpx.HTTPError as exc:
            logger.warning("WooCommerce validation request failed for %s: %s", url, exc)
            return False
        if not response.is_success:
            logger.warning("WooCommerce validation failed for %s: HTTP %s", url, response.status_code)
        return response.is_success

    async def aclose(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            await self._client.aclose()


_validator: PlatformCredentialValidator | None = None


def configure_credential_validator(validator: PlatformCredentialValidator) -> None:
    global _validator
    _validator = validator


def get_credential_validator() -> PlatformCredentialValidator:
    global _validator
    if _validator is None:
        _validator = HttpPlatformCredentialValidator()
    return _validator
