from __future__ import annotations

from pathlib import Path
import sys

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.infrastructure.platforms import HttpPlatformCredentialValidator, normalise_shopify_domain


def _validator(handler) -> tuple[HttpPlatformCredentialValidator, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPlatformCredentialValidator(http_client=http_client), http_client


def test_normalise_shopify_domain():
    assert normalise_shopify_domain("https://my-shop.myshopify.com/") == "my-shop.myshopify.com"
    assert normalise_shopify_domain("my-shop") == "my-shop.myshopify.com"
    assert normalise_shopify_domain("bad domain!") is None


@pytest.mark.asyncio()
async def test_shopify_credentials_are_checked_against_shop_endpoint():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["token"] = request.headers.get("X-Shopify-Access-Token")
        return httpx.Response(200, json={"shop": {"name": "My Shop"}})

    validator, http_client = _validator(handler)

    valid = await validator.validate("shopify", {"shopify_domain": "my-shop", "shopify_token": "shpat"})

    assert valid is True
    assert captured["url"] == "https://my-shop.myshopify.com/admin/api/2023-10/shop.json"
    assert captured["token"] == "shpat"
    await http_client.aclose()


@pytest.mark.asyncio()
async def test_shopify_rejection_returns_false():
    validator, http_client = _validator(lambda request: httpx.Response(401, json={"errors": "Invalid"}))

    assert await validator.validate("shopify", {"shopify_domain": "my-shop", "shopify_token": "bad"}) is False
    await http_client.aclose()


@pytest.mark.asyncio()
async def test_invalid_shopify_domain_skips_request():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    validator, http_client = _validator(handler)

    assert await validator.validate("shopify", {"shopify_domain": "bad domain!", "shopify_token": "t"}) is False
    await http_client.aclose()


@pytest.mark.asyncio()
async def test_woocommerce_uses_basic_auth_on_system_status():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"environment": {}})

    validator, http_client = _validator(handler)

    valid = await validator.validate(
        "woocommerce", {"woo_url": "https://shop.test/", "woo_key": "ck", "woo_secret": "cs"}
    )

    assert valid is True
    assert captured["url"] == "https://shop.test/wp-json/wc/v3/system_status"
    assert str(captured["auth"]).startswith("Basic ")
    await http_client.aclose()


@pytest.mark.asyncio()
async def test_network_errors_return_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    validator, http_client = _validator(handler)

    assert await validator.validate(
        "woocommerce", {"woo_url": "https://shop.test", "woo_key": "ck", "woo_secret": "cs"}
    ) is False
    assert await validator.validate("magento", {}) is False
    await http_client.aclose()
