"""
Shopify Admin API client and webhook authenticity check.

Shopify signs each webhook with ``X-Shopify-Hmac-Sha256``: the base64 of
HMAC-SHA256 over the exact request body bytes, keyed by the app's webhook
secret. Verification therefore runs on the raw bytes before any JSON
parsing; re-serializing a parsed body changes the bytes and fails the check.
"""
import base64
import hashlib
import hmac

import httpx
from fastapi import Request

from shared.config import settings
from shared.exceptions import ConfigurationError, GatewayError, UnauthorizedError


def compute_webhook_hmac(secret: str, raw_body: bytes) -> str:
    mac = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(mac).decode()


class ShopifyClient:

    def __init__(
        self,
        shop_name: str,
        api_key: str,
        api_secret: str,
        api_version: str = "2023-10",
        webhook_secret: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shop_name = shop_name
        self.api_version = api_version
        self.webhook_secret = webhook_secret
        self._configured = bool(shop_name and api_key and api_secret)
        self._http = httpx.AsyncClient(
            base_url=f"https://{shop_name or 'unconfigured'}.myshopify.com/admin/api/{api_version}",
            auth=(api_key, api_secret),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "ShopifyClient":
        return cls(
            shop_name=settings.SHOPIFY_SHOP_NAME,
            api_key=settings.SHOPIFY_API_KEY,
            api_secret=settings.SHOPIFY_API_SECRET,
            api_version=settings.SHOPIFY_API_VERSION,
            webhook_secret=settings.SHOPIFY_WEBHOOK_SECRET,
        )

    async def create_draft_order(self, draft_order: dict) -> dict:
        if not self._configured:
            raise ConfigurationError("Shopify credentials are not defined in environment variables")

        try:
            resp = await self._http.post("/draft_orders.json", json={"draft_order": draft_order})
            resp.raise_for_status()
            return resp.json()["draft_order"]
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise GatewayError("Shopify draft order request failed") from exc

    def verify_webhook(self, raw_body: bytes, hmac_header: str | None) -> None:
        if not self.webhook_secret:
            raise ConfigurationError("SHOPIFY_WEBHOOK_SECRET is not defined in environment variables")
        if not hmac_header:
            raise UnauthorizedError("Missing HMAC header")

        expected = compute_webhook_hmac(self.webhook_secret, raw_body)
        if not hmac.compare_digest(expected.encode(), hmac_header.encode()):
            raise UnauthorizedError("HMAC verification failed")

    async def aclose(self) -> None:
        await self._http.aclose()


def get_shopify_client(request: Request) -> ShopifyClient:
    return request.app.state.shopify_client
