"""
Midtrans Snap client.

Talks to the Snap REST API directly over httpx: one call to obtain a
hosted-checkout token, plus the signature check Midtrans documents for its
HTTP notifications (SHA-512 over order_id + status_code + gross_amount +
server key, hex encoded).
"""
import hashlib
import hmac

import httpx
from fastapi import Request

from shared.config import settings
from shared.exceptions import GatewayError, UnauthorizedError

SANDBOX_BASE_URL = "https://app.sandbox.midtrans.com"
PRODUCTION_BASE_URL = "https://app.midtrans.com"


class MidtransClient:

    def __init__(
        self,
        server_key: str | None,
        client_key: str | None,
        is_production: bool = False,
        webhook_url: str | None = None,
        verify_signature: bool = True,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not server_key or not client_key:
            raise ValueError("FATAL ERROR: Midtrans credentials are not defined in the environment!")

        self.server_key = server_key
        self.client_key = client_key
        self.is_production = is_production
        self.webhook_url = webhook_url
        self.verify_signature = verify_signature
        self._http = httpx.AsyncClient(
            base_url=PRODUCTION_BASE_URL if is_production else SANDBOX_BASE_URL,
            auth=(server_key, ""),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "MidtransClient":
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            client_key=settings.MIDTRANS_CLIENT_KEY,
            is_production=settings.MIDTRANS_IS_PRODUCTION,
            webhook_url=settings.MIDTRANS_WEBHOOK_URL,
            verify_signature=settings.MIDTRANS_VERIFY_SIGNATURE,
        )

    async def create_transaction(
        self,
        order_id: str,
        gross_amount: float,
        customer: dict,
        finish_url: str,
    ) -> dict:
        """Creates a Snap session. Returns ``{"token": ..., "redirect_url": ...}``."""
        # IDR amounts must be integral; keep fractional amounts as given
        if float(gross_amount).is_integer():
            gross_amount = int(gross_amount)

        payload = {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "customer_details": customer,
            "callbacks": {"finish": finish_url},
        }
        try:
            resp = await self._http.post("/snap/v1/transactions", json=payload)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise GatewayError("Midtrans Snap request failed") from exc

    def signature_for(self, order_id: str, status_code: str, gross_amount: str) -> str:
        raw = f"{order_id}{status_code}{gross_amount}{self.server_key}"
        return hashlib.sha512(raw.encode("utf-8")).hexdigest()

    def verify_notification(
        self,
        order_id: str,
        status_code: str | None,
        gross_amount: str | None,
        signature_key: str | None,
    ) -> None:
        if not self.verify_signature:
            return
        if not signature_key or status_code is None or gross_amount is None:
            raise UnauthorizedError("Missing notification signature")

        expected = self.signature_for(order_id, status_code, gross_amount)
        if not hmac.compare_digest(expected, signature_key.lower()):
            raise UnauthorizedError("Invalid notification signature")

    async def aclose(self) -> None:
        await self._http.aclose()


def get_midtrans_client(request: Request) -> MidtransClient:
    return request.app.state.midtrans_client
