import structlog

from shared.exceptions import GatewayError

from .client import ShopifyClient
from .schemas import CheckoutCreate, CheckoutResponse

logger = structlog.get_logger(__name__)


class ShopifyService:

    @staticmethod
    async def create_checkout(client: ShopifyClient, data: CheckoutCreate) -> CheckoutResponse:
        customer = data.customer_info
        draft_order = await client.create_draft_order({
            "line_items": [
                {"variant_id": item.variant_id, "quantity": item.quantity}
                for item in data.line_items
            ],
            "email": customer.email,
            "shipping_address": customer.shipping_address,
            "billing_address": customer.billing_address or customer.shipping_address,
        })

        checkout_url = draft_order.get("invoice_url")
        if not checkout_url:
            raise GatewayError("Shopify draft order has no invoice URL")

        logger.info("shopify_checkout_created", draft_order_id=draft_order.get("id"))
        return CheckoutResponse(checkout_url=checkout_url, draft_order_id=draft_order["id"])
