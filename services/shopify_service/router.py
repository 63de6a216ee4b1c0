import json

import structlog
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_history_service.reconciler import OrderReconciliationService
from shared.config.database import get_db
from shared.config.settings import CHECKOUT_RATE_LIMIT
from shared.exceptions import AppError, InternalError, ValidationError
from shared.observability.metrics import bebr_checkout_sessions_total, bebr_webhook_events_total
from shared.responses import api_response
from shared.security.dependencies import get_current_user
from shared.security.jwt_handler import TokenIdentity
from shared.security.rate_limiter import limiter

from .client import ShopifyClient, get_shopify_client
from .schemas import CheckoutCreate
from .service import ShopifyService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/shopify", tags=["Shopify"])


@router.post(
    "/create-checkout",
    summary="Create a Shopify draft order and return its checkout URL",
    responses={400: {"description": "Invalid input"}, 401: {"description": "Unauthorized"}},
)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_checkout(
    request: Request,
    payload: CheckoutCreate,
    user: TokenIdentity = Depends(get_current_user),
    client: ShopifyClient = Depends(get_shopify_client),
):
    try:
        result = await ShopifyService.create_checkout(client, payload)
    except AppError:
        bebr_checkout_sessions_total.labels(provider="shopify", outcome="failed").inc()
        raise
    except Exception as exc:
        bebr_checkout_sessions_total.labels(provider="shopify", outcome="failed").inc()
        logger.exception("shopify_checkout_failed", user_id=user.id)
        raise InternalError("Something went wrong while creating checkout") from exc

    bebr_checkout_sessions_total.labels(provider="shopify", outcome="created").inc()
    return api_response("Checkout created successfully", result)


@router.post(
    "/webhook",
    summary="Handle Shopify order webhooks",
    responses={401: {"description": "HMAC verification failed"}},
)
async def handle_webhook(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(None),
    x_shopify_topic: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
    client: ShopifyClient = Depends(get_shopify_client),
):
    # The signature covers the bytes as sent, so read them before any parsing
    raw_body = await request.body()
    # Header values become metric labels only once signed and known
    topic = "unverified"

    try:
        client.verify_webhook(raw_body, x_shopify_hmac_sha256)
        topic = x_shopify_topic if OrderReconciliationService.handles(x_shopify_topic) else "other"

        try:
            payload = json.loads(raw_body)
        except ValueError:
            raise ValidationError("Webhook body is not valid JSON")

        order = await OrderReconciliationService.reconcile(db, x_shopify_topic, payload)
    except AppError as exc:
        outcome = "rejected" if exc.status_code < 500 else "failed"
        bebr_webhook_events_total.labels(source="shopify", topic=topic, outcome=outcome).inc()
        logger.warning("shopify_webhook_rejected", topic=x_shopify_topic, reason=exc.message)
        raise
    except Exception as exc:
        bebr_webhook_events_total.labels(source="shopify", topic=topic, outcome="failed").inc()
        logger.exception("shopify_webhook_failed", topic=x_shopify_topic)
        raise InternalError("Something went wrong while processing webhook") from exc

    outcome = "processed" if order is not None else "ignored"
    bebr_webhook_events_total.labels(source="shopify", topic=topic, outcome=outcome).inc()
    return api_response("Webhook processed successfully")
