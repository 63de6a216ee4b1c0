"""
Shopify order webhook reconciliation.

Maps ``orders/*`` webhook topics onto OrderHistory rows keyed by the Shopify
order id. The webhook email is resolved to a registered user; rows belong to
that user, except ``orders/paid`` for an unknown email which is kept as a
guest row carrying only the email.

Status follows the topic of the latest delivery (last writer wins); there is
no forward-only guard, so a late ``orders/create`` after ``orders/paid``
moves the row back to ``abandoned``.
"""
from typing import Any, Awaitable, Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.exceptions import ValidationError

from .models import OrderHistory, OrderStatus
from .repository import OrderHistoryRepository

logger = structlog.get_logger(__name__)

ORDER_CREATED = "orders/create"
ORDER_PAID = "orders/paid"
ORDER_CANCELLED = "orders/cancelled"


def extract_order_id(payload: dict) -> str:
    order_id = payload.get("id")
    if order_id is None or order_id == "":
        raise ValidationError("Webhook payload has no order id")
    return str(order_id)


def extract_email(payload: dict) -> Optional[str]:
    email = payload.get("email") or payload.get("contact_email")
    if not email and isinstance(payload.get("customer"), dict):
        email = payload["customer"].get("email")
    return email or None


async def _resolve_user_id(db: AsyncSession, email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    user = await UserRepository.get_by_email(db, email)
    return user.id if user else None


async def _on_order_created(db: AsyncSession, order_id: str, email: Optional[str], payload: dict):
    user_id = await _resolve_user_id(db, email)
    if user_id is None:
        logger.info("shopify_order_dropped", topic=ORDER_CREATED, order_id=order_id, reason="unknown_email")
        return None

    return await OrderHistoryRepository.upsert(
        db,
        order_id=order_id,
        status=OrderStatus.ABANDONED.value,
        order_data=payload,
        user_id=user_id,
        email=email,
        checkout_url=payload.get("order_status_url"),
    )


async def _on_order_paid(db: AsyncSession, order_id: str, email: Optional[str], payload: dict):
    user_id = await _resolve_user_id(db, email)
    if user_id is None:
        logger.info("shopify_guest_order_paid", order_id=order_id)

    return await OrderHistoryRepository.upsert(
        db,
        order_id=order_id,
        status=OrderStatus.PAID.value,
        order_data=payload,
        user_id=user_id,
        email=email,
        checkout_url=payload.get("order_status_url"),
    )


async def _on_order_cancelled(db: AsyncSession, order_id: str, email: Optional[str], payload: dict):
    user_id = await _resolve_user_id(db, email)
    if user_id is None:
        logger.info("shopify_order_dropped", topic=ORDER_CANCELLED, order_id=order_id, reason="unknown_email")
        return None

    order = await OrderHistoryRepository.update_status(
        db, order_id, OrderStatus.CANCELLED.value, payload
    )
    if order is None:
        logger.info("shopify_order_dropped", topic=ORDER_CANCELLED, order_id=order_id, reason="no_history_row")
    return order


_Handler = Callable[[AsyncSession, str, Optional[str], dict], Awaitable[Optional[OrderHistory]]]

TOPIC_HANDLERS: dict[str, _Handler] = {
    ORDER_CREATED: _on_order_created,
    ORDER_PAID: _on_order_paid,
    ORDER_CANCELLED: _on_order_cancelled,
}


class OrderReconciliationService:

    @staticmethod
    def handles(topic: Optional[str]) -> bool:
        return topic in TOPIC_HANDLERS

    @staticmethod
    async def reconcile(db: AsyncSession, topic: Optional[str], payload: Any) -> Optional[OrderHistory]:
        """Applies one webhook event. Returns the affected row, or None when nothing changed."""
        handler = TOPIC_HANDLERS.get(topic)
        if handler is None:
            logger.info("shopify_webhook_unhandled_topic", topic=topic)
            return None

        if not isinstance(payload, dict):
            raise ValidationError("Webhook payload must be a JSON object")

        order_id = extract_order_id(payload)
        order = await handler(db, order_id, extract_email(payload), payload)
        if order is not None:
            logger.info("shopify_order_reconciled", topic=topic, order_id=order_id, status=order.status)
        return order
