import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import CHECKOUT_RATE_LIMIT
from shared.exceptions import AppError, InternalError
from shared.observability.metrics import bebr_checkout_sessions_total, bebr_webhook_events_total
from shared.responses import api_response
from shared.security.dependencies import get_current_user
from shared.security.jwt_handler import TokenIdentity
from shared.security.rate_limiter import limiter

from .gateway import MidtransClient, get_midtrans_client
from .schemas import MidtransNotification, TransactionCreate
from .service import MIDTRANS_STATUS_MAP, PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/midtrans", tags=["Midtrans"])


@router.post(
    "/create-transaction",
    summary="Create a pending transaction and a Midtrans Snap session",
    responses={400: {"description": "Invalid input"}, 401: {"description": "Unauthorized"}, 403: {"description": "Another user's id"}, 404: {"description": "User not found"}},
)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_transaction(
    request: Request,
    payload: TransactionCreate,
    user: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: MidtransClient = Depends(get_midtrans_client),
):
    try:
        result = await PaymentService.create_session(
            db, gateway, payload.user_id, payload.amount, requester_id=user.id
        )
    except AppError:
        bebr_checkout_sessions_total.labels(provider="midtrans", outcome="failed").inc()
        raise
    except Exception as exc:
        bebr_checkout_sessions_total.labels(provider="midtrans", outcome="failed").inc()
        logger.exception("create_transaction_failed", user_id=payload.user_id)
        raise InternalError("Something went wrong while creating transaction") from exc

    bebr_checkout_sessions_total.labels(provider="midtrans", outcome="created").inc()
    return api_response("Transaction created successfully", result)


@router.post(
    "/webhook",
    summary="Handle Midtrans payment notifications",
    responses={401: {"description": "Bad signature"}, 404: {"description": "Transaction not found"}},
)
async def handle_webhook(
    notification: MidtransNotification,
    db: AsyncSession = Depends(get_db),
    gateway: MidtransClient = Depends(get_midtrans_client),
):
    # Body values become metric labels only once signed and known
    topic = "unverified"
    try:
        gateway.verify_notification(
            notification.order_id,
            notification.status_code,
            notification.gross_amount,
            notification.signature_key,
        )
        status = notification.transaction_status
        topic = status if status in MIDTRANS_STATUS_MAP else "other"

        await PaymentService.reconcile(db, notification)
    except AppError as exc:
        outcome = "rejected" if exc.status_code < 500 else "failed"
        bebr_webhook_events_total.labels(source="midtrans", topic=topic, outcome=outcome).inc()
        logger.warning("midtrans_webhook_rejected", order_id=notification.order_id, reason=exc.message)
        raise
    except Exception as exc:
        bebr_webhook_events_total.labels(source="midtrans", topic=topic, outcome="failed").inc()
        logger.exception("midtrans_webhook_failed", order_id=notification.order_id)
        raise InternalError("Something went wrong while processing webhook") from exc

    bebr_webhook_events_total.labels(source="midtrans", topic=topic, outcome="processed").inc()
    return api_response("Webhook processed successfully")
