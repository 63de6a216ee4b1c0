import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.exceptions import ConfigurationError, ForbiddenError, NotFoundError

from .gateway import MidtransClient
from .models import Transaction, TransactionStatus
from .repository import TransactionRepository
from .schemas import CreateTransactionResponse, MidtransNotification, TransactionResponse

logger = structlog.get_logger(__name__)

# Midtrans transaction_status -> local status; anything unlisted stays pending
MIDTRANS_STATUS_MAP = {
    "capture": TransactionStatus.SUCCESS,
    "settlement": TransactionStatus.SUCCESS,
    "deny": TransactionStatus.FAILED,
    "cancel": TransactionStatus.FAILED,
    "failure": TransactionStatus.FAILED,
    "expire": TransactionStatus.EXPIRED,
    "pending": TransactionStatus.PENDING,
}


def map_transaction_status(midtrans_status: str) -> TransactionStatus:
    return MIDTRANS_STATUS_MAP.get(midtrans_status, TransactionStatus.PENDING)


def generate_order_id() -> str:
    return f"ORDER-{uuid.uuid4()}"


class PaymentService:

    @staticmethod
    async def create_session(
        db: AsyncSession,
        gateway: MidtransClient,
        user_id: str,
        amount: float,
        requester_id: str,
    ) -> CreateTransactionResponse:
        # A signed-in user may only open transactions for their own account
        if user_id != requester_id:
            raise ForbiddenError("Cannot create a transaction for another user")

        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")

        transaction = Transaction(
            user_id=user.id,
            amount=amount,
            status=TransactionStatus.PENDING.value,
            midtrans_order_id=generate_order_id(),
        )
        transaction = await TransactionRepository.create(db, transaction)
        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            midtrans_order_id=transaction.midtrans_order_id,
        )

        # The pending row is already committed; a failure below leaves it in place
        if not gateway.webhook_url:
            raise ConfigurationError("MIDTRANS_WEBHOOK_URL is not defined in environment variables")

        snap = await gateway.create_transaction(
            order_id=transaction.midtrans_order_id,
            gross_amount=amount,
            customer={"first_name": user.username, "email": user.email},
            finish_url=gateway.webhook_url,
        )

        return CreateTransactionResponse(
            transaction=TransactionResponse.model_validate(transaction),
            snap_token=snap["token"],
            redirect_url=snap.get("redirect_url"),
        )

    @staticmethod
    async def reconcile(db: AsyncSession, notification: MidtransNotification) -> Transaction:
        transaction = await TransactionRepository.get_by_midtrans_order_id(db, notification.order_id)
        if not transaction:
            raise NotFoundError("Transaction not found")

        # Last writer wins: no check that the transition moves forward
        new_status = map_transaction_status(notification.transaction_status)
        previous = transaction.status
        transaction = await TransactionRepository.update_status(db, transaction, new_status.value)

        logger.info(
            "transaction_reconciled",
            midtrans_order_id=notification.order_id,
            midtrans_status=notification.transaction_status,
            previous_status=previous,
            status=transaction.status,
        )
        return transaction
