from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.exceptions import ForbiddenError, NotFoundError

from .models import OrderHistory
from .repository import OrderHistoryRepository
from .schemas import SignInStatusResponse


class OrderHistoryService:

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: str) -> list[OrderHistory]:
        return await OrderHistoryRepository.list_by_user(db, user_id)

    @staticmethod
    async def list_for_email(db: AsyncSession, email: str) -> list[OrderHistory]:
        return await OrderHistoryRepository.list_by_email(db, email)

    @staticmethod
    async def get_by_order_id(db: AsyncSession, order_id: str) -> OrderHistory:
        order = await OrderHistoryRepository.get_by_order_id(db, order_id)
        if not order:
            raise NotFoundError("Order history not found")
        return order

    @staticmethod
    async def get_owned(db: AsyncSession, order_id: str, user_id: str) -> OrderHistory:
        order = await OrderHistoryRepository.get_by_order_id(db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        # Only allow access if the user owns the order
        if order.user_id != user_id:
            raise ForbiddenError("Forbidden")
        return order

    @staticmethod
    async def sign_in_status(db: AsyncSession, email: str) -> SignInStatusResponse:
        user = await UserRepository.get_by_email(db, email)
        return SignInStatusResponse(is_signed_in=user is not None, user_id=user.id if user else None)
