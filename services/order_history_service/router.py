"""
Order history read endpoints.

Static paths are declared before ``/{order_id}`` so they are not captured by it.
"""
import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.exceptions import AppError, InternalError
from shared.responses import api_response
from shared.security.dependencies import get_current_user
from shared.security.jwt_handler import TokenIdentity

from .schemas import OrderHistoryResponse
from .service import OrderHistoryService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/order-history", tags=["Order History"])

RETRIEVED = "Order history retrieved successfully"


def _serialize(orders) -> list[OrderHistoryResponse]:
    return [OrderHistoryResponse.model_validate(o) for o in orders]


@router.get("/user", summary="Get order history for the authenticated user")
async def get_user_order_history(
    user: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        orders = await OrderHistoryService.list_for_user(db, user.id)
    except Exception as exc:
        logger.exception("order_history_user_failed", user_id=user.id)
        raise InternalError("Failed to retrieve order history") from exc
    return api_response(RETRIEVED, _serialize(orders))


@router.get("/email", summary="Get order history by customer email")
async def get_order_history_by_email(
    email: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    try:
        orders = await OrderHistoryService.list_for_email(db, email)
    except Exception as exc:
        logger.exception("order_history_email_failed")
        raise InternalError("Failed to retrieve order history") from exc
    return api_response(RETRIEVED, _serialize(orders))


@router.get("/shopify/{shopify_order_id}", summary="Get order history by Shopify order ID")
async def get_order_history_by_shopify_id(shopify_order_id: str, db: AsyncSession = Depends(get_db)):
    try:
        order = await OrderHistoryService.get_by_order_id(db, shopify_order_id)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("order_history_lookup_failed", order_id=shopify_order_id)
        raise InternalError("Failed to retrieve order history") from exc
    return api_response(RETRIEVED, OrderHistoryResponse.model_validate(order))


@router.get("/check-signin", summary="Check whether an email belongs to a registered user")
async def check_user_sign_in_status(
    email: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await OrderHistoryService.sign_in_status(db, email)
    except Exception as exc:
        logger.exception("check_signin_failed")
        raise InternalError("Failed to check user sign in status") from exc
    return api_response("User sign in status checked successfully", result)


@router.get("/my", summary="Get all orders of the authenticated user")
async def get_my_order_history(
    user: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        orders = await OrderHistoryService.list_for_user(db, user.id)
    except Exception as exc:
        logger.exception("order_history_my_failed", user_id=user.id)
        raise InternalError("Failed to fetch order history") from exc
    return api_response(RETRIEVED, _serialize(orders))


@router.get("/{order_id}", summary="Get one of the authenticated user's orders")
async def get_order_history(
    order_id: str,
    user: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        order = await OrderHistoryService.get_owned(db, order_id, user.id)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("order_fetch_failed", order_id=order_id)
        raise InternalError("Failed to fetch order") from exc
    return api_response("Order retrieved successfully", OrderHistoryResponse.model_validate(order))
