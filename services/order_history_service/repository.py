import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from .models import OrderHistory

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OrderHistoryRepository:

    @staticmethod
    async def upsert(
        db: AsyncSession,
        order_id: str,
        status: str,
        order_data: Any,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        checkout_url: Optional[str] = None,
    ) -> OrderHistory:
        """
        Atomically inserts the row for ``order_id`` or overwrites its status and
        payload. Uses the store's ON CONFLICT clause so concurrent deliveries for
        the same new order cannot produce two rows.
        """
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"No upsert support for dialect {dialect!r}")

        now = datetime.now(timezone.utc)
        values = {
            "id": str(uuid.uuid4()),
            "order_id": order_id,
            "status": status,
            "order_data": order_data,
            "user_id": user_id,
            "email": email,
            "checkout_url": checkout_url,
            "created_at": now,
            "updated_at": now,
        }
        stmt = insert(OrderHistory).values(**values)

        overwrite = {"status": status, "order_data": order_data, "updated_at": now}
        # Identity and checkout URL are only filled in, never cleared, by later events
        if user_id is not None:
            overwrite["user_id"] = user_id
        if email is not None:
            overwrite["email"] = email
        if checkout_url is not None:
            overwrite["checkout_url"] = checkout_url

        stmt = stmt.on_conflict_do_update(index_elements=[OrderHistory.order_id], set_=overwrite)
        await db.execute(stmt)
        await db.commit()

        return await OrderHistoryRepository.get_by_order_id(db, order_id)

    @staticmethod
    async def update_status(
        db: AsyncSession,
        order_id: str,
        status: str,
        order_data: Any,
    ) -> Optional[OrderHistory]:
        """Updates an existing row in one statement; returns None when there is none."""
        result = await db.execute(
            update(OrderHistory)
            .where(OrderHistory.order_id == order_id)
            .values(status=status, order_data=order_data, updated_at=datetime.now(timezone.utc))
        )
        await db.commit()
        if result.rowcount == 0:
            return None
        return await OrderHistoryRepository.get_by_order_id(db, order_id)

    @staticmethod
    async def get_by_order_id(db: AsyncSession, order_id: str) -> Optional[OrderHistory]:
        result = await db.execute(
            select(OrderHistory)
            .where(OrderHistory.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_by_user(db: AsyncSession, user_id: str) -> list[OrderHistory]:
        result = await db.execute(
            select(OrderHistory)
            .where(OrderHistory.user_id == user_id)
            .order_by(OrderHistory.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_by_email(db: AsyncSession, email: str) -> list[OrderHistory]:
        result = await db.execute(
            select(OrderHistory)
            .where(OrderHistory.email == email)
            .order_by(OrderHistory.created_at.desc())
        )
        return list(result.scalars().all())
