from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Transaction


class TransactionRepository:
    @staticmethod
    async def create(db: AsyncSession, transaction: Transaction) -> Transaction:
        db.add(transaction)
        await db.commit()
        await db.refresh(transaction)
        return transaction

    @staticmethod
    async def get_by_midtrans_order_id(db: AsyncSession, midtrans_order_id: str) -> Optional[Transaction]:
        result = await db.execute(
            select(Transaction).where(Transaction.midtrans_order_id == midtrans_order_id)
        )
        return result.scalars().first()

    @staticmethod
    async def update_status(db: AsyncSession, transaction: Transaction, status: str) -> Transaction:
        transaction.status = status
        await db.commit()
        await db.refresh(transaction)
        return transaction
