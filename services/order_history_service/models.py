import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String

from shared.config.database import Base


class OrderStatus(str, enum.Enum):
    ABANDONED = "abandoned"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderHistory(Base):
    __tablename__ = "order_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Null for guest orders that could only be correlated by email
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    order_id = Column(String(64), unique=True, nullable=False, index=True) # Shopify order id
    status = Column(String(16), nullable=False) # abandoned, pending, paid, cancelled
    checkout_url = Column(String(1024), nullable=True)
    order_data = Column(JSON, nullable=True) # last webhook body, verbatim
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
