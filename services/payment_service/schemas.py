from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class TransactionCreate(BaseModel):
    user_id: str = Field(min_length=1)
    amount: float = Field(gt=0)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TransactionResponse(BaseModel):
    id: str
    user_id: str
    amount: float
    status: str
    midtrans_order_id: str
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class CreateTransactionResponse(BaseModel):
    transaction: TransactionResponse
    snap_token: str
    redirect_url: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class MidtransNotification(BaseModel):
    """HTTP notification body posted by Midtrans; unknown fields are kept."""
    order_id: str = Field(min_length=1)
    transaction_status: str
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction_time: Optional[str] = None
    payment_type: Optional[str] = None
    fraud_status: Optional[str] = None

    class Config:
        extra = "allow"
