from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class OrderHistoryResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    order_id: str
    status: str
    checkout_url: Optional[str] = None
    order_data: Optional[Any] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class SignInStatusResponse(BaseModel):
    is_signed_in: bool
    user_id: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
