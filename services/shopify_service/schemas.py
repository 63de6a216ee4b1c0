from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LineItem(CamelModel):
    variant_id: int | str
    quantity: int = Field(ge=1)


class CustomerInfo(CamelModel):
    email: EmailStr
    shipping_address: Optional[dict[str, Any]] = None
    billing_address: Optional[dict[str, Any]] = None


class CheckoutCreate(CamelModel):
    line_items: List[LineItem] = Field(min_length=1)
    customer_info: CustomerInfo


class CheckoutResponse(CamelModel):
    checkout_url: str
    draft_order_id: int | str
