from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional


class KiwifyProductCreate(BaseModel):
    kiwify_product_id: str = Field(..., min_length=1, max_length=255)
    course_id: str = Field(..., min_length=1, max_length=36)
    name: Optional[str] = Field(None, max_length=255)


class KiwifyProductResponse(BaseModel):
    id: int
    kiwify_product_id: str
    course_id: str
    name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class KiwifyPurchaseResponse(BaseModel):
    id: int
    transaction_id: str
    kiwify_product_id: Optional[str] = None
    buyer_email: Optional[str] = None
    purchase_date: Optional[datetime] = None
    status: Optional[str] = None
    amount: Optional[Decimal] = None
    user_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
