from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from gymdesk.models.sale import PaymentStatusEnum
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.member import MemberSummary


class SaleItemCreate(BaseModel):
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)  # defaults to the product price


class SaleCreate(BaseModel):
    member_id: Optional[int] = None
    items: List[SaleItemCreate] = Field(..., min_length=1)
    discount_amount: Decimal = Field(Decimal("0.00"), ge=0)
    payment_method: str = Field(..., min_length=1, max_length=50)  # cash, card, ...
    payment_status: PaymentStatusEnum = PaymentStatusEnum.PENDING
    notes: Optional[str] = None


class SaleStatusUpdate(BaseModel):
    payment_status: PaymentStatusEnum


class SaleItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class SaleResponse(BaseModel):
    id: int
    sale_number: str
    member_id: Optional[int]
    member: Optional[MemberSummary] = None
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    payment_method: str
    payment_status: PaymentStatusEnum
    staff_id: Optional[int]
    notes: Optional[str]
    items: List[SaleItemResponse]
    created_at: datetime


class SaleListResponse(BaseModel):
    data: List[SaleResponse]
    pagination: Pagination
