from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from gymdesk.models.subscription import SubscriptionStatusEnum


class SubscriptionCreate(BaseModel):
    plan_id: int = Field(..., ge=1)
    start_date: Optional[datetime] = None  # defaults to now
    price: Optional[Decimal] = Field(None, ge=0)  # defaults to the plan price
    notes: Optional[str] = None


class SubscriptionUpdate(BaseModel):
    status: Optional[SubscriptionStatusEnum] = None
    notes: Optional[str] = None


class SubscriptionSummary(BaseModel):
    id: int
    plan_id: int
    plan_name: str
    status: SubscriptionStatusEnum
    start_date: datetime
    end_date: datetime
    remaining_visits: Optional[int]

    class Config:
        from_attributes = True


class SubscriptionResponse(SubscriptionSummary):
    member_id: int
    price: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
