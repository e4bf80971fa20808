from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class MembershipPlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration_days: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)
    max_visits: Optional[int] = Field(None, ge=1)
    features: Optional[str] = None
    is_active: bool = True


class MembershipPlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    duration_days: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0)
    max_visits: Optional[int] = Field(None, ge=1)
    features: Optional[str] = None
    is_active: Optional[bool] = None


class MembershipPlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    duration_days: int
    price: Decimal
    max_visits: Optional[int]
    features: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
