from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime
from gymdesk.models.member import GenderEnum
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.subscription import SubscriptionSummary


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class MemberCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[GenderEnum] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    notes: Optional[str] = None
    membership_plan_id: Optional[int] = None  # opens a subscription right away

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class MemberUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[GenderEnum] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    regenerate_code: bool = False  # issue a new member code (lost or shared card)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class MemberSummary(BaseModel):
    id: int
    member_code: str
    first_name: str
    last_name: str
    email: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class MemberResponse(MemberSummary):
    phone: Optional[str]
    date_of_birth: Optional[datetime]
    gender: Optional[GenderEnum]
    address: Optional[str]
    emergency_contact: Optional[str]
    emergency_phone: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
    current_subscription: Optional[SubscriptionSummary] = None
    qr_code_image: Optional[str] = None  # PNG data URL of member_code


class MemberListResponse(BaseModel):
    data: List[MemberResponse]
    pagination: Pagination
