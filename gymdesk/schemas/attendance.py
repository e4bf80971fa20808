from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from gymdesk.models.attendance import AttendanceStatusEnum
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.member import MemberSummary
from gymdesk.schemas.subscription import SubscriptionSummary


class CheckInRequest(BaseModel):
    """Front-desk scan: the member code read from the QR card, or a member id typed in."""

    identifier: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = None

    @field_validator("identifier")
    @classmethod
    def identifier_strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("identifier must not be blank")
        return v


class ManualCheckInRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    notes: Optional[str] = None


class CheckOutRequest(BaseModel):
    attendance_id: int = Field(..., ge=1)
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    id: int
    member_id: int
    check_in_time: datetime
    check_out_time: Optional[datetime]
    status: AttendanceStatusEnum
    notes: Optional[str]
    processed_by: Optional[int]
    member: Optional[MemberSummary] = None

    class Config:
        from_attributes = True


class CheckInResponse(BaseModel):
    success: bool = True
    message: str
    member: MemberSummary
    subscription: SubscriptionSummary
    attendance: AttendanceResponse


class CheckOutResponse(BaseModel):
    success: bool = True
    message: str
    attendance: AttendanceResponse


class AttendanceLogsResponse(BaseModel):
    data: List[AttendanceResponse]
    pagination: Pagination
    currently_checked_in: List[AttendanceResponse]
