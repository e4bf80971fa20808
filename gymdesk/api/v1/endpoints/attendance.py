"""
Front-desk attendance endpoints: QR or manual check-in, check-out, visit logs.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.validators import validate_date_range
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.attendance import (
    CheckInRequest,
    ManualCheckInRequest,
    CheckOutRequest,
    AttendanceResponse,
    CheckInResponse,
    CheckOutResponse,
    AttendanceLogsResponse,
)
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.member import MemberSummary
from gymdesk.schemas.subscription import SubscriptionSummary
from gymdesk.services import attendance_service
from gymdesk.services.attendance_service import CheckInResult

router = APIRouter()


def _check_in_response(result: CheckInResult) -> CheckInResponse:
    member = result.member
    return CheckInResponse(
        success=True,
        message=f"Welcome, {member.first_name}!",
        member=MemberSummary.model_validate(member),
        subscription=SubscriptionSummary.model_validate(result.subscription),
        attendance=AttendanceResponse.model_validate(result.attendance),
    )


@router.post("/check-in", response_model=CheckInResponse, status_code=201)
async def check_in(
    request: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Check a member in from the code on their QR card (or their member id)."""
    result = attendance_service.check_in(
        db,
        request.identifier,
        processed_by=current_user.id,
        notes=request.notes,
    )
    return _check_in_response(result)


@router.post("/manual-check-in", response_model=CheckInResponse, status_code=201)
async def manual_check_in(
    request: ManualCheckInRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Check a member in by id when no card is at hand. Same rules as a QR check-in."""
    result = attendance_service.check_in(
        db,
        request.member_id,
        processed_by=current_user.id,
        notes=request.notes,
    )
    return _check_in_response(result)


@router.post("/check-out", response_model=CheckOutResponse)
async def check_out(
    request: CheckOutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    record = attendance_service.check_out(db, request.attendance_id, notes=request.notes)
    return CheckOutResponse(
        success=True,
        message="Checked out successfully",
        attendance=AttendanceResponse.model_validate(record),
    )


@router.get("/logs", response_model=AttendanceLogsResponse)
async def get_attendance_logs(
    member_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Earliest check-in time"),
    end_date: Optional[datetime] = Query(None, description="Latest check-in time"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Visit history, newest first, plus everyone currently in the gym."""
    start, end = validate_date_range(start_date, end_date)
    records, total = attendance_service.list_attendance(
        db,
        member_id=member_id,
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    open_records = attendance_service.list_currently_checked_in(db, settings.ATTENDANCE_OPEN_LIST_LIMIT)
    return AttendanceLogsResponse(
        data=[AttendanceResponse.model_validate(r) for r in records],
        pagination=Pagination.build(page, limit, total),
        currently_checked_in=[AttendanceResponse.model_validate(r) for r in open_records],
    )


@router.get("/{attendance_id}", response_model=AttendanceResponse)
async def get_attendance(
    attendance_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return attendance_service.get_attendance(db, attendance_id)
