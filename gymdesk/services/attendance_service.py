"""
Attendance workflow for GymDesk

Check-in runs a fixed chain of guards and stops at the first failure:
member exists -> member active -> active subscription -> not past end date
-> visits left (capped plans) -> no open visit. The visit row and the visit
counter decrement are then written in one transaction.

The "one open visit per member" rule is also enforced by the partial unique
index on attendance_logs, so two concurrent check-ins cannot both succeed.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple, Union
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict, Forbidden, NotFound
from gymdesk.core.timeutils import utc_now
from gymdesk.models.attendance import AttendanceRecord
from gymdesk.models.member import Member
from gymdesk.models.subscription import Subscription
from gymdesk.services.member_service import resolve_member
from gymdesk.services.subscription_service import get_authorizing_subscription
from gymdesk.core.logging_config import get_logger

logger = get_logger("attendance_service")


@dataclass
class CheckInResult:
    attendance: AttendanceRecord
    member: Member
    subscription: Subscription


def _open_records(db: Session, member_id: int):
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.member_id == member_id,
            AttendanceRecord.check_out_time.is_(None),
        )
        .order_by(AttendanceRecord.check_in_time.desc())
    )


def find_open_record(db: Session, member_id: int) -> Optional[AttendanceRecord]:
    return _open_records(db, member_id).first()


def _already_checked_in(open_record: Optional[AttendanceRecord]) -> Conflict:
    details = None
    if open_record is not None:
        details = {
            "attendance_id": open_record.id,
            "check_in_time": open_record.check_in_time.isoformat(),
        }
    return Conflict("Member already checked in", code="already_checked_in", details=details)


def check_in(
    db: Session,
    identifier: Union[str, int],
    processed_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> CheckInResult:
    """
    Admit a member and open a visit.

    Args:
        db: Database session
        identifier: Member code (QR payload) or internal member id
        processed_by: Id of the staff user at the desk
        notes: Free-text note stored on the visit

    Raises:
        NotFound: No member matches the identifier
        Forbidden: Inactive account, no active membership, expired membership, no visits left
        Conflict: The member already has an open visit
    """
    member = resolve_member(db, identifier)
    if member is None:
        logger.warning(f"Check-in rejected: no member for identifier {identifier!r}")
        raise NotFound("Member not found", code="member_not_found")

    if not member.is_active:
        logger.warning(f"Check-in rejected: member {member.id} inactive")
        raise Forbidden("Member account is inactive", code="member_inactive")

    subscription = get_authorizing_subscription(db, member.id)
    if subscription is None:
        logger.warning(f"Check-in rejected: member {member.id} has no active membership")
        raise Forbidden("No active membership found", code="no_active_membership")

    now = utc_now()
    # Status is not trusted to follow the calendar
    if subscription.end_date < now:
        logger.warning(f"Check-in rejected: subscription {subscription.id} ended {subscription.end_date.isoformat()}")
        raise Forbidden(
            "Membership has expired",
            code="membership_expired",
            details={"subscription_id": subscription.id, "end_date": subscription.end_date.isoformat()},
        )

    if subscription.remaining_visits is not None and subscription.remaining_visits <= 0:
        logger.warning(f"Check-in rejected: subscription {subscription.id} has no visits left")
        raise Forbidden(
            "No remaining visits",
            code="no_remaining_visits",
            details={"subscription_id": subscription.id},
        )

    open_record = find_open_record(db, member.id)
    if open_record is not None:
        logger.warning(f"Check-in rejected: member {member.id} already in since {open_record.check_in_time.isoformat()}")
        raise _already_checked_in(open_record)

    record = AttendanceRecord(
        member_id=member.id,
        check_in_time=now,
        notes=notes,
        processed_by=processed_by,
    )
    with db_transaction(db, "check_in"):
        db.add(record)
        try:
            db.flush()
        except IntegrityError:
            # A concurrent check-in won the open-visit index
            db.rollback()
            winner = _open_records(db, member.id).first()
            raise _already_checked_in(winner) from None

        if subscription.remaining_visits is not None:
            result = db.execute(
                update(Subscription)
                .where(
                    Subscription.id == subscription.id,
                    Subscription.remaining_visits > 0,
                )
                .values(remaining_visits=Subscription.remaining_visits - 1, updated_at=now)
            )
            if result.rowcount != 1:
                raise Forbidden(
                    "No remaining visits",
                    code="no_remaining_visits",
                    details={"subscription_id": subscription.id},
                )

    logger.info(
        f"Member {member.id} checked in (attendance {record.id}, subscription {subscription.id})",
        extra={
            "member_id": member.id,
            "attendance_id": record.id,
            "subscription_id": subscription.id,
            "remaining_visits": subscription.remaining_visits,
            "processed_by": processed_by,
        },
    )
    return CheckInResult(attendance=record, member=member, subscription=subscription)


def check_out(db: Session, attendance_id: int, notes: Optional[str] = None) -> AttendanceRecord:
    """
    Close an open visit.

    Only an open visit can be closed; a second check-out of the same visit
    fails with NotFound. Notes given at check-out are appended to any notes
    taken at check-in.
    """
    record = (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.id == attendance_id,
            AttendanceRecord.check_out_time.is_(None),
        )
        .first()
    )
    if record is None:
        logger.warning(f"Check-out rejected: no open attendance {attendance_id}")
        raise NotFound(
            "Active check-in not found or already checked out",
            code="no_active_check_in",
            details={"attendance_id": attendance_id},
        )

    now = utc_now()
    values = {"check_out_time": now, "updated_at": now}
    if notes:
        values["notes"] = f"{record.notes}\n{notes}" if record.notes else notes

    with db_transaction(db, "check_out"):
        result = db.execute(
            update(AttendanceRecord)
            .where(
                AttendanceRecord.id == attendance_id,
                AttendanceRecord.check_out_time.is_(None),
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise NotFound(
                "Active check-in not found or already checked out",
                code="no_active_check_in",
                details={"attendance_id": attendance_id},
            )

    db.refresh(record)
    logger.info(f"Member {record.member_id} checked out (attendance {record.id})")
    return record


def get_attendance(db: Session, attendance_id: int) -> AttendanceRecord:
    record = (
        db.query(AttendanceRecord)
        .options(joinedload(AttendanceRecord.member))
        .filter(AttendanceRecord.id == attendance_id)
        .first()
    )
    if record is None:
        raise NotFound("Attendance record not found", code="attendance_not_found")
    return record


def list_attendance(
    db: Session,
    member_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[AttendanceRecord], int]:
    """One page of visits, newest check-in first, plus the total match count."""
    query = db.query(AttendanceRecord)
    if member_id is not None:
        query = query.filter(AttendanceRecord.member_id == member_id)
    if start is not None:
        query = query.filter(AttendanceRecord.check_in_time >= start)
    if end is not None:
        query = query.filter(AttendanceRecord.check_in_time <= end)

    total = query.count()
    records = (
        query.options(joinedload(AttendanceRecord.member))
        .order_by(AttendanceRecord.check_in_time.desc(), AttendanceRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return records, total


def list_currently_checked_in(db: Session, limit: int) -> List[AttendanceRecord]:
    """Open visits, newest first, capped at ``limit`` rows."""
    return (
        db.query(AttendanceRecord)
        .options(joinedload(AttendanceRecord.member))
        .filter(AttendanceRecord.check_out_time.is_(None))
        .order_by(AttendanceRecord.check_in_time.desc(), AttendanceRecord.id.desc())
        .limit(limit)
        .all()
    )
