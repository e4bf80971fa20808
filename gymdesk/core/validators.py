"""
Reusable lookups and checks shared by endpoints and services
"""
from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy.orm import Session
from gymdesk.core.exceptions import NotFound, ValidationError
from gymdesk.core.timeutils import to_naive_utc
from gymdesk.models.member import Member
from gymdesk.models.membership_plan import MembershipPlan
from gymdesk.models.product import Product
from gymdesk.core.logging_config import get_logger

logger = get_logger("validators")


def get_member_or_404(db: Session, member_id: int) -> Member:
    member = db.query(Member).filter(Member.id == member_id).first()
    if not member:
        raise NotFound("Member not found", code="member_not_found", details={"member_id": member_id})
    return member


def get_plan_or_404(db: Session, plan_id: int) -> MembershipPlan:
    plan = db.query(MembershipPlan).filter(MembershipPlan.id == plan_id).first()
    if not plan:
        raise NotFound("Membership plan not found", code="plan_not_found", details={"plan_id": plan_id})
    return plan


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound(
            f"Product with ID {product_id} not found",
            code="product_not_found",
            details={"product_id": product_id},
        )
    return product


def validate_date_range(
    start: Optional[datetime],
    end: Optional[datetime],
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Normalize an optional [start, end] filter to naive UTC.

    Raises:
        ValidationError: If both bounds are given and start is after end
    """
    start = to_naive_utc(start)
    end = to_naive_utc(end)
    if start and end and start > end:
        logger.warning(f"Rejected date range: start={start.isoformat()} end={end.isoformat()}")
        raise ValidationError(
            "start_date must not be after end_date",
            code="invalid_date_range",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return start, end
