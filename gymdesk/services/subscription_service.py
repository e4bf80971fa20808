"""
Subscription ledger rules.

A member may hold many subscription rows over time. Entry is authorized by
exactly one of them: the row with status ``active`` and the latest end date.
Status is not kept in sync with the calendar, so callers must still compare
``end_date`` with the current time themselves.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from gymdesk.core.exceptions import Conflict, ValidationError
from gymdesk.core.timeutils import to_naive_utc, utc_now
from gymdesk.models.member import Member
from gymdesk.models.membership_plan import MembershipPlan
from gymdesk.models.subscription import Subscription, SubscriptionStatusEnum
from gymdesk.core.logging_config import get_logger

logger = get_logger("subscription_service")


def get_authorizing_subscription(db: Session, member_id: int) -> Optional[Subscription]:
    """Latest-ending active subscription for the member, or None.

    Ties on end_date go to the newest row.
    """
    return (
        db.query(Subscription)
        .options(joinedload(Subscription.plan))
        .filter(
            Subscription.member_id == member_id,
            Subscription.status == SubscriptionStatusEnum.ACTIVE,
        )
        .order_by(Subscription.end_date.desc(), Subscription.id.desc())
        .first()
    )


def get_current_subscription(db: Session, member_id: int, now: Optional[datetime] = None) -> Optional[Subscription]:
    """Authorizing subscription if it has not run past its end date."""
    subscription = get_authorizing_subscription(db, member_id)
    if subscription is None:
        return None
    if subscription.end_date < (now or utc_now()):
        return None
    return subscription


def list_member_subscriptions(db: Session, member_id: int) -> List[Subscription]:
    return (
        db.query(Subscription)
        .options(joinedload(Subscription.plan))
        .filter(Subscription.member_id == member_id)
        .order_by(Subscription.end_date.desc(), Subscription.id.desc())
        .all()
    )


def open_subscription(
    db: Session,
    member: Member,
    plan: MembershipPlan,
    start_date: Optional[datetime] = None,
    price: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> Subscription:
    """Add a new active subscription for ``member`` on ``plan``.

    The row is added and flushed but not committed; the caller owns the
    transaction.
    """
    if not plan.is_active:
        raise ValidationError(
            "Membership plan is not active",
            code="plan_inactive",
            details={"plan_id": plan.id},
        )
    start = to_naive_utc(start_date) or utc_now()
    subscription = Subscription(
        member_id=member.id,
        plan_id=plan.id,
        start_date=start,
        end_date=start + timedelta(days=plan.duration_days),
        status=SubscriptionStatusEnum.ACTIVE,
        remaining_visits=plan.max_visits,
        price=price if price is not None else plan.price,
        notes=notes,
    )
    db.add(subscription)
    db.flush()
    logger.info(
        f"Opened subscription {subscription.id} for member {member.id} on plan '{plan.name}'",
        extra={"member_id": member.id, "plan_id": plan.id, "end_date": subscription.end_date.isoformat()},
    )
    return subscription


def change_subscription(
    subscription: Subscription,
    status: Optional[SubscriptionStatusEnum] = None,
    notes: Optional[str] = None,
) -> Subscription:
    """Apply a status change and/or notes. A cancelled subscription stays cancelled."""
    if status is not None and status != subscription.status:
        if subscription.status == SubscriptionStatusEnum.CANCELLED:
            raise Conflict(
                "Cancelled subscriptions cannot be changed",
                code="subscription_cancelled",
                details={"subscription_id": subscription.id},
            )
        logger.info(f"Subscription {subscription.id}: {subscription.status.value} -> {status.value}")
        subscription.status = status
    if notes is not None:
        subscription.notes = notes
    return subscription
