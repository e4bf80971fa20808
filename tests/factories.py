"""Row builders for tests. Each one commits so API calls made afterwards can see the data."""
import itertools
from datetime import timedelta
from decimal import Decimal

from gymdesk.core.security import get_password_hash
from gymdesk.core.timeutils import utc_now
from gymdesk.models import (
    AttendanceRecord,
    Member,
    MembershipPlan,
    Product,
    Subscription,
    SubscriptionStatusEnum,
    User,
)

_seq = itertools.count(1)

STAFF_PASSWORD = "front-desk-pass"


def make_user(db, email=None, password=STAFF_PASSWORD, is_active=True):
    n = next(_seq)
    user = User(
        email=email or f"staff{n}@gym.example.com",
        full_name=f"Staff {n}",
        hashed_password=get_password_hash(password),
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def make_member(db, member_code=None, is_active=True, **kwargs):
    n = next(_seq)
    member = Member(
        member_code=member_code or f"CODE{n:06d}",
        first_name=kwargs.pop("first_name", "Alex"),
        last_name=kwargs.pop("last_name", f"Member{n}"),
        is_active=is_active,
        **kwargs,
    )
    db.add(member)
    db.commit()
    return member


def make_plan(db, name=None, duration_days=30, price="49.00", max_visits=None, is_active=True):
    n = next(_seq)
    plan = MembershipPlan(
        name=name or f"Plan {n}",
        duration_days=duration_days,
        price=Decimal(price),
        max_visits=max_visits,
        is_active=is_active,
    )
    db.add(plan)
    db.commit()
    return plan


def make_subscription(
    db,
    member,
    plan,
    status=SubscriptionStatusEnum.ACTIVE,
    start_date=None,
    end_date=None,
    remaining_visits="plan",
):
    start = start_date or utc_now() - timedelta(days=1)
    subscription = Subscription(
        member_id=member.id,
        plan_id=plan.id,
        start_date=start,
        end_date=end_date or start + timedelta(days=plan.duration_days),
        status=status,
        remaining_visits=plan.max_visits if remaining_visits == "plan" else remaining_visits,
        price=plan.price,
    )
    db.add(subscription)
    db.commit()
    return subscription


def make_product(db, sku=None, price="10.00", stock_quantity=10, min_stock_level=5, is_active=True, **kwargs):
    n = next(_seq)
    product = Product(
        name=kwargs.pop("name", f"Product {n}"),
        category=kwargs.pop("category", "supplements"),
        sku=sku or f"SKU-{n:05d}",
        price=Decimal(price),
        stock_quantity=stock_quantity,
        min_stock_level=min_stock_level,
        is_active=is_active,
        **kwargs,
    )
    db.add(product)
    db.commit()
    return product


def make_open_visit(db, member, check_in_time=None):
    record = AttendanceRecord(member_id=member.id, check_in_time=check_in_time or utc_now())
    db.add(record)
    db.commit()
    return record
