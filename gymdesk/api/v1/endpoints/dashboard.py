from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session
from gymdesk.core.database import get_db
from gymdesk.core.timeutils import start_of_day, utc_now
from gymdesk.models.attendance import AttendanceRecord
from gymdesk.models.member import Member
from gymdesk.models.membership_plan import MembershipPlan
from gymdesk.models.product import Product
from gymdesk.models.sale import Sale, PaymentStatusEnum
from gymdesk.models.subscription import Subscription, SubscriptionStatusEnum
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.dashboard import DashboardStats, PopularPlan

router = APIRouter()

POPULAR_PLAN_COUNT = 5


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Headline numbers for the front-desk dashboard. Revenue counts completed sales only."""
    now = utc_now()
    today_start = start_of_day(now.date())
    month_start = start_of_day(now.date().replace(day=1))

    total_members = db.query(func.count(Member.id)).scalar() or 0
    active_members = db.query(func.count(Member.id)).filter(Member.is_active == True).scalar() or 0

    completed = db.query(func.sum(Sale.final_amount)).filter(Sale.payment_status == PaymentStatusEnum.COMPLETED)
    total_revenue = completed.scalar() or Decimal("0.00")
    monthly_revenue = completed.filter(Sale.created_at >= month_start).scalar() or Decimal("0.00")

    today_check_ins = (
        db.query(func.count(AttendanceRecord.id))
        .filter(AttendanceRecord.check_in_time >= today_start)
        .scalar()
    ) or 0
    currently_checked_in = (
        db.query(func.count(AttendanceRecord.id))
        .filter(AttendanceRecord.check_out_time.is_(None))
        .scalar()
    ) or 0
    low_stock_products = (
        db.query(func.count(Product.id))
        .filter(
            Product.is_active == True,
            Product.stock_quantity <= Product.min_stock_level,
        )
        .scalar()
    ) or 0

    subscription_count = func.count(Subscription.id).label("active_subscriptions")
    popular = (
        db.query(MembershipPlan.id, MembershipPlan.name, subscription_count)
        .join(Subscription, Subscription.plan_id == MembershipPlan.id)
        .filter(
            Subscription.status == SubscriptionStatusEnum.ACTIVE,
            Subscription.end_date >= now,
        )
        .group_by(MembershipPlan.id, MembershipPlan.name)
        .order_by(subscription_count.desc(), MembershipPlan.name)
        .limit(POPULAR_PLAN_COUNT)
        .all()
    )

    return DashboardStats(
        total_members=total_members,
        active_members=active_members,
        total_revenue=total_revenue,
        monthly_revenue=monthly_revenue,
        today_check_ins=today_check_ins,
        currently_checked_in=currently_checked_in,
        low_stock_products=low_stock_products,
        popular_plans=[
            PopularPlan(plan_id=row.id, name=row.name, active_subscriptions=row.active_subscriptions)
            for row in popular
        ],
    )
