from pydantic import BaseModel
from typing import List
from decimal import Decimal


class PopularPlan(BaseModel):
    plan_id: int
    name: str
    active_subscriptions: int


class DashboardStats(BaseModel):
    total_members: int
    active_members: int
    total_revenue: Decimal
    monthly_revenue: Decimal
    today_check_ins: int
    currently_checked_in: int
    low_stock_products: int
    popular_plans: List[PopularPlan]
