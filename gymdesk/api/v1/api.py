from fastapi import APIRouter
from gymdesk.api.v1.endpoints import (
    auth,
    members,
    membership_plans,
    subscriptions,
    attendance,
    products,
    sales,
    dashboard,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(members.router, prefix="/members", tags=["members"])
api_router.include_router(membership_plans.router, prefix="/membership-plans", tags=["membership-plans"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
