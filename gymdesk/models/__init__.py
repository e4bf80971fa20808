from gymdesk.models.user import User
from gymdesk.models.member import Member, GenderEnum
from gymdesk.models.membership_plan import MembershipPlan
from gymdesk.models.subscription import Subscription, SubscriptionStatusEnum
from gymdesk.models.attendance import AttendanceRecord, AttendanceStatusEnum
from gymdesk.models.product import Product
from gymdesk.models.sale import Sale, SaleItem, PaymentStatusEnum

__all__ = [
    "User",
    "Member",
    "GenderEnum",
    "MembershipPlan",
    "Subscription",
    "SubscriptionStatusEnum",
    "AttendanceRecord",
    "AttendanceStatusEnum",
    "Product",
    "Sale",
    "SaleItem",
    "PaymentStatusEnum",
]
