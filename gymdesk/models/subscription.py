from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, Text, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from gymdesk.core.database import Base


class SubscriptionStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class Subscription(Base):
    __tablename__ = "member_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("membership_plans.id"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(SubscriptionStatusEnum, values_callable=lambda x: [e.value for e in x], native_enum=False), nullable=False, default=SubscriptionStatusEnum.ACTIVE)
    remaining_visits = Column(Integer, nullable=True)  # Only set when the plan caps visits
    price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    member = relationship("Member", back_populates="subscriptions")
    plan = relationship("MembershipPlan", back_populates="subscriptions")

    __table_args__ = (
        CheckConstraint("remaining_visits IS NULL OR remaining_visits >= 0", name="ck_subscription_remaining_visits"),
    )

    @property
    def plan_name(self) -> str:
        return self.plan.name if self.plan else ""
