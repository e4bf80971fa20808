from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from gymdesk.core.database import Base


class GenderEnum(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    # Stable external identifier encoded in the member's QR code
    member_code = Column(String(32), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    date_of_birth = Column(DateTime, nullable=True)
    gender = Column(SQLEnum(GenderEnum, values_callable=lambda x: [e.value for e in x], native_enum=False), nullable=True)
    address = Column(Text)
    emergency_contact = Column(String(255), nullable=True)
    emergency_phone = Column(String(20), nullable=True)
    notes = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    subscriptions = relationship("Subscription", back_populates="member", order_by="Subscription.end_date.desc()")
    attendance_records = relationship("AttendanceRecord", back_populates="member")
    sales = relationship("Sale", back_populates="member")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
