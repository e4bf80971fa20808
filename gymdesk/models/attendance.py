from sqlalchemy import Column, Integer, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from gymdesk.core.database import Base


class AttendanceStatusEnum(str, enum.Enum):
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class AttendanceRecord(Base):
    """One visit. A null check_out_time means the member is still in the gym."""

    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    check_in_time = Column(DateTime, nullable=False, index=True)
    check_out_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    member = relationship("Member", back_populates="attendance_records")
    processed_by_user = relationship("User", back_populates="processed_check_ins")

    __table_args__ = (
        # At most one open visit per member
        Index(
            "uq_attendance_open_member",
            "member_id",
            unique=True,
            sqlite_where=check_out_time.is_(None),
            postgresql_where=check_out_time.is_(None),
        ),
    )

    @property
    def status(self) -> AttendanceStatusEnum:
        if self.check_out_time is None:
            return AttendanceStatusEnum.CHECKED_IN
        return AttendanceStatusEnum.CHECKED_OUT
