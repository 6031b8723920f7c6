from enum import Enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base
from app.core.plan_limits import FREE_ISSUE_LIMIT


class UserRole(str, Enum):
    """Account roles. Blocked and rejected accounts are inactive."""
    USER = "user"
    ADMIN = "admin"
    STAFF = "staff"
    REJECTED = "rejected"
    BLOCKED = "blocked"


INACTIVE_ROLES = (UserRole.BLOCKED.value, UserRole.REJECTED.value)


def status_for_role(role: str) -> str:
    """Account status is derived from role, never set on its own."""
    return "inactive" if role in INACTIVE_ROLES else "active"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    role = Column(String, nullable=False, default=UserRole.USER.value, index=True)
    status = Column(String, nullable=False, default="active")

    # Premium entitlement, written only by a completed premium payment
    is_premium = Column(Boolean, nullable=False, default=False, index=True)
    premium_plan = Column(String, nullable=True)  # "monthly" or "yearly"
    premium_expires_at = Column(DateTime, nullable=True)
    premium_payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    max_issues = Column(Integer, nullable=False, default=FREE_ISSUE_LIMIT)

    # Staff bookkeeping
    assigned_issues_count = Column(Integer, nullable=False, default=0)
    resolved_issues_count = Column(Integer, nullable=False, default=0)
    rejected_issues_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Denormalized assignment log; issues.assigned_staff_id is authoritative
    assigned_issues = relationship(
        "StaffAssignment",
        order_by="StaffAssignment.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
