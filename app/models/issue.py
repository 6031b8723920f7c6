"""
Citizen-reported issue and its lifecycle fields.
"""
from enum import Enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Text
from datetime import datetime
from app.db.base import Base


class IssueStatus(str, Enum):
    """Lifecycle states. Resolved and rejected are terminal."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


TERMINAL_STATUSES = (IssueStatus.RESOLVED.value, IssueStatus.REJECTED.value)


class Issue(Base):
    __tablename__ = "issues"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    location = Column(String, nullable=True)
    district = Column(String, nullable=True, index=True)
    images = Column(JSON, nullable=False, default=list)

    submitted_by = Column(String, nullable=False, index=True)  # Submitter email
    submitted_by_role = Column(String, nullable=False)  # Role snapshot at creation, never rewritten
    status = Column(String, nullable=False, default=IssueStatus.PENDING.value, index=True)

    # Boost entitlement, written only by a completed boost payment
    is_boosted = Column(Boolean, nullable=False, default=False, index=True)
    boosted_at = Column(DateTime, nullable=True)
    boost_payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)

    upvotes = Column(Integer, nullable=False, default=0)
    upvoted_by = Column(JSON, nullable=False, default=list)  # Emails, no duplicates

    assigned_staff_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_staff_email = Column(String, nullable=True)
    assigned_staff_name = Column(String, nullable=True)
    assigned_at = Column(DateTime, nullable=True)

    resolved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejected_by = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Issue(id={self.id}, status={self.status}, submitted_by={self.submitted_by})>"
