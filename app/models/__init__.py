from app.models.user import User, UserRole
from app.models.issue import Issue, IssueStatus
from app.models.payment import Payment, PaymentType
from app.models.staff_assignment import StaffAssignment

__all__ = [
    "User",
    "UserRole",
    "Issue",
    "IssueStatus",
    "Payment",
    "PaymentType",
    "StaffAssignment",
]
