"""
Read-only reporting: payment history, staff performance and health counters.
"""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.errors import NotFoundError, ValidationError
from app.models.issue import IssueStatus
from app.models.payment import Payment
from app.models.user import UserRole
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.issue_lifecycle import VALID_STATUSES
from app.services.payment_gateway import PaymentGateway
from app.services.user_accounts import VALID_ROLES


def _rate(part: int, whole: int) -> int:
    # Half rounds up (12.5 -> 13)
    return math.floor(part / whole * 100 + 0.5) if whole > 0 else 0


class Reporting:
    def __init__(
        self,
        users: UserRepository,
        issues: IssueRepository,
        payments: PaymentRepository,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.users = users
        self.issues = issues
        self.payments = payments
        self.gateway = gateway

    def payment_history(self, email: Optional[str]) -> List[Payment]:
        if not email:
            raise ValidationError("Email is required")
        return self.payments.list_by_email(email)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.payments.get(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def staff_stats(self) -> List[Dict[str, Any]]:
        """Per staff member counts, computed from issues rather than the stored counters."""
        stats = []
        for staff in self.users.list(role=UserRole.STAFF.value):
            assigned = self.issues.count(staff_id=staff.id)
            resolved = self.issues.count(status=IssueStatus.RESOLVED.value, staff_id=staff.id)
            rejected = self.issues.count(status=IssueStatus.REJECTED.value, staff_id=staff.id)
            stats.append({
                "staff": staff,
                "assignedIssues": assigned,
                "resolvedIssues": resolved,
                "rejectedIssues": rejected,
                "successRate": _rate(resolved, assigned),
                "completionRate": _rate(resolved + rejected, assigned),
            })
        return stats

    def health(self) -> Dict[str, Any]:
        configured = self.gateway is not None and self.gateway.is_configured()
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow(),
            "database": "connected",
            "stripe": "configured" if configured else "not configured",
            "collections": {
                "users": self.users.count(),
                "issues": self.issues.count(),
                "payments": self.payments.count(),
            },
            "stats": {
                "staff": self.users.count(role=UserRole.STAFF.value),
                "pendingIssues": self.issues.count(status=IssueStatus.PENDING.value),
                "assignedIssues": self.issues.count(status=IssueStatus.ASSIGNED.value),
                "inProgressIssues": self.issues.count(status=IssueStatus.IN_PROGRESS.value),
                "resolvedIssues": self.issues.count(status=IssueStatus.RESOLVED.value),
                "rejectedIssues": self.issues.count(status=IssueStatus.REJECTED.value),
            },
            "roles": VALID_ROLES,
            "issueStatuses": VALID_STATUSES,
        }
