"""
Issue lifecycle: creation gating, status changes, staff assignment, boosting
and deletion cascades.

Multi-row writes (status + staff counter, assignment + staff log, cascades)
share one database transaction, so a failure in the second write rolls the
first one back.
"""
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.issue import Issue, IssueStatus, TERMINAL_STATUSES
from app.models.user import INACTIVE_ROLES
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.premium_expiry import effective_is_premium
from app.services.quota import evaluate_quota

logger = logging.getLogger(__name__)

# Reject off-table transitions instead of logging them
ISSUE_STATUS_STRICT = os.getenv("ISSUE_STATUS_STRICT", "false").lower() == "true"

VALID_STATUSES = [s.value for s in IssueStatus]

ALLOWED_TRANSITIONS: Dict[str, tuple] = {
    IssueStatus.PENDING.value: (
        IssueStatus.ASSIGNED.value,
        IssueStatus.IN_PROGRESS.value,
        IssueStatus.REJECTED.value,
    ),
    IssueStatus.ASSIGNED.value: (
        IssueStatus.PENDING.value,
        IssueStatus.ASSIGNED.value,
        IssueStatus.IN_PROGRESS.value,
        IssueStatus.RESOLVED.value,
        IssueStatus.REJECTED.value,
    ),
    IssueStatus.IN_PROGRESS.value: (
        IssueStatus.ASSIGNED.value,
        IssueStatus.RESOLVED.value,
        IssueStatus.REJECTED.value,
    ),
    IssueStatus.RESOLVED.value: (),
    IssueStatus.REJECTED.value: (),
}

# Fields a generic edit may touch; lifecycle and entitlement fields are excluded
EDITABLE_FIELDS = ("title", "description", "category", "location", "district", "images")


def is_allowed_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, ())


class IssueLifecycle:
    def __init__(
        self,
        db: Session,
        users: UserRepository,
        issues: IssueRepository,
        payments: PaymentRepository,
        strict_transitions: bool = ISSUE_STATUS_STRICT,
    ):
        self.db = db
        self.users = users
        self.issues = issues
        self.payments = payments
        self.strict_transitions = strict_transitions

    # ------------------------------------------------------------------ reads

    def get_issue(self, issue_id: int) -> Issue:
        issue = self.issues.get(issue_id)
        if not issue:
            raise NotFoundError("Issue not found")
        return issue

    def list_issues(self, email: Optional[str] = None, status: Optional[str] = None, district: Optional[str] = None) -> List[Issue]:
        return self.issues.list(email=email, status=status, district=district)

    def staff_issues(self, staff_id: int) -> List[Issue]:
        if not self.users.get_staff(staff_id):
            raise NotFoundError("Staff member not found or not a valid staff")
        return self.issues.list_by_staff(staff_id)

    # ----------------------------------------------------------------- writes

    def create(self, issue_data: Dict[str, Any], submitter_email: str) -> Dict[str, Any]:
        """
        Create a pending issue for `submitter_email`, enforcing the report quota.

        The submitter row is locked while counting and inserting, so two
        concurrent submissions from one capped user cannot both pass the check.
        """
        user = self.users.get_by_email(submitter_email, for_update=True)
        if not user:
            self.db.rollback()
            raise NotFoundError("User not found")

        if user.role in INACTIVE_ROLES:
            self.db.rollback()
            raise ForbiddenError(
                "Your account is restricted from reporting issues",
                extra={"role": user.role},
            )

        now = datetime.utcnow()
        issue_count = self.issues.count_by_submitter(submitter_email)
        quota = evaluate_quota(user, issue_count, now)
        if not quota.can_report_more:
            self.db.rollback()
            raise ConflictError(
                "Maximum issue limit reached. Upgrade to premium for unlimited reports.",
                extra={
                    "limitReached": True,
                    "currentCount": issue_count,
                    "maxLimit": quota.max_issues,
                },
            )

        fields = {k: v for k, v in issue_data.items() if k in EDITABLE_FIELDS}
        issue = Issue(
            **fields,
            submitted_by=submitter_email,
            submitted_by_role=user.role,
            status=IssueStatus.PENDING.value,
            is_boosted=False,
            upvotes=0,
            upvoted_by=[],
            created_at=now,
            updated_at=now,
        )
        if issue.images is None:
            issue.images = []
        self.issues.add(issue)
        self.db.commit()

        logger.info("Issue %s created by %s (%s)", issue.id, submitter_email, user.role)
        return {
            "insertedId": issue.id,
            "userIssueCount": issue_count + 1,
            "userRole": user.role,
            "isPremium": effective_is_premium(user, now),
        }

    def update_issue(self, issue_id: int, fields: Dict[str, Any]) -> int:
        """Edit descriptive fields only. Status, boost and assignment have their own operations."""
        values = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if not self.issues.get(issue_id):
            raise NotFoundError("Issue not found")
        matched = self.issues.update_fields(issue_id, **values)
        self.db.commit()
        return matched

    def _check_transition(self, issue: Issue, new_status: str) -> None:
        if is_allowed_transition(issue.status, new_status):
            return
        if self.strict_transitions:
            raise ConflictError(
                f"Cannot move issue from {issue.status} to {new_status}",
                extra={"currentStatus": issue.status},
            )
        logger.warning(
            "Issue %s moved off the transition table: %s -> %s",
            issue.id, issue.status, new_status,
        )

    def update_status(self, issue_id: int, new_status: str) -> Dict[str, Any]:
        if new_status not in VALID_STATUSES:
            raise ValidationError(
                f"Invalid status. Valid statuses are: {', '.join(VALID_STATUSES)}"
            )

        issue = self.issues.get(issue_id)
        if not issue:
            raise NotFoundError("Issue not found")
        self._check_transition(issue, new_status)

        now = datetime.utcnow()
        values: Dict[str, Any] = {"status": new_status, "updated_at": now}
        if new_status == IssueStatus.RESOLVED.value:
            values["resolved_at"] = now
        if new_status == IssueStatus.REJECTED.value:
            values["rejected_at"] = now
            values["rejected_by"] = issue.assigned_staff_email

        staff_id = issue.assigned_staff_id
        title = issue.title
        # Staff counters move only when an open issue closes
        closes_issue = new_status in TERMINAL_STATUSES and issue.status not in TERMINAL_STATUSES
        try:
            matched = self.issues.update_fields(issue_id, **values)

            if staff_id is not None:
                self.users.update_assignment_status(staff_id, issue_id, new_status)
                if closes_issue:
                    updated = self.users.increment_counters(
                        staff_id,
                        resolved=1 if new_status == IssueStatus.RESOLVED.value else 0,
                        rejected=1 if new_status == IssueStatus.REJECTED.value else 0,
                    )
                    if not updated:
                        logger.warning("Assigned staff %s for issue %s no longer exists", staff_id, issue_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Issue %s status -> %s", issue_id, new_status)
        return {
            "modifiedCount": matched,
            "issue": {"id": issue_id, "title": title, "status": new_status},
        }

    def assign_staff(
        self,
        issue_id: int,
        staff_id: int,
        staff_email: Optional[str] = None,
        staff_name: Optional[str] = None,
        assigned_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        issue = self.issues.get(issue_id)
        if not issue:
            raise NotFoundError("Issue not found")

        staff = self.users.get_staff(staff_id)
        if not staff:
            raise NotFoundError("Staff member not found or not a valid staff")
        self._check_transition(issue, IssueStatus.ASSIGNED.value)

        staff_email = staff_email or staff.email
        staff_name = staff_name or staff.display_name
        assigned_at = assigned_at or datetime.utcnow()
        title = issue.title

        try:
            matched = self.issues.update_fields(
                issue_id,
                status=IssueStatus.ASSIGNED.value,
                assigned_staff_id=staff_id,
                assigned_staff_email=staff_email,
                assigned_staff_name=staff_name,
                assigned_at=assigned_at,
            )
            self.users.append_assignment(staff_id, issue_id, title, datetime.utcnow())
            self.users.increment_counters(staff_id, assigned=1)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Issue %s assigned to staff %s", issue_id, staff_id)
        return {
            "modifiedCount": matched,
            "assignedStaff": {"id": staff_id, "email": staff_email, "name": staff_name},
            "issue": {"id": issue_id, "title": title, "status": IssueStatus.ASSIGNED.value},
        }

    def boost(self, issue_id: int, boost_payment_id: Optional[int]) -> Dict[str, Any]:
        """
        Mark an issue as boosted. Ownership, pending status and the
        not-already-boosted check belong to boost checkout; this trusts its caller.
        """
        matched = self.issues.mark_boosted(issue_id, boost_payment_id, datetime.utcnow())
        if not matched:
            self.db.rollback()
            raise NotFoundError("Issue not found")
        self.db.commit()
        return {"modifiedCount": matched}

    def toggle_upvote(self, issue_id: int, email: str) -> Dict[str, Any]:
        if not email:
            raise ValidationError("Email is required")
        issue = self.issues.get(issue_id, for_update=True)
        if not issue:
            self.db.rollback()
            raise NotFoundError("Issue not found")
        if issue.submitted_by == email:
            self.db.rollback()
            raise ForbiddenError("You cannot upvote your own issue")

        voters = list(issue.upvoted_by or [])
        if email in voters:
            voters.remove(email)
            upvoted = False
        else:
            voters.append(email)
            upvoted = True
        self.issues.update_fields(issue_id, upvoted_by=voters, upvotes=len(voters))
        self.db.commit()
        return {"upvoted": upvoted, "upvotes": len(voters)}

    # -------------------------------------------------------------- cascades

    def delete(self, issue_id: int) -> Dict[str, Any]:
        """Delete an issue and the payments tied to it. Dependents go first."""
        if not self.issues.get(issue_id):
            raise NotFoundError("Issue not found")
        try:
            payments_deleted = self.payments.delete_by_issue(issue_id)
            deleted = self.issues.delete(issue_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Issue %s deleted with %s payment(s)", issue_id, payments_deleted)
        return {"deletedCount": deleted, "paymentsDeleted": payments_deleted}

    def delete_user(self, user_id: int) -> Dict[str, Any]:
        """Delete a user with their issues and payments. Dependents go first."""
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        email = user.email
        try:
            issue_ids = self.issues.ids_by_submitter(email)
            payments_deleted = self.payments.delete_for_user(email, issue_ids)
            issues_deleted = self.issues.delete_by_submitter(email)
            deleted = self.users.delete(user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "User %s deleted with %s issue(s) and %s payment(s)",
            email, issues_deleted, payments_deleted,
        )
        return {
            "deletedCount": deleted,
            "issuesDeleted": issues_deleted,
            "paymentsDeleted": payments_deleted,
        }
