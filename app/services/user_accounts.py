"""
Account management: signup, lookups with quota numbers, role changes and
administrative premium grants.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.core.plan_limits import FREE_ISSUE_LIMIT, get_plan_duration
from app.models.user import User, UserRole, status_for_role
from app.repositories import IssueRepository, UserRepository
from app.services.premium_expiry import reconcile_premium_flag
from app.services.quota import evaluate_quota

logger = logging.getLogger(__name__)

VALID_ROLES = [r.value for r in UserRole]

PROFILE_FIELDS = ("display_name", "photo_url")


class UserAccounts:
    def __init__(self, db: Session, users: UserRepository, issues: IssueRepository):
        self.db = db
        self.users = users
        self.issues = issues

    def register_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a citizen account. Registering an existing email is a no-op."""
        email = data.get("email")
        if not email:
            raise ValidationError("Email is required")

        existing = self.users.get_by_email(email)
        if existing:
            return {"created": False, "user": existing}

        now = datetime.utcnow()
        user = User(
            email=email,
            display_name=data.get("display_name"),
            photo_url=data.get("photo_url"),
            role=UserRole.USER.value,
            status=status_for_role(UserRole.USER.value),
            is_premium=False,
            premium_expires_at=None,
            max_issues=FREE_ISSUE_LIMIT,
            created_at=now,
            updated_at=now,
        )
        self.users.add(user)
        self.db.commit()
        logger.info("Registered user %s", email)
        return {"created": True, "user": user}

    def list_users(self, search_text: Optional[str] = None, role: Optional[str] = None) -> List[User]:
        return self.users.list(search_text=search_text, role=role)

    def _require(self, email: str) -> User:
        user = self.users.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_profile(self, email: str) -> Dict[str, Any]:
        user = self._require(email)
        now = datetime.utcnow()
        is_premium = reconcile_premium_flag(self.users, user, now)
        quota = evaluate_quota(user, self.issues.count_by_submitter(email), now)
        return {
            "user": user,
            "isPremium": is_premium,
            "issueCount": quota.issue_count,
            "canReportMore": quota.can_report_more,
            "remainingIssues": quota.remaining_issues,
        }

    def user_stats(self, email: str) -> Dict[str, Any]:
        user = self._require(email)
        now = datetime.utcnow()
        is_premium = reconcile_premium_flag(self.users, user, now)
        quota = evaluate_quota(user, self.issues.count_by_submitter(email), now)
        return {
            "email": email,
            "isPremium": is_premium,
            "premiumExpiresAt": user.premium_expires_at,
            "issueCount": quota.issue_count,
            "maxIssues": quota.max_issues,
            "remainingIssues": quota.remaining_issues,
            "canReportMore": quota.can_report_more,
            "role": user.role,
            "status": user.status,
        }

    def change_role(self, user_id: int, role: Optional[str]) -> Dict[str, Any]:
        if role not in VALID_ROLES:
            raise ValidationError(f"Invalid role. Valid roles are: {', '.join(VALID_ROLES)}")

        matched = self.users.update_fields(user_id, role=role, status=status_for_role(role))
        if not matched:
            self.db.rollback()
            raise NotFoundError("User not found")
        self.db.commit()

        user = self.users.get(user_id)
        logger.info("User %s role -> %s", user.email, role)
        return {"modifiedCount": matched, "user": user}

    def update_user(self, user_id: int, fields: Dict[str, Any]) -> int:
        """Update profile fields. A role in `fields` goes through the role rules."""
        values = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        role = fields.get("role")
        if role is not None:
            if role not in VALID_ROLES:
                raise ValidationError(f"Invalid role. Valid roles are: {', '.join(VALID_ROLES)}")
            values["role"] = role
            values["status"] = status_for_role(role)

        matched = self.users.update_fields(user_id, **values)
        if not matched:
            self.db.rollback()
            raise NotFoundError("User not found")
        self.db.commit()
        return matched

    def grant_premium(
        self,
        email: str,
        plan: Optional[str],
        expires_at: Optional[datetime],
        payment_id: Optional[int] = None,
    ) -> int:
        """Manually set a premium entitlement, e.g. to correct a failed verify."""
        if not get_plan_duration(plan):
            raise ValidationError("Invalid plan. Valid plans are: monthly, yearly")
        if expires_at is None:
            raise ValidationError("Expiry date is required")
        if expires_at.tzinfo is not None:
            # Stored timestamps are naive UTC
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        if expires_at <= datetime.utcnow():
            raise ValidationError("Expiry date must be in the future")

        matched = self.users.apply_premium(email, plan, expires_at, payment_id)
        if not matched:
            self.db.rollback()
            raise NotFoundError("User not found")
        self.db.commit()
        logger.info("Premium (%s) granted to %s until %s", plan, email, expires_at.isoformat())
        return matched

    def premium_users(self) -> List[User]:
        """Users whose premium is currently in effect."""
        return self.users.list_premium(datetime.utcnow())

    def users_by_role(self, role: str) -> List[User]:
        return self.users.list(role=role)
