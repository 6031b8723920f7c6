"""
Report quota for citizens.

Staff and admins are never capped. Users with a non-expired premium plan are
never capped. Everyone else may submit up to their max_issues (seeded from
FREE_ISSUE_LIMIT at signup).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from app.core.plan_limits import FREE_ISSUE_LIMIT, UNCAPPED_ROLES, UNLIMITED
from app.services.premium_expiry import effective_is_premium


@dataclass(frozen=True)
class QuotaStatus:
    issue_count: int
    can_report_more: bool
    remaining_issues: Union[int, str]
    max_issues: Union[int, str]

    @property
    def unlimited(self) -> bool:
        return self.max_issues == UNLIMITED


def issue_cap_for(user) -> int:
    return user.max_issues if user.max_issues is not None else FREE_ISSUE_LIMIT


def evaluate_quota(user, issue_count: int, now: Optional[datetime] = None) -> QuotaStatus:
    """Compute the remaining report allowance. No side effects."""
    if user.role in UNCAPPED_ROLES or effective_is_premium(user, now):
        return QuotaStatus(
            issue_count=issue_count,
            can_report_more=True,
            remaining_issues=UNLIMITED,
            max_issues=UNLIMITED,
        )

    cap = issue_cap_for(user)
    return QuotaStatus(
        issue_count=issue_count,
        can_report_more=issue_count < cap,
        remaining_issues=max(0, cap - issue_count),
        max_issues=cap,
    )
