"""
Premium subscription expiry.

Expiry is detected when a user record is read (profile, stats, issue
creation). There is no background sweep: a stale is_premium flag stays in
storage until the next read of that user corrects it.
"""
import logging
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import ValidationError
from app.core.plan_limits import PREMIUM_PLANS, get_plan_duration

logger = logging.getLogger(__name__)


def is_premium_expired(premium_expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when an expiry is set and lies in the past."""
    if premium_expires_at is None:
        return False
    return premium_expires_at < (now or datetime.utcnow())


def effective_is_premium(user, now: Optional[datetime] = None) -> bool:
    """The premium status to report: the stored flag, unless it has expired."""
    return bool(user.is_premium) and not is_premium_expired(user.premium_expires_at, now)


def compute_premium_expiry(plan: str, start: datetime) -> datetime:
    """
    Expiry for a plan bought at `start`: one calendar month for monthly,
    one calendar year for yearly. Month ends clamp (Jan 31 -> Feb 28/29).
    """
    duration = get_plan_duration(plan)
    if not duration:
        raise ValidationError(
            f"Invalid plan. Valid plans are: {', '.join(PREMIUM_PLANS)}"
        )
    return start + relativedelta(months=duration["months"], years=duration["years"])


def reconcile_premium_flag(users, user, now: Optional[datetime] = None) -> bool:
    """
    Return the effective premium status for `user` and, if the stored flag is
    still true after expiry, write is_premium=false back.

    The write is best-effort: a storage failure is logged and the read still
    reports the corrected value.
    """
    effective = effective_is_premium(user, now)
    if user.is_premium and not effective:
        try:
            users.clear_premium(user.email)
            users.db.commit()
            logger.info("Premium expired for %s; cleared stored flag", user.email)
        except SQLAlchemyError:
            users.db.rollback()
            logger.exception("Failed to clear expired premium flag for %s", user.email)
    return effective
