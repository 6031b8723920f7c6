from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ValidationError
from app.services.premium_expiry import (
    compute_premium_expiry,
    effective_is_premium,
    is_premium_expired,
    reconcile_premium_flag,
)

NOW = datetime(2026, 3, 15, 12, 0, 0)


def test_no_expiry_never_expires():
    assert not is_premium_expired(None, NOW)


def test_expiry_is_strictly_before_now():
    assert is_premium_expired(NOW - timedelta(microseconds=1), NOW)
    assert not is_premium_expired(NOW, NOW)
    assert not is_premium_expired(NOW + timedelta(days=1), NOW)


def test_effective_premium_ignores_stale_flag():
    user = SimpleNamespace(is_premium=True, premium_expires_at=NOW - timedelta(days=1))
    assert effective_is_premium(user, NOW) is False


def test_effective_premium_requires_flag():
    user = SimpleNamespace(is_premium=False, premium_expires_at=NOW + timedelta(days=1))
    assert effective_is_premium(user, NOW) is False


@pytest.mark.parametrize(
    "plan,start,expected",
    [
        ("monthly", datetime(2026, 3, 15, 9, 30), datetime(2026, 4, 15, 9, 30)),
        ("monthly", datetime(2026, 12, 20), datetime(2027, 1, 20)),
        ("monthly", datetime(2026, 1, 31), datetime(2026, 2, 28)),
        ("monthly", datetime(2028, 1, 31), datetime(2028, 2, 29)),
        ("yearly", datetime(2026, 3, 15, 9, 30), datetime(2027, 3, 15, 9, 30)),
        ("yearly", datetime(2028, 2, 29), datetime(2029, 2, 28)),
    ],
)
def test_plan_expiry_is_one_calendar_period(plan, start, expected):
    assert compute_premium_expiry(plan, start) == expected


def test_unknown_plan_is_rejected():
    with pytest.raises(ValidationError):
        compute_premium_expiry("weekly", NOW)


def test_reconcile_writes_back_expired_flag(make_user, users, db):
    user = make_user(is_premium=True, premium_plan="monthly", premium_expires_at=NOW - timedelta(days=2))

    assert reconcile_premium_flag(users, user, NOW) is False

    db.expire_all()
    assert users.get_by_email(user.email).is_premium is False


def test_reconcile_leaves_active_premium_alone(make_user, users):
    user = make_user(is_premium=True, premium_plan="monthly", premium_expires_at=NOW + timedelta(days=2))
    assert reconcile_premium_flag(users, user, NOW) is True
    assert users.get_by_email(user.email).is_premium is True


def test_reconcile_storage_failure_still_reports_corrected_value():
    repo = MagicMock()
    repo.clear_premium.side_effect = OperationalError("UPDATE users", {}, Exception("db down"))
    user = SimpleNamespace(email="a@example.com", is_premium=True, premium_expires_at=NOW - timedelta(days=1))

    assert reconcile_premium_flag(repo, user, NOW) is False
    repo.db.rollback.assert_called_once()
    repo.db.commit.assert_not_called()
