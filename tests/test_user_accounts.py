from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import NotFoundError, ValidationError


def test_register_is_idempotent(accounts, users):
    first = accounts.register_user({"email": "citizen@example.com", "display_name": "Karim"})
    second = accounts.register_user({"email": "citizen@example.com", "display_name": "Someone else"})

    assert first["created"] and not second["created"]
    user = users.get_by_email("citizen@example.com")
    assert user.display_name == "Karim"
    assert user.role == "user"
    assert user.status == "active"
    assert user.is_premium is False
    assert user.premium_expires_at is None
    assert user.max_issues == 3
    assert users.count() == 1


def test_register_requires_email(accounts):
    with pytest.raises(ValidationError):
        accounts.register_user({"display_name": "Nobody"})


def test_list_users_filters(make_user, accounts):
    make_user("karim@example.com", name="Karim Uddin")
    make_user("staff@example.com", role="staff", name="Rahima")

    assert [u.email for u in accounts.list_users(search_text="KARIM")] == ["karim@example.com"]
    assert [u.email for u in accounts.list_users(role="staff")] == ["staff@example.com"]
    assert len(accounts.list_users(role="all")) == 2


@pytest.mark.parametrize("role,status", [("blocked", "inactive"), ("rejected", "inactive"), ("admin", "active")])
def test_change_role_derives_status(make_user, accounts, role, status):
    user = make_user()
    result = accounts.change_role(user.id, role)
    assert result["modifiedCount"] == 1
    assert result["user"].role == role
    assert result["user"].status == status


def test_change_role_rejects_unknown_role(make_user, accounts):
    user = make_user()
    with pytest.raises(ValidationError):
        accounts.change_role(user.id, "superuser")


def test_change_role_missing_user(accounts):
    with pytest.raises(NotFoundError):
        accounts.change_role(404, "staff")


def test_update_user_routes_role_through_status(make_user, accounts, users, db):
    user = make_user()
    accounts.update_user(user.id, {"display_name": "New Name", "role": "blocked", "is_premium": True})
    db.expire_all()
    user = users.get(user.id)
    assert user.display_name == "New Name"
    assert user.status == "inactive"
    assert user.is_premium is False


def test_profile_corrects_expired_premium(make_user, accounts, users, db):
    make_user(is_premium=True, premium_plan="monthly", premium_expires_at=datetime.utcnow() - timedelta(hours=1))

    profile = accounts.get_profile("citizen@example.com")

    assert profile["isPremium"] is False
    assert profile["remainingIssues"] == 3
    db.expire_all()
    assert users.get_by_email("citizen@example.com").is_premium is False


def test_user_stats_for_premium_user(make_user, make_issue, accounts):
    make_user(is_premium=True, premium_plan="yearly", premium_expires_at=datetime.utcnow() + timedelta(days=30))
    make_issue("citizen@example.com")

    stats = accounts.user_stats("citizen@example.com")

    assert stats["isPremium"] is True
    assert stats["issueCount"] == 1
    assert stats["maxIssues"] == "unlimited"
    assert stats["remainingIssues"] == "unlimited"
    assert stats["canReportMore"] is True


def test_user_stats_missing_user(accounts):
    with pytest.raises(NotFoundError):
        accounts.user_stats("ghost@example.com")


def test_grant_premium(make_user, accounts, users, db):
    make_user()
    expires = datetime.now(timezone.utc) + timedelta(days=30)

    accounts.grant_premium("citizen@example.com", "monthly", expires)

    db.expire_all()
    user = users.get_by_email("citizen@example.com")
    assert user.is_premium
    assert user.premium_expires_at == expires.replace(tzinfo=None)
    assert [u.email for u in accounts.premium_users()] == ["citizen@example.com"]


def test_grant_premium_rejects_backdated_expiry(make_user, accounts):
    make_user()
    with pytest.raises(ValidationError):
        accounts.grant_premium("citizen@example.com", "monthly", datetime.utcnow() - timedelta(days=1))


def test_grant_premium_missing_user(accounts):
    with pytest.raises(NotFoundError):
        accounts.grant_premium("ghost@example.com", "yearly", datetime.utcnow() + timedelta(days=1))


def test_premium_users_excludes_lapsed_plans(make_user, accounts):
    make_user("lapsed@example.com", is_premium=True, premium_plan="monthly",
              premium_expires_at=datetime.utcnow() - timedelta(days=2))
    make_user("active@example.com", is_premium=True, premium_plan="yearly",
              premium_expires_at=datetime.utcnow() + timedelta(days=30))
    make_user("free@example.com")

    assert [u.email for u in accounts.premium_users()] == ["active@example.com"]
