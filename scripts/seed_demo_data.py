#!/usr/bin/env python3
"""
Demo data seeder for local development.

Connects to DATABASE_URL and seeds:
  - one admin and N staff accounts
  - N citizen accounts, each with up to the free report limit of issues
  - a few issues assigned to staff, one of them resolved

Goes through the same services the API uses, so quota and lifecycle rules
apply. Run from project root:
  python scripts/seed_demo_data.py
  python scripts/seed_demo_data.py --citizens 10 --staff 3 --district Dhaka

Re-running is safe for accounts (signup is idempotent); issues are only
added while a citizen still has quota left.
"""

from __future__ import annotations

import argparse
import os
import random
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv(project_root / ".env")

_database_url = os.getenv("DATABASE_URL")
if _database_url and _database_url.startswith("postgres://"):
    os.environ["DATABASE_URL"] = "postgresql://" + _database_url[10:]

from app.core.errors import ConflictError
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.user import UserRole
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.issue_lifecycle import IssueLifecycle
from app.services.user_accounts import UserAccounts

CATEGORIES = ("Road", "Streetlight", "Water", "Garbage", "Drainage")
SAMPLE_TITLES = (
    "Broken streetlight near the market",
    "Pothole on the main road",
    "Overflowing garbage bin",
    "Water pipe leaking on the footpath",
    "Blocked drain after rain",
)


def ensure_account(accounts: UserAccounts, email: str, name: str, role: str):
    result = accounts.register_user({"email": email, "display_name": name})
    user = result["user"]
    if user.role != role:
        accounts.change_role(user.id, role)
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo users and issues for local development.")
    parser.add_argument("--citizens", type=int, default=5, help="Number of citizen accounts")
    parser.add_argument("--staff", type=int, default=2, help="Number of staff accounts")
    parser.add_argument("--district", type=str, default="Dhaka", help="District for seeded issues")
    parser.add_argument("--domain", type=str, default="example.com", help="Email domain for seeded accounts")
    args = parser.parse_args()

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL not set. Add it to .env or export it.")
        sys.exit(1)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        users, issues, payments = UserRepository(db), IssueRepository(db), PaymentRepository(db)
        accounts = UserAccounts(db, users, issues)
        lifecycle = IssueLifecycle(db, users, issues, payments)

        ensure_account(accounts, f"admin@{args.domain}", "Demo Admin", UserRole.ADMIN.value)
        staff = [
            ensure_account(accounts, f"staff{i}@{args.domain}", f"Staff {i}", UserRole.STAFF.value)
            for i in range(1, args.staff + 1)
        ]
        print(f"Seeded admin and {len(staff)} staff account(s)")

        created = []
        for i in range(1, args.citizens + 1):
            email = f"citizen{i}@{args.domain}"
            ensure_account(accounts, email, f"Citizen {i}", UserRole.USER.value)
            for title in random.sample(SAMPLE_TITLES, 3):
                try:
                    result = lifecycle.create(
                        {
                            "title": title,
                            "description": f"{title}. Reported for demo purposes.",
                            "category": random.choice(CATEGORIES),
                            "location": f"Ward {random.randint(1, 30)}",
                            "district": args.district,
                            "images": [],
                        },
                        email,
                    )
                except ConflictError:
                    print(f"  {email} has no quota left, skipping")
                    break
                created.append(result["insertedId"])
        print(f"Seeded {len(created)} issue(s)")

        if staff and created:
            for issue_id in created[: len(staff) * 2]:
                lifecycle.assign_staff(issue_id, random.choice(staff).id)
            lifecycle.update_status(created[0], "in-progress")
            lifecycle.update_status(created[0], "resolved")
            print("Assigned issues to staff and resolved one")

        print("\nDone. Demo data seeded successfully.")
    except Exception as e:
        db.rollback()
        print(f"ERROR: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
