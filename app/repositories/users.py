"""
User storage. Single-row writes go through UPDATE statements and return the
number of matched rows, so callers can tell "not found" from "no change".
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, delete, func, literal, or_, select, update
from sqlalchemy.orm import Session

from app.models.staff_assignment import StaffAssignment
from app.models.user import User, UserRole


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str, for_update: bool = False) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        if for_update:
            # Serializes count-then-insert for the same submitter on PostgreSQL
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_staff(self, staff_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == staff_id, User.role == UserRole.STAFF.value)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def list(self, search_text: Optional[str] = None, role: Optional[str] = None) -> List[User]:
        stmt = select(User)
        if search_text:
            pattern = f"%{search_text.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.display_name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )
        if role and role != "all":
            stmt = stmt.where(User.role == role)
        return list(self.db.execute(stmt.order_by(User.id)).scalars().all())

    def list_premium(self, now: datetime) -> List[User]:
        stmt = (
            select(User)
            .where(
                User.is_premium.is_(True),
                or_(User.premium_expires_at.is_(None), User.premium_expires_at >= now),
            )
            .order_by(User.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def count(self, role: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(User)
        if role:
            stmt = stmt.where(User.role == role)
        return int(self.db.execute(stmt).scalar() or 0)

    def update_fields(self, user_id: int, **values) -> int:
        values["updated_at"] = datetime.utcnow()
        result = self.db.execute(update(User).where(User.id == user_id).values(**values))
        return result.rowcount

    def clear_premium(self, email: str) -> int:
        result = self.db.execute(
            update(User)
            .where(User.email == email)
            .values(is_premium=False, updated_at=datetime.utcnow())
        )
        return result.rowcount

    def apply_premium(self, email: str, plan: str, expires_at: datetime, payment_id: Optional[int]) -> int:
        """Grant premium. An existing later expiry is kept, never moved earlier."""
        later_expiry = case(
            (User.premium_expires_at > expires_at, User.premium_expires_at),
            else_=literal(expires_at, User.premium_expires_at.type),
        )
        result = self.db.execute(
            update(User)
            .where(User.email == email)
            .values(
                is_premium=True,
                premium_plan=plan,
                premium_expires_at=later_expiry,
                premium_payment_id=payment_id,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def increment_counters(self, staff_id: int, assigned: int = 0, resolved: int = 0, rejected: int = 0) -> int:
        result = self.db.execute(
            update(User)
            .where(User.id == staff_id)
            .values(
                assigned_issues_count=User.assigned_issues_count + assigned,
                resolved_issues_count=User.resolved_issues_count + resolved,
                rejected_issues_count=User.rejected_issues_count + rejected,
                updated_at=datetime.utcnow(),
            )
        )
        return result.rowcount

    def append_assignment(self, staff_id: int, issue_id: int, issue_title: Optional[str], assigned_at: datetime) -> StaffAssignment:
        entry = StaffAssignment(
            staff_id=staff_id,
            issue_id=issue_id,
            issue_title=issue_title,
            assigned_at=assigned_at,
            status="assigned",
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def update_assignment_status(self, staff_id: int, issue_id: int, status: str) -> int:
        result = self.db.execute(
            update(StaffAssignment)
            .where(StaffAssignment.staff_id == staff_id, StaffAssignment.issue_id == issue_id)
            .values(status=status)
        )
        return result.rowcount

    def assignments_for(self, staff_id: int) -> List[StaffAssignment]:
        stmt = select(StaffAssignment).where(StaffAssignment.staff_id == staff_id).order_by(StaffAssignment.id)
        return list(self.db.execute(stmt).scalars().all())

    def delete(self, user_id: int) -> int:
        self.db.execute(delete(StaffAssignment).where(StaffAssignment.staff_id == user_id))
        result = self.db.execute(delete(User).where(User.id == user_id))
        return result.rowcount
