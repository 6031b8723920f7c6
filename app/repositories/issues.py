from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from app.models.issue import Issue


class IssueRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, issue_id: int, for_update: bool = False) -> Optional[Issue]:
        if for_update:
            # Serializes read-modify-write of the upvote list on PostgreSQL
            return self.db.get(Issue, issue_id, with_for_update=True, populate_existing=True)
        return self.db.get(Issue, issue_id)

    def add(self, issue: Issue) -> Issue:
        self.db.add(issue)
        self.db.flush()
        return issue

    def count_by_submitter(self, email: str) -> int:
        stmt = select(func.count()).select_from(Issue).where(Issue.submitted_by == email)
        return int(self.db.execute(stmt).scalar() or 0)

    def ids_by_submitter(self, email: str) -> List[int]:
        stmt = select(Issue.id).where(Issue.submitted_by == email)
        return list(self.db.execute(stmt).scalars().all())

    def list(
        self,
        email: Optional[str] = None,
        status: Optional[str] = None,
        district: Optional[str] = None,
    ) -> List[Issue]:
        """List issues, boosted first and then newest first."""
        stmt = select(Issue)
        if email:
            stmt = stmt.where(Issue.submitted_by == email)
        if status == "boosted":
            stmt = stmt.where(Issue.is_boosted.is_(True))
        elif status:
            stmt = stmt.where(Issue.status == status)
        if district:
            stmt = stmt.where(Issue.district == district)
        stmt = stmt.order_by(Issue.is_boosted.desc(), Issue.created_at.desc(), Issue.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def list_by_staff(self, staff_id: int) -> List[Issue]:
        stmt = select(Issue).where(Issue.assigned_staff_id == staff_id).order_by(Issue.id)
        return list(self.db.execute(stmt).scalars().all())

    def count(self, status: Optional[str] = None, staff_id: Optional[int] = None) -> int:
        stmt = select(func.count()).select_from(Issue)
        if status:
            stmt = stmt.where(Issue.status == status)
        if staff_id is not None:
            stmt = stmt.where(Issue.assigned_staff_id == staff_id)
        return int(self.db.execute(stmt).scalar() or 0)

    def update_fields(self, issue_id: int, **values) -> int:
        values.setdefault("updated_at", datetime.utcnow())
        result = self.db.execute(update(Issue).where(Issue.id == issue_id).values(**values))
        return result.rowcount

    def mark_boosted(self, issue_id: int, payment_id: Optional[int], boosted_at: datetime) -> int:
        result = self.db.execute(
            update(Issue)
            .where(Issue.id == issue_id)
            .values(
                is_boosted=True,
                boosted_at=boosted_at,
                boost_payment_id=payment_id,
                updated_at=boosted_at,
            )
        )
        return result.rowcount

    def delete(self, issue_id: int) -> int:
        result = self.db.execute(delete(Issue).where(Issue.id == issue_id))
        return result.rowcount

    def delete_by_submitter(self, email: str) -> int:
        result = self.db.execute(delete(Issue).where(Issue.submitted_by == email))
        return result.rowcount
