from typing import Iterable, List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.models.payment import Payment


class PaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, payment_id: int) -> Optional[Payment]:
        return self.db.get(Payment, payment_id)

    def get_by_session_id(self, session_id: str) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.stripe_session_id == session_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, payment: Payment) -> Payment:
        """Insert and flush. Raises IntegrityError on a duplicate session id."""
        self.db.add(payment)
        self.db.flush()
        return payment

    def list_by_email(self, email: str) -> List[Payment]:
        stmt = select(Payment).where(Payment.user_email == email).order_by(Payment.paid_at.desc(), Payment.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def count(self) -> int:
        return int(self.db.execute(select(func.count()).select_from(Payment)).scalar() or 0)

    def delete(self, payment_id: int) -> int:
        result = self.db.execute(delete(Payment).where(Payment.id == payment_id))
        return result.rowcount

    def delete_by_issue(self, issue_id: int) -> int:
        result = self.db.execute(delete(Payment).where(Payment.issue_id == issue_id))
        return result.rowcount

    def delete_for_user(self, email: str, issue_ids: Iterable[int] = ()) -> int:
        """Delete payments made by the user or tied to any of the given issues."""
        issue_ids = list(issue_ids)
        condition = Payment.user_email == email
        if issue_ids:
            condition = or_(condition, Payment.issue_id.in_(issue_ids))
        result = self.db.execute(delete(Payment).where(condition))
        return result.rowcount
