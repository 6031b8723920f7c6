from app.repositories.users import UserRepository
from app.repositories.issues import IssueRepository
from app.repositories.payments import PaymentRepository

__all__ = ["UserRepository", "IssueRepository", "PaymentRepository"]
