from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.entitlement_ledger import EntitlementLedger
from app.services.issue_lifecycle import IssueLifecycle
from app.services.payment_gateway import PaymentGateway, StripeGateway
from app.services.reporting import Reporting
from app.services.user_accounts import UserAccounts


def get_payment_gateway() -> PaymentGateway:
    """Stripe gateway built from STRIPE_SECRET_KEY. Overridden in tests."""
    return StripeGateway()


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_issue_repository(db: Session = Depends(get_db)) -> IssueRepository:
    return IssueRepository(db)


def get_payment_repository(db: Session = Depends(get_db)) -> PaymentRepository:
    return PaymentRepository(db)


def get_issue_lifecycle(
    db: Session = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
    issues: IssueRepository = Depends(get_issue_repository),
    payments: PaymentRepository = Depends(get_payment_repository),
) -> IssueLifecycle:
    return IssueLifecycle(db, users, issues, payments)


def get_entitlement_ledger(
    db: Session = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
    issues: IssueRepository = Depends(get_issue_repository),
    payments: PaymentRepository = Depends(get_payment_repository),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> EntitlementLedger:
    return EntitlementLedger(db, users, issues, payments, gateway)


def get_user_accounts(
    db: Session = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
    issues: IssueRepository = Depends(get_issue_repository),
) -> UserAccounts:
    return UserAccounts(db, users, issues)


def get_reporting(
    users: UserRepository = Depends(get_user_repository),
    issues: IssueRepository = Depends(get_issue_repository),
    payments: PaymentRepository = Depends(get_payment_repository),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> Reporting:
    return Reporting(users, issues, payments, gateway)
