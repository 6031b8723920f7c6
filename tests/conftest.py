import itertools
import os
from typing import Dict, Optional

# Must be set before app.db.session builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import get_db
from app.dependencies.services import get_payment_gateway
from app.main import app
from app.models import Issue
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.entitlement_ledger import EntitlementLedger
from app.services.issue_lifecycle import IssueLifecycle
from app.services.payment_gateway import CheckoutSession, PaymentGateway
from app.services.reporting import Reporting
from app.services.user_accounts import UserAccounts


class FakeGateway(PaymentGateway):
    """In-memory checkout sessions. Tests flip sessions to paid with `pay()`."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.sessions: Dict[str, CheckoutSession] = {}
        self.created = []
        self._ids = itertools.count(1)

    def is_configured(self) -> bool:
        return self.configured

    def create_session(self, **params) -> CheckoutSession:
        session_id = f"cs_test_{next(self._ids)}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status="unpaid",
            currency="bdt",
            metadata=dict(params["metadata"]),
            customer_details={"email": params["customer_email"], "name": None},
        )
        self.sessions[session_id] = session
        self.created.append(params)
        return session

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        return self.sessions[session_id]

    def pay(self, session_id: str, payment_intent: Optional[str] = None) -> CheckoutSession:
        session = self.sessions[session_id]
        session.payment_status = "paid"
        session.payment_intent = payment_intent or f"pi_{session_id}"
        return session

    def add_paid_session(self, session_id: str, metadata: Dict[str, str]) -> CheckoutSession:
        """Register a paid session directly, bypassing checkout."""
        session = CheckoutSession(
            id=session_id,
            payment_status="paid",
            payment_intent=f"pi_{session_id}",
            currency="bdt",
            metadata=metadata,
        )
        self.sessions[session_id] = session
        return session


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def users(db):
    return UserRepository(db)


@pytest.fixture
def issues(db):
    return IssueRepository(db)


@pytest.fixture
def payments(db):
    return PaymentRepository(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lifecycle(db, users, issues, payments):
    return IssueLifecycle(db, users, issues, payments)


@pytest.fixture
def strict_lifecycle(db, users, issues, payments):
    return IssueLifecycle(db, users, issues, payments, strict_transitions=True)


@pytest.fixture
def ledger(db, users, issues, payments, gateway):
    return EntitlementLedger(db, users, issues, payments, gateway)


@pytest.fixture
def accounts(db, users, issues):
    return UserAccounts(db, users, issues)


@pytest.fixture
def reporting(users, issues, payments, gateway):
    return Reporting(users, issues, payments, gateway)


@pytest.fixture
def make_user(accounts, users, db):
    def _make(email="citizen@example.com", role="user", name=None, **fields):
        user = accounts.register_user({"email": email, "display_name": name or email.split("@")[0]})["user"]
        if role != "user":
            accounts.change_role(user.id, role)
        if fields:
            users.update_fields(user.id, **fields)
            db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_issue(lifecycle, issues):
    def _make(submitter_email, title="Broken streetlight", **data) -> Issue:
        result = lifecycle.create({"title": title, **data}, submitter_email)
        return issues.get(result["insertedId"])
    return _make


@pytest.fixture
def client(db, gateway):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
