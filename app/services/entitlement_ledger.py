"""
Entitlement ledger: turns paid checkout sessions into premium plans and
issue boosts.

Checkout writes nothing locally. The user email, plan or issue id, amount
and computed premium expiry are packed into the session metadata, so an
abandoned checkout leaves no row behind.

Verification is idempotent on the checkout session id:

    NEW --(gateway says paid)--> RECORDED --(entitlement applied)--> ENTITLED
                                 RECORDED --(entitlement matched 0 rows)--> NEW

The payment row and the entitlement are written in one transaction. If the
entitlement matches no user/issue the payment row is deleted again and the
caller gets a PersistenceError; verifying again later starts from NEW.
Once ENTITLED, every further verify returns the stored payment unchanged.
"""
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    GatewayNotConfiguredError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.issue import IssueStatus
from app.models.payment import Payment, PaymentType
from app.repositories import IssueRepository, PaymentRepository, UserRepository
from app.services.payment_gateway import CheckoutSession, PaymentGateway
from app.services.premium_expiry import compute_premium_expiry

logger = logging.getLogger(__name__)

SITE_DOMAIN = os.getenv("SITE_DOMAIN", "http://localhost:5173").rstrip("/")
APP_NAME = os.getenv("APP_NAME", "Urban Insight")


@dataclass
class VerificationResult:
    payment: Payment
    kind: str
    already_processed: bool = False
    expires_at: Optional[datetime] = None


def _parse_amount(raw) -> Decimal:
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Invalid payment amount")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    return amount


class EntitlementLedger:
    def __init__(
        self,
        db: Session,
        users: UserRepository,
        issues: IssueRepository,
        payments: PaymentRepository,
        gateway: PaymentGateway,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.users = users
        self.issues = issues
        self.payments = payments
        self.gateway = gateway
        self.clock = clock

    # --------------------------------------------------------------- checkout

    def create_premium_checkout(
        self,
        amount,
        user_email: Optional[str],
        user_name: Optional[str] = None,
        plan: str = "monthly",
    ) -> CheckoutSession:
        self._require_gateway()

        if not amount or not user_email:
            raise ValidationError("Missing required payment information")
        amount = _parse_amount(amount)

        user = self.users.get_by_email(user_email)
        if not user:
            raise NotFoundError("User not found")

        # Fixed now so the entitlement does not depend on when verify runs
        expires_at = compute_premium_expiry(plan, self.clock())

        session = self.gateway.create_session(
            product_name=f"{APP_NAME} Premium - {'Monthly' if plan == 'monthly' else 'Yearly'} Plan",
            description="Unlock unlimited issue reporting and premium features",
            amount=amount,
            customer_email=user_email,
            metadata={
                "userEmail": user_email,
                "userName": user_name or user.display_name or user_email,
                "type": PaymentType.PREMIUM.value,
                "plan": plan,
                "amount": str(amount),
                "expiresAt": expires_at.isoformat(),
            },
            success_url=f"{SITE_DOMAIN}/premium-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{SITE_DOMAIN}/premium-cancel",
            submit_message="You'll be redirected to complete your premium subscription",
        )
        logger.info("Premium checkout session %s created for %s (%s)", session.id, user_email, plan)
        return session

    def create_boost_checkout(
        self,
        amount,
        issue_id: Optional[int],
        user_email: Optional[str],
        issue_title: Optional[str] = None,
    ) -> CheckoutSession:
        self._require_gateway()

        if not amount or not issue_id or not user_email:
            raise ValidationError("Missing required payment information")
        amount = _parse_amount(amount)

        issue = self.issues.get(issue_id)
        if not issue:
            raise NotFoundError("Issue not found")
        if issue.is_boosted:
            raise ConflictError("This issue is already boosted")
        if issue.submitted_by != user_email:
            raise ForbiddenError("Only the issue owner can boost this issue")
        if issue.status != IssueStatus.PENDING.value:
            raise ConflictError("Only pending issues can be boosted")

        title = issue_title or issue.title
        session = self.gateway.create_session(
            product_name=f"Boost Issue: {title[:50]}",
            description="Priority boost for community issue visibility",
            amount=amount,
            customer_email=user_email,
            metadata={
                "issueId": str(issue.id),
                "issueTitle": title,
                "userEmail": user_email,
                "type": PaymentType.BOOST.value,
                "amount": str(amount),
            },
            success_url=f"{SITE_DOMAIN}/dashboard/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{SITE_DOMAIN}/dashboard/payment-cancelled",
            images=(issue.images or [])[:1],
            submit_message="You'll be redirected to complete your payment securely",
        )
        logger.info("Boost checkout session %s created for issue %s", session.id, issue.id)
        return session

    # ----------------------------------------------------------- verification

    def verify(self, session_id: Optional[str]) -> VerificationResult:
        """
        Reconcile a checkout session into a payment row and its entitlement.
        Safe to call any number of times, concurrently, for the same session.
        """
        self._require_gateway()
        if not session_id:
            raise ValidationError("Session ID is required")

        session = self.gateway.retrieve_session(session_id)
        if not session.is_paid:
            raise ValidationError("Payment not completed")

        existing = self.payments.get_by_session_id(session_id)
        if existing:
            logger.info("Checkout session %s already processed as payment %s", session_id, existing.id)
            return self._already_processed(existing)

        metadata = session.metadata or {}
        kind = metadata.get("type")
        if kind == PaymentType.PREMIUM.value:
            return self._record_premium(session, metadata)
        if kind == PaymentType.BOOST.value:
            return self._record_boost(session, metadata)
        raise ValidationError("Checkout session has no recognised payment type")

    def _record_premium(self, session: CheckoutSession, metadata) -> VerificationResult:
        user_email = metadata.get("userEmail")
        plan = metadata.get("plan")
        if not user_email or not plan or not metadata.get("expiresAt"):
            raise ValidationError("Checkout session is missing premium metadata")
        try:
            expires_at = datetime.fromisoformat(metadata["expiresAt"])
        except ValueError:
            raise ValidationError("Checkout session has an invalid premium expiry")

        payment = self._payment_from_session(session, metadata)
        payment.user_name = metadata.get("userName")
        payment.plan = plan

        recorded = self._insert_payment(payment)
        if recorded is not None:
            return recorded

        try:
            matched = self.users.apply_premium(user_email, plan, expires_at, payment.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Premium entitlement write failed for session %s", session.id)
            raise PersistenceError("Failed to update user premium status") from e
        if not matched:
            self._compensate(payment, f"no user with email {user_email}")
            raise PersistenceError("Failed to update user premium status")

        self.db.commit()
        # A longer plan already held keeps its expiry
        expires_at = self.users.get_by_email(user_email).premium_expires_at
        logger.info("User %s upgraded to premium (%s) until %s", user_email, plan, expires_at.isoformat())
        return VerificationResult(payment=payment, kind=PaymentType.PREMIUM.value, expires_at=expires_at)

    def _record_boost(self, session: CheckoutSession, metadata) -> VerificationResult:
        try:
            issue_id = int(metadata.get("issueId"))
        except (TypeError, ValueError):
            raise ValidationError("Checkout session is missing boost metadata")

        payment = self._payment_from_session(session, metadata)
        payment.issue_id = issue_id
        payment.issue_title = metadata.get("issueTitle")

        recorded = self._insert_payment(payment)
        if recorded is not None:
            return recorded

        try:
            matched = self.issues.mark_boosted(issue_id, payment.id, self.clock())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Boost entitlement write failed for session %s", session.id)
            raise PersistenceError("Failed to update issue status") from e
        if not matched:
            self._compensate(payment, f"no issue with id {issue_id}")
            raise PersistenceError("Failed to update issue status")

        self.db.commit()
        logger.info("Issue %s boosted by payment %s", issue_id, payment.id)
        return VerificationResult(payment=payment, kind=PaymentType.BOOST.value)

    # ---------------------------------------------------------------- helpers

    def _require_gateway(self) -> None:
        if not self.gateway.is_configured():
            raise GatewayNotConfiguredError("Stripe payment service is not configured.")

    def _payment_from_session(self, session: CheckoutSession, metadata) -> Payment:
        if not metadata.get("userEmail"):
            raise ValidationError("Checkout session is missing the payer email")
        return Payment(
            stripe_session_id=session.id,
            transaction_id=session.payment_intent,
            amount=_parse_amount(metadata.get("amount")),
            currency=session.currency or "",
            user_email=metadata["userEmail"],
            type=metadata["type"],
            status="completed",
            paid_at=self.clock(),
            customer_details=dict(session.customer_details or {}),
        )

    def _insert_payment(self, payment: Payment) -> Optional[VerificationResult]:
        """
        Insert the payment row. Returns None when this call owns the session,
        or the stored result when a concurrent verify inserted it first.
        """
        try:
            self.payments.add(payment)
        except IntegrityError:
            self.db.rollback()
            existing = self.payments.get_by_session_id(payment.stripe_session_id)
            if existing is None:
                raise PersistenceError("Failed to record payment")
            logger.info("Concurrent verify already recorded session %s", payment.stripe_session_id)
            return self._already_processed(existing)
        return None

    def _already_processed(self, payment: Payment) -> VerificationResult:
        expires_at = None
        if payment.type == PaymentType.PREMIUM.value:
            user = self.users.get_by_email(payment.user_email)
            if user and user.premium_payment_id == payment.id:
                expires_at = user.premium_expires_at
        return VerificationResult(
            payment=payment,
            kind=payment.type,
            already_processed=True,
            expires_at=expires_at,
        )

    def _compensate(self, payment: Payment, reason: str) -> None:
        """Remove a payment row whose entitlement could not be applied."""
        session_id = payment.stripe_session_id
        try:
            self.payments.delete(payment.id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Compensation for session %s fell back to rollback", session_id)
        logger.warning("Compensated payment for session %s: %s", session_id, reason)
