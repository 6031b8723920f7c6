from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON
from datetime import datetime
from app.db.base import Base


class PaymentType(str, Enum):
    PREMIUM = "premium"
    BOOST = "boost"


class Payment(Base):
    """
    One row per completed checkout session.

    Rows are written only after the gateway reports the session as paid,
    so there are no pending or failed payments. stripe_session_id is the
    idempotency key for verification.
    """

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    stripe_session_id = Column(String, nullable=False, unique=True, index=True)
    transaction_id = Column(String, nullable=True)  # Gateway payment intent

    # Amount in major units (e.g. 499.00 BDT)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False)

    user_email = Column(String, nullable=False, index=True)
    user_name = Column(String, nullable=True)
    type = Column(String, nullable=False)
    plan = Column(String, nullable=True)  # Premium only
    issue_id = Column(Integer, nullable=True, index=True)  # Boost only
    issue_title = Column(String, nullable=True)

    status = Column(String, nullable=False, default="completed")
    paid_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    customer_details = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<Payment(id={self.id}, type={self.type}, session={self.stripe_session_id})>"
