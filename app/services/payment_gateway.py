"""
Stripe Checkout gateway.

The ledger only needs two calls from the gateway: create a checkout session
and retrieve a session by id. Everything needed to reconcile a payment later
travels in the session metadata, so nothing is stored locally at checkout.
"""
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import stripe

from app.core.errors import ExternalServiceError, GatewayNotConfiguredError, NotFoundError

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "").strip()
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "bdt")
STRIPE_ALLOWED_COUNTRIES = [c.strip() for c in os.getenv("STRIPE_ALLOWED_COUNTRIES", "BD").split(",") if c.strip()]


@dataclass
class CheckoutSession:
    """Gateway-neutral view of a checkout session."""
    id: str
    url: Optional[str] = None
    payment_status: str = "unpaid"
    payment_intent: Optional[str] = None
    currency: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    customer_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class PaymentGateway(ABC):
    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    def create_session(
        self,
        *,
        product_name: str,
        description: str,
        amount: Decimal,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        images: Optional[List[str]] = None,
        submit_message: Optional[str] = None,
    ) -> CheckoutSession:
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> CheckoutSession:
        ...


def _plain(obj) -> Dict[str, Any]:
    """Turn a StripeObject (or None) into a plain dict."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _to_checkout_session(session) -> CheckoutSession:
    payment_intent = getattr(session, "payment_intent", None)
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = payment_intent.id
    details = _plain(getattr(session, "customer_details", None))
    return CheckoutSession(
        id=session.id,
        url=getattr(session, "url", None),
        payment_status=getattr(session, "payment_status", None) or "unpaid",
        payment_intent=payment_intent,
        currency=getattr(session, "currency", None),
        metadata={k: str(v) for k, v in _plain(getattr(session, "metadata", None)).items()},
        customer_details={"email": details.get("email"), "name": details.get("name")},
    )


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: Optional[str] = None, currency: str = STRIPE_CURRENCY):
        self.api_key = api_key if api_key is not None else STRIPE_SECRET_KEY
        self.currency = currency

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _require_configured(self) -> None:
        if not self.is_configured():
            logger.error("STRIPE_SECRET_KEY is not set; payment gateway unavailable")
            raise GatewayNotConfiguredError("Stripe payment service is not configured.")

    def create_session(
        self,
        *,
        product_name: str,
        description: str,
        amount: Decimal,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        images: Optional[List[str]] = None,
        submit_message: Optional[str] = None,
    ) -> CheckoutSession:
        self._require_configured()
        params: Dict[str, Any] = {
            "api_key": self.api_key,
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {
                            "name": product_name,
                            "description": description,
                            "images": images or [],
                        },
                        # Stripe expects minor units
                        "unit_amount": int((Decimal(amount) * 100).quantize(Decimal("1"))),
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "metadata": metadata,
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "billing_address_collection": "required",
            "shipping_address_collection": {"allowed_countries": STRIPE_ALLOWED_COUNTRIES},
        }
        if submit_message:
            params["custom_text"] = {"submit": {"message": submit_message}}

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error("Stripe error creating checkout session: %s", e)
            raise ExternalServiceError(f"Failed to create checkout session: {e}") from e
        return _to_checkout_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        self._require_configured()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            logger.warning("Unknown checkout session %s: %s", session_id, e)
            raise NotFoundError("Checkout session not found") from e
        except stripe.StripeError as e:
            logger.error("Stripe error retrieving checkout session %s: %s", session_id, e)
            raise ExternalServiceError(f"Failed to verify checkout session: {e}") from e
        return _to_checkout_session(session)
