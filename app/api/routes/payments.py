"""
Stripe Checkout routes for premium plans and issue boosts.

Both verify endpoints run the same reconciliation; the entitlement kind is
read from the checkout session, not from the path.
"""
from fastapi import APIRouter, Depends
from typing import Optional

from app.dependencies.services import get_entitlement_ledger, get_reporting
from app.models.payment import PaymentType
from app.schemas.payment import BoostCheckoutRequest, PaymentResponse, PremiumCheckoutRequest
from app.services.entitlement_ledger import EntitlementLedger, VerificationResult
from app.services.reporting import Reporting

router = APIRouter()


def _verification_response(result: VerificationResult) -> dict:
    body = {
        "success": True,
        "payment": PaymentResponse.model_validate(result.payment),
        "alreadyProcessed": result.already_processed,
    }
    if result.kind == PaymentType.PREMIUM.value:
        body["message"] = "Payment verified and user upgraded to premium successfully"
        body["userUpdated"] = True
        body["expiresAt"] = result.expires_at
    else:
        body["message"] = "Payment verified and issue boosted successfully"
        body["issueUpdated"] = True
    if result.already_processed:
        body["message"] = "Payment already processed"
    return body


@router.post("/create-premium-payment")
def create_premium_payment(
    body: PremiumCheckoutRequest,
    ledger: EntitlementLedger = Depends(get_entitlement_ledger),
):
    session = ledger.create_premium_checkout(
        body.amount, body.user_email, user_name=body.user_name, plan=body.plan
    )
    return {"success": True, "url": session.url, "sessionId": session.id}


@router.get("/premium-verify")
def premium_verify(
    session_id: Optional[str] = None,
    ledger: EntitlementLedger = Depends(get_entitlement_ledger),
):
    return _verification_response(ledger.verify(session_id))


@router.post("/create-boost-payment")
def create_boost_payment(
    body: BoostCheckoutRequest,
    ledger: EntitlementLedger = Depends(get_entitlement_ledger),
):
    session = ledger.create_boost_checkout(
        body.amount, body.issue_id, body.user_email, issue_title=body.issue_title
    )
    return {"success": True, "url": session.url, "sessionId": session.id}


@router.get("/payment-verify")
def payment_verify(
    session_id: Optional[str] = None,
    ledger: EntitlementLedger = Depends(get_entitlement_ledger),
):
    return _verification_response(ledger.verify(session_id))


@router.get("/payments")
def payment_history(email: Optional[str] = None, reporting: Reporting = Depends(get_reporting)):
    payments = reporting.payment_history(email)
    return {
        "success": True,
        "payments": [PaymentResponse.model_validate(p) for p in payments],
        "count": len(payments),
    }


@router.get("/payments/{payment_id}")
def get_payment(payment_id: int, reporting: Reporting = Depends(get_reporting)):
    return {"success": True, "payment": PaymentResponse.model_validate(reporting.get_payment(payment_id))}
