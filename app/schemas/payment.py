from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal


class PremiumCheckoutRequest(BaseModel):
    amount: Optional[Decimal] = None
    user_email: Optional[str] = Field(None, alias="userEmail")
    user_name: Optional[str] = Field(None, alias="userName")
    plan: str = "monthly"

    class Config:
        populate_by_name = True


class BoostCheckoutRequest(BaseModel):
    amount: Optional[Decimal] = None
    issue_id: Optional[int] = Field(None, alias="issueId")
    issue_title: Optional[str] = Field(None, alias="issueTitle")
    user_email: Optional[str] = Field(None, alias="userEmail")

    class Config:
        populate_by_name = True


class PaymentResponse(BaseModel):
    id: int
    stripe_session_id: str
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str
    user_email: str
    user_name: Optional[str] = None
    type: str
    plan: Optional[str] = None
    issue_id: Optional[int] = None
    issue_title: Optional[str] = None
    status: str
    paid_at: datetime
    customer_details: Dict[str, Any] = {}

    class Config:
        from_attributes = True
