from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import List, Optional
from datetime import datetime

from app.services.premium_expiry import is_premium_expired


class UserCreate(BaseModel):
    email: EmailStr
    display_name: Optional[str] = Field(None, alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")

    class Config:
        populate_by_name = True


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(None, alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: Optional[str] = None

    class Config:
        populate_by_name = True


class RoleUpdate(BaseModel):
    role: str


class PremiumGrant(BaseModel):
    plan: str
    expires_at: datetime = Field(alias="expiresAt")
    payment_id: Optional[int] = Field(None, alias="paymentId")

    class Config:
        populate_by_name = True


class AssignmentEntry(BaseModel):
    issue_id: int
    issue_title: Optional[str] = None
    assigned_at: datetime
    status: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: str
    status: str
    is_premium: bool
    premium_plan: Optional[str] = None
    premium_expires_at: Optional[datetime] = None
    premium_payment_id: Optional[int] = None
    max_issues: int
    assigned_issues_count: int = 0
    resolved_issues_count: int = 0
    rejected_issues_count: int = 0
    assigned_issues: List[AssignmentEntry] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def report_effective_premium(self):
        # A lapsed flag stays stored until the next profile read clears it
        if is_premium_expired(self.premium_expires_at):
            self.is_premium = False
        return self
