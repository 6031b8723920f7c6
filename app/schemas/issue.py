from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    district: Optional[str] = None
    images: List[str] = []
    submitted_by: EmailStr = Field(alias="submittedBy")

    class Config:
        populate_by_name = True


class IssueUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    district: Optional[str] = None
    images: Optional[List[str]] = None


class StatusUpdate(BaseModel):
    status: str


class StaffAssign(BaseModel):
    staff_id: int = Field(alias="staffId")
    staff_email: Optional[str] = Field(None, alias="staffEmail")
    staff_name: Optional[str] = Field(None, alias="staffName")
    assigned_at: Optional[datetime] = Field(None, alias="assignedAt")

    class Config:
        populate_by_name = True


class BoostRequest(BaseModel):
    boost_payment_id: Optional[int] = Field(None, alias="boostPaymentId")

    class Config:
        populate_by_name = True


class UpvoteRequest(BaseModel):
    email: str


class IssueResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    district: Optional[str] = None
    images: List[str] = []
    submitted_by: str
    submitted_by_role: str
    status: str
    is_boosted: bool
    boosted_at: Optional[datetime] = None
    boost_payment_id: Optional[int] = None
    upvotes: int
    upvoted_by: List[str] = []
    assigned_staff_id: Optional[int] = None
    assigned_staff_email: Optional[str] = None
    assigned_staff_name: Optional[str] = None
    assigned_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
