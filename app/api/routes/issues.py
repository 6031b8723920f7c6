from fastapi import APIRouter, Depends
from typing import Optional

from app.dependencies.services import get_issue_lifecycle
from app.schemas.issue import (
    BoostRequest,
    IssueCreate,
    IssueResponse,
    IssueUpdate,
    StaffAssign,
    StatusUpdate,
    UpvoteRequest,
)
from app.services.issue_lifecycle import IssueLifecycle

router = APIRouter()


@router.get("")
def list_issues(
    email: Optional[str] = None,
    status: Optional[str] = None,
    district: Optional[str] = None,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    """All issues, boosted first then newest. status=boosted lists boosted issues only."""
    issues = lifecycle.list_issues(email=email, status=status, district=district)
    return [IssueResponse.model_validate(i) for i in issues]


@router.get("/{issue_id}")
def get_issue(issue_id: int, lifecycle: IssueLifecycle = Depends(get_issue_lifecycle)):
    return IssueResponse.model_validate(lifecycle.get_issue(issue_id))


@router.post("")
def create_issue(body: IssueCreate, lifecycle: IssueLifecycle = Depends(get_issue_lifecycle)):
    data = body.model_dump(exclude={"submitted_by"})
    result = lifecycle.create(data, body.submitted_by)
    return {"success": True, **result}


@router.patch("/{issue_id}/status")
def update_status(
    issue_id: int,
    body: StatusUpdate,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    result = lifecycle.update_status(issue_id, body.status)
    return {"success": True, "message": f"Issue status updated to {body.status}", **result}


@router.patch("/{issue_id}/assign-staff")
def assign_staff(
    issue_id: int,
    body: StaffAssign,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    result = lifecycle.assign_staff(
        issue_id,
        body.staff_id,
        staff_email=body.staff_email,
        staff_name=body.staff_name,
        assigned_at=body.assigned_at,
    )
    return {"success": True, "message": "Staff assigned successfully", **result}


@router.patch("/{issue_id}/boost")
def boost_issue(
    issue_id: int,
    body: BoostRequest,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    result = lifecycle.boost(issue_id, body.boost_payment_id)
    return {"success": True, "message": "Issue boosted successfully", **result}


@router.patch("/{issue_id}/upvote")
def toggle_upvote(
    issue_id: int,
    body: UpvoteRequest,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    return {"success": True, **lifecycle.toggle_upvote(issue_id, body.email)}


@router.patch("/{issue_id}")
def update_issue(
    issue_id: int,
    body: IssueUpdate,
    lifecycle: IssueLifecycle = Depends(get_issue_lifecycle),
):
    modified = lifecycle.update_issue(issue_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Issue updated successfully", "modifiedCount": modified}


@router.delete("/{issue_id}")
def delete_issue(issue_id: int, lifecycle: IssueLifecycle = Depends(get_issue_lifecycle)):
    """Delete an issue and the payments tied to it."""
    result = lifecycle.delete(issue_id)
    return {"success": True, "message": "Issue deleted successfully", **result}
