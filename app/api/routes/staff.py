from fastapi import APIRouter, Depends

from app.dependencies.services import get_issue_lifecycle
from app.schemas.issue import IssueResponse
from app.services.issue_lifecycle import IssueLifecycle

router = APIRouter()


@router.get("/{staff_id}/issues")
def staff_issues(staff_id: int, lifecycle: IssueLifecycle = Depends(get_issue_lifecycle)):
    """Issues currently assigned to a staff member."""
    issues = lifecycle.staff_issues(staff_id)
    return {
        "success": True,
        "count": len(issues),
        "issues": [IssueResponse.model_validate(i) for i in issues],
    }
