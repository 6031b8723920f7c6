import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.dependencies.services import get_reporting, get_user_accounts
from app.schemas.user import UserResponse
from app.services.reporting import Reporting
from app.services.user_accounts import UserAccounts

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user-stats/{email}")
def user_stats(email: str, accounts: UserAccounts = Depends(get_user_accounts)):
    return {"success": True, **accounts.user_stats(email)}


@router.get("/premium-users")
def premium_users(accounts: UserAccounts = Depends(get_user_accounts)):
    users = accounts.premium_users()
    return {"success": True, "count": len(users), "users": [UserResponse.model_validate(u) for u in users]}


@router.get("/users-by-role/{role}")
def users_by_role(role: str, accounts: UserAccounts = Depends(get_user_accounts)):
    users = accounts.users_by_role(role)
    return {"success": True, "count": len(users), "users": [UserResponse.model_validate(u) for u in users]}


@router.get("/staff-stats")
def staff_stats(reporting: Reporting = Depends(get_reporting)):
    stats = []
    for entry in reporting.staff_stats():
        staff = UserResponse.model_validate(entry.pop("staff")).model_dump()
        stats.append({**staff, **entry})
    return {"success": True, "count": len(stats), "staffStats": stats}


@router.get("/health")
def health(reporting: Reporting = Depends(get_reporting)):
    try:
        return reporting.health()
    except SQLAlchemyError as e:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "timestamp": datetime.utcnow().isoformat(), "error": str(e)},
        )


@router.get("/")
def root():
    return "Server is connecting."
