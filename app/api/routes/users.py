from fastapi import APIRouter, Depends
from typing import Optional

from app.dependencies.services import get_issue_lifecycle, get_user_accounts
from app.schemas.user import PremiumGrant, RoleUpdate, UserCreate, UserResponse, UserUpdate
from app.services.issue_lifecycle import IssueLifecycle
from app.services.premium_expiry import effective_is_premium
from app.services.user_accounts import UserAccounts

router = APIRouter()


@router.post("")
def register_user(
    user_data: UserCreate,
    accounts: UserAccounts = Depends(get_user_accounts),
):
    """Sign up a citizen. Repeating the call for the same email is a no-op."""
    result = accounts.register_user(user_data.model_dump())
    if not result["created"]:
        return {"success": True, "message": "User already exists"}
    return {
        "success": True,
        "insertedId": result["user"].id,
        "message": "User created successfully",
    }


@router.get("")
def list_users(
    searchText: Optional[str] = None,
    role: Optional[str] = None,
    accounts: UserAccounts = Depends(get_user_accounts),
):
    users = accounts.list_users(search_text=searchText, role=role)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{email}")
def get_user_profile(email: str, accounts: UserAccounts = Depends(get_user_accounts)):
    """User record plus report quota. Corrects an expired premium flag."""
    profile = accounts.get_profile(email)
    user = UserResponse.model_validate(profile.pop("user")).model_dump()
    user["is_premium"] = profile["isPremium"]
    return {**user, **profile}


@router.patch("/{user_id}/role")
def change_role(
    user_id: int,
    body: RoleUpdate,
    accounts: UserAccounts = Depends(get_user_accounts),
):
    result = accounts.change_role(user_id, body.role)
    user = result["user"]
    return {
        "success": True,
        "message": f"User role updated to {body.role}",
        "modifiedCount": result["modifiedCount"],
        "user": {
            "id": user.id,
            "email": user.email,
            "displayName": user.display_name,
            "role": user.role,
            "isPremium": effective_is_premium(user),
        },
    }


@router.patch("/{email}/premium")
def grant_premium(
    email: str,
    body: PremiumGrant,
    accounts: UserAccounts = Depends(get_user_accounts),
):
    accounts.grant_premium(email, body.plan, body.expires_at, body.payment_id)
    return {"success": True, "message": "User premium status updated successfully"}


@router.patch("/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    accounts: UserAccounts = Depends(get_user_accounts),
):
    modified = accounts.update_user(user_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "User updated successfully", "modifiedCount": modified}


@router.delete("/{user_id}")
def delete_user(user_id: int, lifecycle: IssueLifecycle = Depends(get_issue_lifecycle)):
    """Delete a user together with their issues and payments."""
    result = lifecycle.delete_user(user_id)
    return {
        "success": True,
        "message": "User and all associated data deleted successfully",
        **result,
    }
