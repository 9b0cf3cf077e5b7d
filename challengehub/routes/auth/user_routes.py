from fastapi import APIRouter, Depends, Query
from typing import Optional

from challengehub.routes.auth.dependencies import get_current_user, get_store
from challengehub.services.auth.user import UserService
from challengehub.services.challenge.audit import AuditService
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ChallengeHubError
from challengehub.utils.response import success_response, unauthorized_response, service_error_response

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
async def list_users(store: RecordStore = Depends(get_store)):
    """List all users"""
    user_service = UserService(store)
    users = await user_service.list_users()
    
    return success_response(
        message="Users retrieved successfully",
        data={"users": users, "total": len(users)}
    )


@router.get("/me")
async def get_me(current_user: Optional[dict] = Depends(get_current_user)):
    """Get the calling user's profile"""
    if not current_user:
        return unauthorized_response()
    
    return success_response(
        message="User retrieved successfully",
        data={"user": current_user}
    )


@router.get("/{username}")
async def get_user_data(
    username: str,
    store: RecordStore = Depends(get_store)
):
    """Get a user with all acceptances, submissions and reviews"""
    user_service = UserService(store)
    
    try:
        data = await user_service.get_user_data(username)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="User data retrieved successfully",
        data=data
    )


@router.get("/{username}/points")
async def get_points_history(
    username: str,
    store: RecordStore = Depends(get_store)
):
    """Get a user's points ledger, newest first"""
    user_service = UserService(store)
    
    try:
        history = await user_service.get_points_history(username)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Points history retrieved successfully",
        data=history
    )


@router.get("/{username}/activity")
async def get_user_activity(
    username: str,
    limit: int = Query(100, ge=1, le=500),
    store: RecordStore = Depends(get_store)
):
    """Audit entries recorded for a user's actions"""
    audit_service = AuditService(store)
    actions = await audit_service.get_user_actions(username, limit=limit)
    
    return success_response(
        message="User activity retrieved successfully",
        data={"activity": actions, "total": len(actions)}
    )
