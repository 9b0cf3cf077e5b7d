from fastapi import APIRouter, Depends, Query
from typing import Optional

from challengehub.models.challenge.acceptance import AcceptChallengeRequest
from challengehub.models.challenge.challenge import ChallengeCreate, ChallengeUpdate, ChallengeStatus
from challengehub.routes.auth.dependencies import get_current_user, get_store
from challengehub.services.challenge.acceptance import AcceptanceService
from challengehub.services.challenge.audit import AuditService
from challengehub.services.challenge.challenge import ChallengeService
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ChallengeHubError
from challengehub.utils.response import success_response, unauthorized_response, service_error_response

router = APIRouter(prefix="/challenges", tags=["Challenges"])


@router.get("")
async def list_challenges(
    status: Optional[ChallengeStatus] = Query(None),
    store: RecordStore = Depends(get_store)
):
    """
    List challenges, newest first.
    
    - Optional status filter (Open, Pending Approval, Closed, Draft)
    """
    challenge_service = ChallengeService(store)
    challenges = await challenge_service.list_challenges(status=status)
    
    return success_response(
        message="Challenges retrieved successfully",
        data={"challenges": challenges, "total": len(challenges)}
    )


@router.post("")
async def create_challenge(
    challenge_data: ChallengeCreate,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Create a new challenge.
    
    - Employees: challenge waits for management approval
    - Management/Admin: challenge opens immediately
    """
    if not current_user:
        return unauthorized_response()
    
    challenge_service = ChallengeService(store)
    
    try:
        challenge = await challenge_service.create_challenge(challenge_data, current_user)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge created successfully",
        data={"challenge": challenge},
        status_code=201
    )


@router.post("/accept")
async def accept_challenge(
    request: AcceptChallengeRequest,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Accept a challenge.
    
    - Committed date must be tomorrow or later
    - Only one active challenge per user
    - Challenge must be open
    """
    if not current_user:
        return unauthorized_response()
    
    acceptance_service = AcceptanceService(store)
    
    try:
        acceptance = await acceptance_service.accept_challenge(
            username=current_user["username"],
            challenge_id=request.challenge_id,
            committed_date=request.committed_date
        )
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge accepted successfully",
        data={"acceptance": acceptance},
        status_code=201
    )


@router.delete("/accept/{acceptance_id}")
async def withdraw_challenge(
    acceptance_id: str,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Withdraw from an accepted challenge (before submitting)"""
    if not current_user:
        return unauthorized_response()
    
    acceptance_service = AcceptanceService(store)
    
    try:
        acceptance = await acceptance_service.withdraw_challenge(current_user["username"], acceptance_id)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge withdrawn successfully",
        data={"acceptance": acceptance}
    )


@router.get("/acceptances/{username}")
async def get_user_acceptances(
    username: str,
    store: RecordStore = Depends(get_store)
):
    """Get a user's acceptances with their resolved statuses"""
    acceptance_service = AcceptanceService(store)
    acceptances = await acceptance_service.list_user_acceptances(username)
    
    return success_response(
        message="Acceptances retrieved successfully",
        data={"acceptances": acceptances, "total": len(acceptances)}
    )


@router.get("/{challenge_id}")
async def get_challenge(
    challenge_id: str,
    store: RecordStore = Depends(get_store)
):
    """Get a specific challenge"""
    challenge_service = ChallengeService(store)
    
    try:
        challenge = await challenge_service.get_challenge(challenge_id)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge retrieved successfully",
        data={"challenge": challenge}
    )


@router.patch("/{challenge_id}")
async def update_challenge(
    challenge_id: str,
    update_data: ChallengeUpdate,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Edit a challenge.
    
    - Management/Admin or the creator
    - Not allowed once closed
    """
    if not current_user:
        return unauthorized_response()
    
    challenge_service = ChallengeService(store)
    
    try:
        challenge = await challenge_service.update_challenge(challenge_id, update_data, current_user)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge updated successfully",
        data={"challenge": challenge}
    )


@router.post("/{challenge_id}/approve")
async def approve_challenge(
    challenge_id: str,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Approve an employee-proposed challenge (Management/Admin only)"""
    if not current_user:
        return unauthorized_response()
    
    challenge_service = ChallengeService(store)
    
    try:
        challenge = await challenge_service.approve_challenge(challenge_id, current_user)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge approved successfully",
        data={"challenge": challenge}
    )


@router.post("/{challenge_id}/close")
async def close_challenge(
    challenge_id: str,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Close a challenge (Management/Admin only). Challenges are never deleted."""
    if not current_user:
        return unauthorized_response()
    
    challenge_service = ChallengeService(store)
    
    try:
        challenge = await challenge_service.close_challenge(challenge_id, current_user)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Challenge closed successfully",
        data={"challenge": challenge}
    )


@router.get("/{challenge_id}/acceptance-status")
async def get_acceptance_status(
    challenge_id: str,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Get the caller's status for a challenge.
    
    Returns the resolved status of the pair plus the caller's
    currently active challenge, if any.
    """
    if not current_user:
        return unauthorized_response()
    
    acceptance_service = AcceptanceService(store)
    
    try:
        status = await acceptance_service.get_acceptance_status(current_user["username"], challenge_id)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Acceptance status retrieved successfully",
        data=status
    )


@router.get("/{challenge_id}/acceptances")
async def get_challenge_acceptances(
    challenge_id: str,
    store: RecordStore = Depends(get_store)
):
    """Get every acceptance of a challenge"""
    acceptance_service = AcceptanceService(store)
    
    try:
        acceptances = await acceptance_service.list_challenge_acceptances(challenge_id)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Acceptances retrieved successfully",
        data={"acceptances": acceptances, "total": len(acceptances)}
    )


@router.get("/{challenge_id}/history")
async def get_challenge_history(
    challenge_id: str,
    limit: int = Query(100, ge=1, le=500),
    store: RecordStore = Depends(get_store)
):
    """Audit trail of a challenge, newest first"""
    audit_service = AuditService(store)
    history = await audit_service.get_challenge_history(challenge_id, limit=limit)
    
    return success_response(
        message="Challenge history retrieved successfully",
        data={"history": history, "total": len(history)}
    )
