from fastapi import APIRouter, Depends, Query

from challengehub.routes.auth.dependencies import get_store
from challengehub.services.challenge.leaderboard import LeaderboardService
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ChallengeHubError
from challengehub.utils.response import success_response, service_error_response

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("")
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    store: RecordStore = Depends(get_store)
):
    """
    Get the points leaderboard.
    
    Users are ranked by total points; ties are broken by username.
    """
    leaderboard_service = LeaderboardService(store)
    leaderboard = await leaderboard_service.get_leaderboard(limit=limit)
    
    return success_response(
        message="Leaderboard retrieved successfully",
        data={"leaderboard": leaderboard, "total": len(leaderboard)}
    )


@router.get("/{username}/rank")
async def get_user_rank(
    username: str,
    store: RecordStore = Depends(get_store)
):
    """Get a user's position on the leaderboard"""
    leaderboard_service = LeaderboardService(store)
    
    try:
        rank = await leaderboard_service.get_user_rank(username)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="User rank retrieved successfully",
        data=rank
    )
