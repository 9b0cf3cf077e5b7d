from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import Optional

from challengehub.core.scheduler import get_scheduler_status
from challengehub.routes.auth.dependencies import get_current_user, get_store
from challengehub.services.challenge.challenge import is_manager
from challengehub.services.challenge.penalty import PenaltyService
from challengehub.services.store.base import RecordStore
from challengehub.utils.response import success_response, error_response, unauthorized_response

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/penalties/run")
async def run_penalty_sweep(
    as_of: Optional[date] = Query(None, description="Treat this day as today (defaults to the current UTC date)"),
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Run the missed-deadline penalty sweep now.
    
    Safe to call repeatedly: each (user, challenge) is penalised at most once.
    """
    if not current_user:
        return unauthorized_response()
    
    if not is_manager(current_user):
        return error_response(message="Only management can run the penalty sweep", status_code=403, error="FORBIDDEN")
    
    penalty_service = PenaltyService(store)
    result = await penalty_service.apply_missed_deadline_penalties(today=as_of)
    
    return success_response(
        message=f"Penalty sweep completed: {len(result['penalized'])} penalised",
        data=result
    )


@router.get("/scheduler")
async def scheduler_status(current_user: Optional[dict] = Depends(get_current_user)):
    """Background job status"""
    if not current_user:
        return unauthorized_response()
    
    if not is_manager(current_user):
        return error_response(message="Only management can view the scheduler", status_code=403, error="FORBIDDEN")
    
    return success_response(
        message="Scheduler status retrieved successfully",
        data=get_scheduler_status()
    )
