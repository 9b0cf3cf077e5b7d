"""
APScheduler Setup for Background Jobs

Runs the missed-deadline penalty sweep on an interval
(PENALTY_SWEEP_INTERVAL_MINUTES, hourly by default).

Note: Jobs use the record store configured for the process.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime

import structlog

from challengehub.core.config import PENALTY_SWEEP_INTERVAL_MINUTES

logger = structlog.get_logger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Job status tracking
job_status = {
    "last_run": None,
    "penalty_sweep": {"runs": 0, "last_result": None}
}


async def run_penalty_sweep():
    """Job: Penalise accepted challenges whose committed date passed without a submission."""
    from challengehub.services.store.factory import get_record_store
    from challengehub.services.challenge.penalty import PenaltyService
    
    try:
        store = get_record_store()
        penalty_service = PenaltyService(store)
        result = await penalty_service.apply_missed_deadline_penalties()
        
        job_status["penalty_sweep"]["runs"] += 1
        job_status["penalty_sweep"]["last_result"] = {
            "processed": result["processed"],
            "penalized": len(result["penalized"]),
            "skipped": result["skipped"],
            "errors": len(result["errors"])
        }
        job_status["last_run"] = datetime.utcnow().isoformat()
        
        if result["penalized"]:
            logger.info("penalty_sweep_job", penalized=len(result["penalized"]))
            
    except Exception as e:
        logger.exception("penalty_sweep_job_failed", error=str(e))


def setup_scheduler():
    """
    Configure and setup all scheduled jobs.
    
    Job Schedule:
    - penalty_sweep: Every PENALTY_SWEEP_INTERVAL_MINUTES minutes
    """
    # Clear any existing jobs
    scheduler.remove_all_jobs()
    
    scheduler.add_job(
        run_penalty_sweep,
        IntervalTrigger(minutes=PENALTY_SWEEP_INTERVAL_MINUTES),
        id="missed_deadline_penalty_sweep",
        name="Penalise missed committed dates",
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )
    
    logger.info("scheduler_configured", jobs=1, interval_minutes=PENALTY_SWEEP_INTERVAL_MINUTES)


def start_scheduler():
    """Start the scheduler if not already running."""
    if not scheduler.running:
        scheduler.start()
        logger.info("scheduler_started")


def stop_scheduler():
    """Stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def get_scheduler_status() -> dict:
    """Get current scheduler status for monitoring."""
    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None
            }
            for job in scheduler.get_jobs()
        ],
        "job_status": job_status
    }
