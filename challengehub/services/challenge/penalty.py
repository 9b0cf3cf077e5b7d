"""
Missed-Deadline Penalty Sweep

Penalises users who accepted a challenge and let the committed date pass
without submitting anything.

Conditions:
- acceptance status = ACCEPTED
- committed_date < today (the whole committed day has passed)
- no submission for (user, challenge)
- challenge penalty_points > 0

Action:
- write a no_submission points record, unique per (user, challenge)
- subtract penalty_points from the user's total, only if that record was new

Running the sweep twice, or twice at once, penalises each pair once.
"""
from typing import Dict, Any, Optional, Callable
from datetime import date, datetime
from uuid import uuid4

import structlog

from challengehub.models.challenge.acceptance import AcceptanceStatus
from challengehub.models.challenge.audit import AuditAction
from challengehub.models.challenge.points import PointsReason, PointsRecord
from challengehub.services.challenge.audit import AuditService
from challengehub.services.challenge.points import deduct_penalty_points, points_description
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError

logger = structlog.get_logger(__name__)


class PenaltyService:
    """Background sweep for missed committed dates"""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock
        self.audit_service = AuditService(store)

    async def apply_missed_deadline_penalties(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Run one sweep and report what it did"""
        today = today or self.clock().date()
        results = {
            "processed": 0,
            "penalized": [],
            "skipped": 0,
            "errors": []
        }

        acceptances = await self.store.list_acceptances(status=AcceptanceStatus.ACCEPTED.value)

        for acceptance in acceptances:
            if acceptance["committed_date"] >= today.isoformat():
                continue

            username = acceptance["username"]
            challenge_id = acceptance["challenge_id"]
            results["processed"] += 1

            try:
                penalty = await self._penalize(acceptance)
            except Exception as e:
                logger.error("penalty_failed", username=username, challenge_id=challenge_id, error=str(e))
                results["errors"].append({
                    "username": username,
                    "challenge_id": challenge_id,
                    "error": str(e)
                })
                continue

            if penalty is None:
                results["skipped"] += 1
            else:
                results["penalized"].append(penalty)

        if results["penalized"]:
            logger.info("penalty_sweep_completed", penalized=len(results["penalized"]), processed=results["processed"])

        return results

    async def _penalize(self, acceptance: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        username = acceptance["username"]
        challenge_id = acceptance["challenge_id"]

        challenge = await self.store.get_challenge(challenge_id)
        if not challenge or not challenge.get("penalty_points"):
            return None

        if await self.store.find_submission(username, challenge_id):
            return None

        points = deduct_penalty_points(challenge)
        record = PointsRecord(
            id=f"pen{uuid4().hex[:12]}",
            username=username,
            challenge_id=challenge_id,
            points=points,
            reason=PointsReason.NO_SUBMISSION,
            description=points_description(challenge, PointsReason.NO_SUBMISSION),
            awarded_at=self.clock()
        ).model_dump()

        try:
            async with self.store.transaction():
                await self.store.insert_points_record(record)
                await self.store.increment_user_points(username, points)
                await self.audit_service.log_action(
                    challenge_id=challenge_id,
                    action=AuditAction.PENALTY_APPLIED,
                    username=username,
                    entity_type="points",
                    entity_id=record["id"],
                    metadata={"points": points, "committed_date": acceptance["committed_date"]}
                )
        except ConflictError:
            # Already penalised by an earlier or concurrent sweep
            return None

        logger.info("penalty_applied", username=username, challenge_id=challenge_id, points=points)
        return {
            "username": username,
            "challenge_id": challenge_id,
            "points": points
        }
