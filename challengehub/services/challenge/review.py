"""
Review Workflow

Moves a submission's review from PENDING_REVIEW to a terminal status:

    Submitted -> Pending Review -> Approved | Rejected | Needs Rework

Terminal statuses have no outgoing transitions. All effects of a review
(review row, acceptance, submission, points ledger, user total) are written
in one store transaction, and the review is claimed with a conditional
update so a repeated call can never award points twice.
"""
from typing import Optional, Dict, Any, Callable
from datetime import datetime
from uuid import uuid4

import structlog

from challengehub.models.challenge.audit import AuditAction
from challengehub.models.challenge.points import PointsRecord
from challengehub.models.challenge.review import ReviewAction, ReviewStatus, REVIEW_ACTION_STATUS
from challengehub.services.challenge.audit import AuditService
from challengehub.services.challenge.challenge import is_manager
from challengehub.services.challenge.points import (
    compute_points,
    is_on_time,
    points_reason,
    points_description,
)
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError, ForbiddenError, NotFoundError

logger = structlog.get_logger(__name__)


class ReviewService:
    """Manager review of submitted solutions"""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock
        self.audit_service = AuditService(store)

    async def review_submission(
        self,
        submission_id: str,
        action: ReviewAction,
        comment: Optional[str],
        reviewer: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Review a submission (approve/reject/request rework).

        - Only Management/Admin
        - Each submission is reviewed exactly once
        - Points are added to the user's total only on approval
        """
        if not is_manager(reviewer):
            raise ForbiddenError("Only management can review submissions")

        action = ReviewAction(action)

        submission = await self.store.get_submission(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")

        challenge = await self.store.get_challenge(submission["challenge_id"])
        if not challenge:
            raise NotFoundError("Challenge not found")

        acceptance = await self.store.get_acceptance(submission["acceptance_id"])
        if not acceptance:
            raise NotFoundError("Acceptance not found")

        new_status = REVIEW_ACTION_STATUS[action]
        committed_date = acceptance["committed_date"]
        points_awarded = compute_points(challenge, new_status, submission["submitted_at"], committed_date)
        on_time = is_on_time(submission["submitted_at"], committed_date)
        reason = points_reason(new_status, on_time)
        now = self.clock()

        async with self.store.transaction():
            review = await self.store.claim_pending_review(submission_id, {
                "status": new_status.value,
                "reviewed_by": reviewer["username"],
                "reviewed_at": now,
                "review_comment": comment,
                "points_awarded": points_awarded
            })
            if review is None:
                existing = await self.store.get_review_for_submission(submission_id)
                if existing is None:
                    raise NotFoundError("Review record not found")
                raise ConflictError(f"Submission has already been reviewed ({existing['status']})")

            await self.store.update_acceptance(acceptance["id"], {
                "status": new_status.value,
                "is_active": False,
                "updated_at": now
            })

            await self.store.update_submission(submission_id, {
                "status": new_status.value,
                "updated_at": now
            })

            await self.store.insert_points_record(PointsRecord(
                id=f"pts{uuid4().hex[:12]}",
                username=submission["username"],
                challenge_id=challenge["id"],
                points=points_awarded,
                reason=reason,
                description=points_description(challenge, reason),
                awarded_at=now
            ).model_dump())

            if new_status == ReviewStatus.APPROVED:
                user = await self.store.increment_user_points(submission["username"], points_awarded)
                if user is None:
                    raise NotFoundError(f"User '{submission['username']}' not found")

            await self.audit_service.log_action(
                challenge_id=challenge["id"],
                action=AuditAction.SUBMISSION_REVIEWED,
                username=reviewer["username"],
                entity_type="submission",
                entity_id=submission_id,
                metadata={
                    "status": new_status.value,
                    "points_awarded": points_awarded,
                    "is_on_time": on_time
                }
            )

        logger.info(
            "submission_reviewed",
            submission_id=submission_id,
            status=new_status.value,
            points_awarded=points_awarded,
            reviewed_by=reviewer["username"]
        )
        return review
