from typing import Optional, List, Dict, Any, Callable
from datetime import datetime
from uuid import uuid4

import structlog

from challengehub.models.challenge.acceptance import AcceptanceStatus
from challengehub.models.challenge.audit import AuditAction
from challengehub.models.challenge.review import ReviewStatus
from challengehub.models.challenge.submission import SubmissionCreate, SubmissionStatus
from challengehub.services.challenge.audit import AuditService
from challengehub.services.challenge.points import is_on_time
from challengehub.services.challenge.status import StatusResolver
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class SubmissionService:
    """Service for challenge solution submissions"""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock
        self.resolver = StatusResolver(store)
        self.audit_service = AuditService(store)

    async def submit_solution(self, username: str, submission_data: SubmissionCreate) -> Dict[str, Any]:
        """
        Submit a solution for an accepted challenge.

        - Must hold an ACCEPTED acceptance for the challenge
        - One submission per (user, challenge), whatever happened to the first
        - Creates the pending review and moves the acceptance to PENDING_REVIEW
        """
        challenge_id = submission_data.challenge_id

        # Block ALL resubmissions
        existing = await self.store.find_submission(username, challenge_id)
        if existing:
            raise ConflictError("You have already submitted a solution for this challenge")

        acceptances = await self.store.list_acceptances(username=username, challenge_id=challenge_id)
        acceptance = acceptances[-1] if acceptances else None

        if not acceptance or acceptance["status"] != AcceptanceStatus.ACCEPTED:
            raise self._not_submittable(acceptance)

        challenge = await self.store.get_challenge(challenge_id)
        if not challenge:
            raise NotFoundError("Challenge not found")

        now = self.clock()
        submission = {
            "id": f"sub{uuid4().hex[:12]}",
            "username": username,
            "challenge_id": challenge_id,
            "acceptance_id": acceptance["id"],
            "submitted_at": now,
            "description": submission_data.description,
            "technologies": submission_data.technologies,
            "source_code_url": str(submission_data.source_code_url),
            "hosted_app_url": str(submission_data.hosted_app_url) if submission_data.hosted_app_url else None,
            "status": SubmissionStatus.SUBMITTED.value,
            "updated_at": now
        }

        review = {
            "id": f"rev{uuid4().hex[:12]}",
            "submission_id": submission["id"],
            "challenge_id": challenge_id,
            "username": username,
            "status": ReviewStatus.PENDING_REVIEW.value,
            "reviewed_by": None,
            "reviewed_at": None,
            "review_comment": None,
            "points_awarded": None,
            "submission_date": now,
            "commitment_date": acceptance["committed_date"],
            "is_on_time": is_on_time(now, acceptance["committed_date"])
        }

        async with self.store.transaction():
            # Only an acceptance still in Accepted may move to Pending Review
            claimed = await self.store.claim_acceptance(
                acceptance["id"],
                AcceptanceStatus.ACCEPTED.value,
                {"status": AcceptanceStatus.PENDING_REVIEW.value, "updated_at": now}
            )
            if claimed is None:
                raise self._not_submittable(await self.store.get_acceptance(acceptance["id"]))

            await self.store.insert_submission(submission)
            await self.store.insert_review(review)
            await self.audit_service.log_action(
                challenge_id=challenge_id,
                action=AuditAction.SUBMISSION_CREATED,
                username=username,
                entity_type="submission",
                entity_id=submission["id"],
                metadata={
                    "is_on_time": review["is_on_time"],
                    "has_hosted_app": bool(submission["hosted_app_url"])
                }
            )

        logger.info(
            "submission_created",
            username=username,
            challenge_id=challenge_id,
            submission_id=submission["id"],
            is_on_time=review["is_on_time"]
        )
        return submission

    @staticmethod
    def _not_submittable(acceptance: Optional[Dict[str, Any]]) -> Exception:
        if not acceptance or acceptance["status"] == AcceptanceStatus.WITHDRAWN:
            return NotFoundError("You have not accepted this challenge")
        return ConflictError(f"Cannot submit for a challenge that is {acceptance['status']}")

    async def get_submission(self, submission_id: str) -> Dict[str, Any]:
        """Get a submission by ID"""
        submission = await self.store.get_submission(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    async def get_submission_details(self, submission_id: str) -> Dict[str, Any]:
        """Submission with its review and the resolved status of the pair"""
        submission = await self.get_submission(submission_id)
        review = await self.store.get_review_for_submission(submission_id)
        resolved = await self.resolver.resolve_status(submission["username"], submission["challenge_id"])

        return {
            "submission": submission,
            "review": review,
            "status": resolved.to_dict()
        }

    async def list_submissions(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Submissions, newest first"""
        return await self.store.list_submissions(username=username, challenge_id=challenge_id)

    async def list_reviews(self, status: Optional[ReviewStatus] = None) -> List[Dict[str, Any]]:
        """Reviews, newest submission first"""
        return await self.store.list_reviews(status=status.value if status else None)
