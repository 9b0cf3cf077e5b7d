from typing import List, Dict, Any, Callable
from datetime import date, datetime
from uuid import uuid4

import structlog

from challengehub.models.challenge.acceptance import AcceptanceStatus
from challengehub.models.challenge.audit import AuditAction
from challengehub.models.challenge.challenge import ChallengeStatus
from challengehub.services.challenge.audit import AuditService
from challengehub.services.challenge.status import StatusResolver, ResolvedStatus
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class AcceptanceService:
    """
    Acceptance gate: users commit to one challenge at a time.

    Checks, first failure wins:
    1. committed date is a future calendar day (tomorrow at the earliest)
    2. the user holds no active acceptance
    3. the challenge exists and is OPEN
    4. the same challenge is only re-accepted after a withdrawal
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock
        self.resolver = StatusResolver(store)
        self.audit_service = AuditService(store)

    async def accept_challenge(self, username: str, challenge_id: str, committed_date: date) -> Dict[str, Any]:
        """Accept a challenge, returning the new acceptance"""
        now = self.clock()

        if committed_date <= now.date():
            raise ConflictError("Committed date must be in the future (tomorrow at the earliest)")

        # Serialise check-then-insert for this user; the store's own
        # uniqueness rule still rejects a racing insert from another process.
        async with self.store.user_lock(username):
            active = await self.resolver.find_active_acceptance(username)
            if active:
                raise ConflictError("You already have an active challenge. Complete it first.")

            challenge = await self.store.get_challenge(challenge_id)
            if not challenge or challenge["status"] != ChallengeStatus.OPEN:
                raise NotFoundError("Challenge not found or not open for acceptance")

            current = await self.resolver.resolve_status(username, challenge_id)
            if current.effective_status not in (ResolvedStatus.NOT_ACCEPTED, ResolvedStatus.WITHDRAWN):
                raise ConflictError(
                    f"You have already completed this challenge ({current.effective_status.value})"
                )

            acceptance = {
                "id": f"acc{uuid4().hex[:12]}",
                "username": username,
                "challenge_id": challenge_id,
                "status": AcceptanceStatus.ACCEPTED.value,
                "is_active": True,
                "committed_date": committed_date.isoformat(),
                "accepted_at": now,
                "updated_at": now,
                "withdrawn_at": None
            }

            async with self.store.transaction():
                await self.store.insert_acceptance(acceptance)
                await self.audit_service.log_action(
                    challenge_id=challenge_id,
                    action=AuditAction.CHALLENGE_ACCEPTED,
                    username=username,
                    entity_type="acceptance",
                    entity_id=acceptance["id"],
                    metadata={"committed_date": acceptance["committed_date"]}
                )

        logger.info(
            "challenge_accepted",
            username=username,
            challenge_id=challenge_id,
            committed_date=acceptance["committed_date"]
        )
        return acceptance

    async def withdraw_challenge(self, username: str, acceptance_id: str) -> Dict[str, Any]:
        """
        Withdraw from an accepted challenge.

        - Only the user's own acceptance
        - Only before a solution is submitted
        - The row is kept with status WITHDRAWN, never deleted
        """
        acceptance = await self.store.get_acceptance(acceptance_id)

        if not acceptance or acceptance["username"] != username:
            raise NotFoundError("Acceptance not found")

        if acceptance["status"] != AcceptanceStatus.ACCEPTED:
            raise ConflictError(f"Cannot withdraw a challenge that is {acceptance['status']}")

        submission = await self.store.find_submission(username, acceptance["challenge_id"])
        if submission:
            raise ConflictError("Cannot withdraw after a solution has been submitted")

        now = self.clock()
        async with self.store.transaction():
            updated = await self.store.claim_acceptance(acceptance_id, AcceptanceStatus.ACCEPTED.value, {
                "status": AcceptanceStatus.WITHDRAWN.value,
                "is_active": False,
                "withdrawn_at": now,
                "updated_at": now
            })
            if updated is None:
                # A submission landed after the checks above
                current = await self.store.get_acceptance(acceptance_id)
                raise ConflictError(f"Cannot withdraw a challenge that is {current['status']}")
            await self.audit_service.log_action(
                challenge_id=acceptance["challenge_id"],
                action=AuditAction.CHALLENGE_WITHDRAWN,
                username=username,
                entity_type="acceptance",
                entity_id=acceptance_id
            )

        logger.info("challenge_withdrawn", username=username, challenge_id=acceptance["challenge_id"])
        return updated

    async def get_acceptance_status(self, username: str, challenge_id: str) -> Dict[str, Any]:
        """Resolved status of a challenge for the user, plus their blocking challenge"""
        if not await self.store.get_challenge(challenge_id):
            raise NotFoundError("Challenge not found")

        resolved = await self.resolver.resolve_status(username, challenge_id)
        active = await self.resolver.find_active_acceptance(username)

        return {
            "challenge_id": challenge_id,
            "status": resolved.to_dict(),
            "accepted": resolved.is_active,
            "has_active_challenge": active is not None,
            "active_challenge_id": active["challenge_id"] if active else None,
            "can_accept": active is None and resolved.effective_status in (
                ResolvedStatus.NOT_ACCEPTED, ResolvedStatus.WITHDRAWN
            )
        }

    async def list_user_acceptances(self, username: str) -> List[Dict[str, Any]]:
        """A user's acceptances, each with its resolved status"""
        return [
            {**acceptance, "resolved": resolved.to_dict()}
            for acceptance, resolved in await self.resolver.resolve_user_acceptances(username)
        ]

    async def list_challenge_acceptances(self, challenge_id: str) -> List[Dict[str, Any]]:
        """Every acceptance of a challenge"""
        if not await self.store.get_challenge(challenge_id):
            raise NotFoundError("Challenge not found")
        return await self.store.list_acceptances(challenge_id=challenge_id)
