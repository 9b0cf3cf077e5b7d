from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import uuid4

import structlog

from challengehub.models.auth.user import UserRole, MANAGER_ROLES
from challengehub.models.challenge.audit import AuditAction
from challengehub.models.challenge.challenge import ChallengeCreate, ChallengeUpdate, ChallengeStatus
from challengehub.services.challenge.audit import AuditService
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ForbiddenError, NotFoundError, ConflictError

logger = structlog.get_logger(__name__)


def is_manager(user: Dict[str, Any]) -> bool:
    return UserRole(user["role"]) in MANAGER_ROLES


class ChallengeService:
    """Service for challenge creation, approval and edits"""

    def __init__(self, store: RecordStore):
        self.store = store
        self.audit_service = AuditService(store)

    async def create_challenge(self, challenge_data: ChallengeCreate, creator: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a challenge.

        - Employees propose challenges: they wait in PENDING_APPROVAL
        - Management/Admin challenges open immediately
        """
        now = datetime.utcnow()
        status = ChallengeStatus.OPEN if is_manager(creator) else ChallengeStatus.PENDING_APPROVAL

        challenge = {
            "id": f"ch{uuid4().hex[:12]}",
            "title": challenge_data.title,
            "description": challenge_data.description,
            "expected_outcome": challenge_data.expected_outcome,
            "tags": challenge_data.tags,
            "status": status.value,
            "points": challenge_data.points,
            "penalty_points": challenge_data.penalty_points,
            "deadline": challenge_data.deadline.isoformat() if challenge_data.deadline else None,
            "created_by": creator["username"],
            "created_at": now,
            "updated_at": now,
            "approved_by": creator["username"] if status == ChallengeStatus.OPEN else None,
            "approved_at": now if status == ChallengeStatus.OPEN else None
        }

        await self.store.insert_challenge(challenge)

        await self.audit_service.log_action(
            challenge_id=challenge["id"],
            action=AuditAction.CHALLENGE_CREATED,
            username=creator["username"],
            entity_type="challenge",
            entity_id=challenge["id"],
            metadata={"status": status.value, "points": challenge["points"]}
        )

        logger.info("challenge_created", challenge_id=challenge["id"], status=status.value, created_by=creator["username"])
        return challenge

    async def get_challenge(self, challenge_id: str) -> Dict[str, Any]:
        """Get a challenge by ID"""
        challenge = await self.store.get_challenge(challenge_id)
        if not challenge:
            raise NotFoundError("Challenge not found")
        return challenge

    async def list_challenges(self, status: Optional[ChallengeStatus] = None) -> List[Dict[str, Any]]:
        """List challenges, newest first"""
        return await self.store.list_challenges(status=status.value if status else None)

    async def approve_challenge(self, challenge_id: str, approver: Dict[str, Any]) -> Dict[str, Any]:
        """Open a challenge proposed by an employee (PENDING_APPROVAL -> OPEN)"""
        if not is_manager(approver):
            raise ForbiddenError("Only management can approve challenges")

        challenge = await self.get_challenge(challenge_id)

        if challenge["status"] != ChallengeStatus.PENDING_APPROVAL:
            raise ConflictError(f"Challenge is {challenge['status']}, not pending approval")

        now = datetime.utcnow()
        updated = await self.store.update_challenge(challenge_id, {
            "status": ChallengeStatus.OPEN.value,
            "approved_by": approver["username"],
            "approved_at": now,
            "updated_at": now
        })

        await self.audit_service.log_action(
            challenge_id=challenge_id,
            action=AuditAction.CHALLENGE_APPROVED,
            username=approver["username"],
            entity_type="challenge",
            entity_id=challenge_id
        )

        logger.info("challenge_approved", challenge_id=challenge_id, approved_by=approver["username"])
        return updated

    async def update_challenge(
        self,
        challenge_id: str,
        update_data: ChallengeUpdate,
        editor: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Edit a challenge.

        - Management/Admin or the creator
        - Closed challenges are read-only
        """
        challenge = await self.get_challenge(challenge_id)

        if not is_manager(editor) and challenge["created_by"] != editor["username"]:
            raise ForbiddenError("Only management or the creator can edit this challenge")

        if challenge["status"] == ChallengeStatus.CLOSED:
            raise ConflictError("Closed challenges cannot be edited")

        changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
        if "deadline" in changes:
            changes["deadline"] = changes["deadline"].isoformat()

        if not changes:
            return challenge

        changes["updated_at"] = datetime.utcnow()
        updated = await self.store.update_challenge(challenge_id, changes)

        await self.audit_service.log_action(
            challenge_id=challenge_id,
            action=AuditAction.CHALLENGE_UPDATED,
            username=editor["username"],
            entity_type="challenge",
            entity_id=challenge_id,
            metadata={"fields": sorted(k for k in changes if k != "updated_at")}
        )

        return updated

    async def close_challenge(self, challenge_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Soft-close a challenge; challenges are never deleted"""
        if not is_manager(actor):
            raise ForbiddenError("Only management can close challenges")

        challenge = await self.get_challenge(challenge_id)

        if challenge["status"] == ChallengeStatus.CLOSED:
            raise ConflictError("Challenge is already closed")

        updated = await self.store.update_challenge(challenge_id, {
            "status": ChallengeStatus.CLOSED.value,
            "updated_at": datetime.utcnow()
        })

        await self.audit_service.log_action(
            challenge_id=challenge_id,
            action=AuditAction.CHALLENGE_CLOSED,
            username=actor["username"],
            entity_type="challenge",
            entity_id=challenge_id
        )

        logger.info("challenge_closed", challenge_id=challenge_id, closed_by=actor["username"])
        return updated
