from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class AuditAction(str, Enum):
    """Audit action types"""
    # Challenge actions
    CHALLENGE_CREATED = "challenge_created"
    CHALLENGE_UPDATED = "challenge_updated"
    CHALLENGE_APPROVED = "challenge_approved"
    CHALLENGE_CLOSED = "challenge_closed"

    # Acceptance actions
    CHALLENGE_ACCEPTED = "challenge_accepted"
    CHALLENGE_WITHDRAWN = "challenge_withdrawn"

    # Submission actions
    SUBMISSION_CREATED = "submission_created"
    SUBMISSION_REVIEWED = "submission_reviewed"

    # Points actions
    PENALTY_APPLIED = "penalty_applied"


class AuditEntry(BaseModel):
    """Audit trail entry"""
    model_config = ConfigDict(use_enum_values=True)

    challenge_id: str
    action: AuditAction
    username: str
    entity_type: str  # "challenge", "acceptance", "submission", "points"
    entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime
