from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from enum import Enum


class AcceptanceStatus(str, Enum):
    """Lifecycle of a user's commitment to a challenge"""
    ACCEPTED = "Accepted"
    SUBMITTED = "Submitted"
    PENDING_REVIEW = "Pending Review"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NEEDS_REWORK = "Needs Rework"
    WITHDRAWN = "Withdrawn"


# A user may hold at most one acceptance in any of these at a time
ACTIVE_ACCEPTANCE_STATUSES = frozenset({
    AcceptanceStatus.ACCEPTED,
    AcceptanceStatus.SUBMITTED,
    AcceptanceStatus.PENDING_REVIEW,
    AcceptanceStatus.UNDER_REVIEW,
})


def is_active_status(status) -> bool:
    """True when an acceptance status blocks new acceptances"""
    return AcceptanceStatus(status) in ACTIVE_ACCEPTANCE_STATUSES


class AcceptChallengeRequest(BaseModel):
    """Schema for accepting a challenge"""
    challenge_id: str = Field(..., min_length=1)
    committed_date: date = Field(..., description="Day the solution will be submitted by")


class AcceptanceResponse(BaseModel):
    """Schema for acceptance response"""
    id: str
    username: str
    challenge_id: str
    status: AcceptanceStatus
    committed_date: str
    accepted_at: datetime
    updated_at: datetime
    withdrawn_at: Optional[datetime] = None
