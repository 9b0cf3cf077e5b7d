from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from enum import Enum


class ChallengeStatus(str, Enum):
    """
    Challenge status types - State Machine

    State Transitions:
    - (created by Employee) -> PENDING_APPROVAL
    - (created by Management/Admin) -> OPEN
    - PENDING_APPROVAL -> OPEN (manager approves)
    - DRAFT / PENDING_APPROVAL / OPEN -> CLOSED (soft close, never deleted)
    """
    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    OPEN = "Open"  # Accepting new acceptances
    CLOSED = "Closed"


class ChallengeCreate(BaseModel):
    """Schema for creating a challenge"""
    title: str = Field(..., min_length=10, max_length=200)
    description: str = Field(..., min_length=50)
    expected_outcome: str = Field(..., min_length=30)
    tags: List[str] = Field(default=[], description="Preferred technologies / topics")
    points: int = Field(..., ge=0)
    penalty_points: int = Field(0, ge=0)
    deadline: Optional[date] = None


class ChallengeUpdate(BaseModel):
    """Schema for editing a challenge (not allowed once closed)"""
    title: Optional[str] = Field(None, min_length=10, max_length=200)
    description: Optional[str] = Field(None, min_length=50)
    expected_outcome: Optional[str] = Field(None, min_length=30)
    tags: Optional[List[str]] = None
    points: Optional[int] = Field(None, ge=0)
    penalty_points: Optional[int] = Field(None, ge=0)
    deadline: Optional[date] = None


class ChallengeResponse(BaseModel):
    """Schema for challenge response"""
    id: str
    title: str
    description: str
    expected_outcome: str
    tags: List[str] = []
    status: ChallengeStatus
    points: int
    penalty_points: int = 0
    deadline: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
