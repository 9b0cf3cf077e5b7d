from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class ReviewStatus(str, Enum):
    """Review status - PENDING_REVIEW moves exactly once to a terminal status"""
    PENDING_REVIEW = "Pending Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NEEDS_REWORK = "Needs Rework"


class ReviewAction(str, Enum):
    """Manager decision on a submission"""
    APPROVE = "approve"
    REJECT = "reject"
    REWORK = "rework"


REVIEW_ACTION_STATUS = {
    ReviewAction.APPROVE: ReviewStatus.APPROVED,
    ReviewAction.REJECT: ReviewStatus.REJECTED,
    ReviewAction.REWORK: ReviewStatus.NEEDS_REWORK,
}


class SubmissionReview(BaseModel):
    """Schema for a manager reviewing a submission"""
    action: ReviewAction = Field(..., description="approve, reject, or rework")
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    """Schema for review response"""
    id: str
    submission_id: str
    challenge_id: str
    username: str
    status: ReviewStatus
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None
    points_awarded: Optional[int] = None
    submission_date: datetime
    commitment_date: Optional[str] = None
    is_on_time: bool
