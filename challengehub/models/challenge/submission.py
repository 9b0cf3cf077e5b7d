from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission status"""
    SUBMITTED = "Submitted"  # Waiting for manager review
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NEEDS_REWORK = "Needs Rework"


class SubmissionCreate(BaseModel):
    """Schema for submitting a solution"""
    challenge_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=50, description="Solution description")
    technologies: List[str] = Field(..., min_length=1)
    source_code_url: HttpUrl
    hosted_app_url: Optional[HttpUrl] = None

    @field_validator("technologies", mode="before")
    @classmethod
    def split_technologies(cls, value):
        # The UI sends free text, comma-separated
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return value

    @field_validator("hosted_app_url", mode="before")
    @classmethod
    def blank_hosted_url(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SubmissionResponse(BaseModel):
    """Schema for submission response"""
    id: str
    username: str
    challenge_id: str
    acceptance_id: str
    submitted_at: datetime
    description: str
    technologies: List[str]
    source_code_url: str
    hosted_app_url: Optional[str] = None
    status: SubmissionStatus
    updated_at: datetime
