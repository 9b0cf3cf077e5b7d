from pydantic import BaseModel, ConfigDict
from datetime import datetime
from enum import Enum


class PointsReason(str, Enum):
    """Why a points ledger entry was written"""
    APPROVAL = "approval"
    LATE_SUBMISSION = "late_submission"
    REJECTION = "rejection"
    REWORK = "rework"
    NO_SUBMISSION = "no_submission"


class PointsRecord(BaseModel):
    """Points ledger entry, positive (awarded) or negative (penalty)"""
    model_config = ConfigDict(use_enum_values=True)

    id: str
    username: str
    challenge_id: str
    points: int
    reason: PointsReason
    description: str
    awarded_at: datetime
