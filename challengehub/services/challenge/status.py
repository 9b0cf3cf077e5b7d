"""
Challenge Status Resolver

Derives one authoritative lifecycle status for a (user, challenge) pair from
the Acceptance, Submission and Review records. Nothing is cached: every read
recomputes from the store.

Precedence (first matching rule wins):
1. no acceptance                       -> Not Accepted   (inactive)
2. acceptance withdrawn                -> Withdrawn      (inactive)
3. no submission                       -> Accepted       (active)
4. review missing or pending           -> Pending Review / Under Review (active)
5. review approved                     -> Approved       (inactive)
6. review rejected                     -> Rejected       (inactive)
7. review needs rework                 -> Needs Rework   (inactive)

Only active pairs block a user from accepting another challenge.
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, Optional, List, Callable, Tuple

from challengehub.models.challenge.acceptance import AcceptanceStatus
from challengehub.models.challenge.review import ReviewStatus
from challengehub.models.challenge.submission import SubmissionStatus
from challengehub.services.store.base import RecordStore


class ResolvedStatus(str, Enum):
    """Effective status of a (user, challenge) pair"""
    NOT_ACCEPTED = "Not Accepted"
    WITHDRAWN = "Withdrawn"
    ACCEPTED = "Accepted"
    PENDING_REVIEW = "Pending Review"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NEEDS_REWORK = "Needs Rework"


DISPLAY_LABELS = {
    ResolvedStatus.NOT_ACCEPTED: "Available",
    ResolvedStatus.WITHDRAWN: "Withdrawn",
    ResolvedStatus.ACCEPTED: "In Progress",
    ResolvedStatus.PENDING_REVIEW: "Submitted - Pending Review",
    ResolvedStatus.UNDER_REVIEW: "Under Review",
    ResolvedStatus.APPROVED: "Completed - Approved",
    ResolvedStatus.REJECTED: "Completed - Rejected",
    ResolvedStatus.NEEDS_REWORK: "Needs Rework",
}


@dataclass
class ChallengeRecords:
    """The records one resolution reads"""
    acceptance: Optional[Dict[str, Any]] = None
    submission: Optional[Dict[str, Any]] = None
    review: Optional[Dict[str, Any]] = None


@dataclass
class ResolvedChallengeStatus:
    """Resolver output consumed by API handlers and display components"""
    effective_status: ResolvedStatus
    is_active: bool
    can_accept_new: bool
    display_status: str
    acceptance_id: Optional[str] = None
    submission_id: Optional[str] = None
    committed_date: Optional[str] = None
    points_awarded: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["effective_status"] = self.effective_status.value
        return data


def _pending_status(records: ChallengeRecords) -> ResolvedStatus:
    under_review = (
        records.submission.get("status") == SubmissionStatus.UNDER_REVIEW
        or records.acceptance.get("status") == AcceptanceStatus.UNDER_REVIEW
    )
    return ResolvedStatus.UNDER_REVIEW if under_review else ResolvedStatus.PENDING_REVIEW


def _review_status(records: ChallengeRecords) -> Optional[str]:
    return records.review.get("status") if records.review else None


Rule = Tuple[Callable[[ChallengeRecords], bool], Callable[[ChallengeRecords], ResolvedStatus], bool]

# (matches, status, is_active), evaluated top to bottom
PRECEDENCE: List[Rule] = [
    (
        lambda r: r.acceptance is None,
        lambda r: ResolvedStatus.NOT_ACCEPTED,
        False,
    ),
    (
        lambda r: r.acceptance.get("status") == AcceptanceStatus.WITHDRAWN,
        lambda r: ResolvedStatus.WITHDRAWN,
        False,
    ),
    (
        lambda r: r.submission is None,
        lambda r: ResolvedStatus.ACCEPTED,
        True,
    ),
    (
        lambda r: _review_status(r) in (None, ReviewStatus.PENDING_REVIEW),
        _pending_status,
        True,
    ),
    (
        lambda r: _review_status(r) == ReviewStatus.APPROVED,
        lambda r: ResolvedStatus.APPROVED,
        False,
    ),
    (
        lambda r: _review_status(r) == ReviewStatus.REJECTED,
        lambda r: ResolvedStatus.REJECTED,
        False,
    ),
    (
        lambda r: _review_status(r) == ReviewStatus.NEEDS_REWORK,
        lambda r: ResolvedStatus.NEEDS_REWORK,
        False,
    ),
]


def resolve_records(
    acceptance: Optional[Dict[str, Any]],
    submission: Optional[Dict[str, Any]] = None,
    review: Optional[Dict[str, Any]] = None
) -> ResolvedChallengeStatus:
    """Apply the precedence table to one pair's records"""
    records = ChallengeRecords(acceptance=acceptance, submission=submission, review=review)

    for matches, status_of, is_active in PRECEDENCE:
        if matches(records):
            status = status_of(records)
            return ResolvedChallengeStatus(
                effective_status=status,
                is_active=is_active,
                can_accept_new=not is_active,
                display_status=DISPLAY_LABELS[status],
                acceptance_id=acceptance.get("id") if acceptance else None,
                submission_id=submission.get("id") if submission else None,
                committed_date=acceptance.get("committed_date") if acceptance else None,
                points_awarded=review.get("points_awarded") if review else None,
            )

    raise ValueError(f"Unrecognised review status: {_review_status(records)}")


class StatusResolver:
    """Resolves statuses by reading the record store"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def resolve_status(self, username: str, challenge_id: str) -> ResolvedChallengeStatus:
        """Status of one (user, challenge) pair, based on the latest acceptance"""
        async with self.store.snapshot():
            acceptances = await self.store.list_acceptances(username=username, challenge_id=challenge_id)
            acceptance = acceptances[-1] if acceptances else None
            submission = await self.store.find_submission(username, challenge_id)
            review = None
            if submission:
                review = await self.store.get_review_for_submission(submission["id"])

        return resolve_records(acceptance, submission, review)

    async def resolve_user_acceptances(self, username: str) -> List[Tuple[Dict[str, Any], ResolvedChallengeStatus]]:
        """Every acceptance row of a user with its resolved status"""
        async with self.store.snapshot():
            acceptances = await self.store.list_acceptances(username=username)
            submissions = {
                s["challenge_id"]: s
                for s in await self.store.list_submissions(username=username)
            }
            reviews = {
                r["submission_id"]: r
                for r in await self.store.list_reviews(username=username)
            }

        resolved = []
        for acceptance in acceptances:
            submission = submissions.get(acceptance["challenge_id"])
            review = reviews.get(submission["id"]) if submission else None
            resolved.append((acceptance, resolve_records(acceptance, submission, review)))
        return resolved

    async def find_active_acceptance(self, username: str) -> Optional[Dict[str, Any]]:
        """The acceptance currently blocking the user, if any"""
        for acceptance, resolved in await self.resolve_user_acceptances(username):
            if resolved.is_active:
                return acceptance
        return None

    async def can_accept_new(self, username: str) -> bool:
        """True when none of the user's acceptances resolves to active"""
        return await self.find_active_acceptance(username) is None
