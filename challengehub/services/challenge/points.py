"""
Points Engine - awarded points for a review outcome

Rules:
- Rejected -> 0
- Needs Rework -> 0 (nothing is awarded until an approval)
- Approved on time or early -> full challenge points
- Approved late -> max(0, points - penalty_points)
- Approved without a committed date or submission time -> full points

A committed date given as a plain date covers that whole calendar day.
Everything here is pure: no I/O, no clock reads.
"""
from datetime import date, datetime
from typing import Optional, Dict, Any, Union

from challengehub.models.challenge.points import PointsReason
from challengehub.models.challenge.review import ReviewStatus

CommittedDate = Union[date, datetime, str, None]


def parse_committed_date(value: CommittedDate) -> Optional[Union[date, datetime]]:
    """Accept a date, a datetime or an ISO string (as stored on acceptances)"""
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value
    if len(value) == 10:
        return date.fromisoformat(value)
    return datetime.fromisoformat(value)


def is_on_time(submitted_at: Optional[datetime], committed_date: CommittedDate) -> bool:
    """
    True when the submission is no later than the committed date.

    The boundary is inclusive. Missing data counts as on time.
    """
    committed = parse_committed_date(committed_date)
    if committed is None or submitted_at is None:
        return True
    if isinstance(committed, datetime):
        return submitted_at <= committed
    return submitted_at.date() <= committed


def compute_points(
    challenge: Dict[str, Any],
    outcome: Union[ReviewStatus, str],
    submitted_at: Optional[datetime],
    committed_date: CommittedDate = None
) -> int:
    """
    Points awarded for a review outcome.

    Args:
        challenge: Challenge record (points, penalty_points, optional committed_date)
        outcome: Terminal review status
        submitted_at: When the solution was submitted
        committed_date: Acceptance's committed date, falls back to challenge["committed_date"]

    Returns:
        Non-negative number of points
    """
    outcome = ReviewStatus(outcome)

    if outcome == ReviewStatus.REJECTED:
        return 0

    if outcome == ReviewStatus.NEEDS_REWORK:
        return 0

    if outcome == ReviewStatus.APPROVED:
        full_points = challenge.get("points", 0)
        penalty_points = challenge.get("penalty_points") or 0

        if committed_date is None:
            committed_date = challenge.get("committed_date")

        if is_on_time(submitted_at, committed_date):
            return full_points

        return max(0, full_points - penalty_points)

    raise ValueError(f"Cannot compute points for outcome: {outcome.value}")


def deduct_penalty_points(challenge: Dict[str, Any]) -> int:
    """Negative points recorded when nothing was submitted by the committed date"""
    return -(challenge.get("penalty_points") or 0)


def points_reason(outcome: Union[ReviewStatus, str], on_time: bool) -> PointsReason:
    """Ledger reason for a review outcome"""
    outcome = ReviewStatus(outcome)
    if outcome == ReviewStatus.REJECTED:
        return PointsReason.REJECTION
    if outcome == ReviewStatus.NEEDS_REWORK:
        return PointsReason.REWORK
    if on_time:
        return PointsReason.APPROVAL
    return PointsReason.LATE_SUBMISSION


def points_description(challenge: Dict[str, Any], reason: PointsReason) -> str:
    """Human-readable ledger description"""
    title = challenge.get("title", "Unknown")
    if reason == PointsReason.APPROVAL:
        return f'Full points awarded for on-time completion of "{title}"'
    if reason == PointsReason.LATE_SUBMISSION:
        return (
            f'Reduced points awarded for late submission of "{title}" '
            f'({challenge.get("penalty_points") or 0} penalty applied)'
        )
    if reason == PointsReason.REJECTION:
        return f'No points awarded - submission rejected for "{title}"'
    if reason == PointsReason.REWORK:
        return f'No points awarded - rework requested for "{title}"'
    return f'Penalty applied for no submission of "{title}" by committed date'
