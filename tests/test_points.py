"""
Points engine tests
"""
from datetime import date, datetime

import pytest

from challengehub.models.challenge.points import PointsReason
from challengehub.services.challenge.points import (
    compute_points,
    deduct_penalty_points,
    is_on_time,
    parse_committed_date,
    points_reason,
)

CHALLENGE = {"title": "Report bot", "points": 500, "penalty_points": 50}


def test_approved_on_time_awards_full_points():
    points = compute_points(CHALLENGE, "Approved", datetime(2026, 3, 4, 12, 0), "2026-03-05")
    assert points == 500


def test_approved_late_subtracts_penalty():
    points = compute_points(CHALLENGE, "Approved", datetime(2026, 3, 6, 8, 0), "2026-03-05")
    assert points == 450


def test_submission_on_committed_day_is_on_time():
    assert is_on_time(datetime(2026, 3, 5, 23, 59), "2026-03-05") is True
    assert is_on_time(datetime(2026, 3, 6, 0, 0), "2026-03-05") is False


def test_committed_datetime_boundary_is_inclusive():
    committed = datetime(2026, 3, 5, 17, 0)
    assert is_on_time(datetime(2026, 3, 5, 17, 0), committed) is True
    assert is_on_time(datetime(2026, 3, 5, 17, 1), committed) is False


def test_late_points_never_negative():
    challenge = {"points": 20, "penalty_points": 50}
    assert compute_points(challenge, "Approved", datetime(2026, 3, 9), "2026-03-05") == 0


@pytest.mark.parametrize("outcome", ["Rejected", "Needs Rework"])
def test_non_approval_awards_nothing(outcome):
    assert compute_points(CHALLENGE, outcome, datetime(2026, 3, 4), "2026-03-05") == 0


def test_missing_committed_date_awards_full_points():
    assert compute_points(CHALLENGE, "Approved", datetime(2026, 3, 9), None) == 500


def test_committed_date_falls_back_to_challenge():
    challenge = {**CHALLENGE, "committed_date": "2026-03-05"}
    assert compute_points(challenge, "Approved", datetime(2026, 3, 9)) == 450


def test_pending_outcome_is_rejected():
    with pytest.raises(ValueError):
        compute_points(CHALLENGE, "Pending Review", datetime(2026, 3, 4), "2026-03-05")


def test_parse_committed_date():
    assert parse_committed_date("2026-03-05") == date(2026, 3, 5)
    assert parse_committed_date("2026-03-05T10:00:00") == datetime(2026, 3, 5, 10, 0)
    assert parse_committed_date("") is None
    assert parse_committed_date(None) is None


def test_deduct_penalty_points():
    assert deduct_penalty_points(CHALLENGE) == -50
    assert deduct_penalty_points({"points": 10}) == 0


def test_points_reason():
    assert points_reason("Approved", True) == PointsReason.APPROVAL
    assert points_reason("Approved", False) == PointsReason.LATE_SUBMISSION
    assert points_reason("Rejected", True) == PointsReason.REJECTION
    assert points_reason("Needs Rework", False) == PointsReason.REWORK
