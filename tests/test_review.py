"""
Review workflow tests
"""
import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from challengehub.models.challenge.review import ReviewAction
from challengehub.models.challenge.submission import SubmissionCreate
from challengehub.services.challenge.acceptance import AcceptanceService
from challengehub.services.challenge.review import ReviewService
from challengehub.services.challenge.submission import SubmissionService
from challengehub.utils.errors import ConflictError, ForbiddenError, NotFoundError

from tests.conftest import SOLUTION


async def accept_and_submit(store, clock, username="employee01", challenge_id="ch1", days_late=0):
    """Accept with a commitment three days out and submit days_late after it"""
    await AcceptanceService(store, clock=clock).accept_challenge(
        username, challenge_id, clock.today() + timedelta(days=3)
    )
    clock.advance(days=3 + days_late)
    return await SubmissionService(store, clock=clock).submit_solution(username, SubmissionCreate(
        challenge_id=challenge_id,
        description=SOLUTION,
        technologies=["python"],
        source_code_url="https://git.example.com/team/report-bot"
    ))


@pytest.fixture
def service(store, clock):
    return ReviewService(store, clock=clock)


@pytest_asyncio.fixture
async def submission(store, clock):
    return await accept_and_submit(store, clock)


@pytest.mark.asyncio
async def test_approve_on_time(store, service, submission, manager):
    review = await service.review_submission(submission["id"], ReviewAction.APPROVE, "Great work", manager)

    assert review["status"] == "Approved"
    assert review["points_awarded"] == 500
    assert review["reviewed_by"] == "manager01"
    assert review["review_comment"] == "Great work"

    user = await store.get_user("employee01")
    assert user["total_points"] == 500

    records = await store.list_points_records(username="employee01")
    assert [(r["points"], r["reason"]) for r in records] == [(500, "approval")]

    acceptance = await store.get_acceptance(submission["acceptance_id"])
    assert acceptance["status"] == "Approved"
    assert acceptance["is_active"] is False
    assert (await store.get_submission(submission["id"]))["status"] == "Approved"


@pytest.mark.asyncio
async def test_approve_late_deducts_penalty(store, clock, service, manager):
    late = await accept_and_submit(store, clock, days_late=2)

    review = await service.review_submission(late["id"], ReviewAction.APPROVE, None, manager)

    assert review["points_awarded"] == 450
    assert (await store.get_user("employee01"))["total_points"] == 450
    records = await store.list_points_records(username="employee01")
    assert records[0]["reason"] == "late_submission"


@pytest.mark.asyncio
async def test_reject_awards_nothing(store, service, submission, manager):
    review = await service.review_submission(submission["id"], ReviewAction.REJECT, "Incomplete", manager)

    assert review["status"] == "Rejected"
    assert review["points_awarded"] == 0
    assert (await store.get_user("employee01"))["total_points"] == 0
    records = await store.list_points_records(username="employee01")
    assert [(r["points"], r["reason"]) for r in records] == [(0, "rejection")]


@pytest.mark.asyncio
async def test_rework_is_terminal(store, service, submission, manager):
    review = await service.review_submission(submission["id"], ReviewAction.REWORK, "Add tests", manager)
    assert review["status"] == "Needs Rework"
    assert review["points_awarded"] == 0

    with pytest.raises(ConflictError, match="already been reviewed"):
        await service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager)

    assert (await store.get_user("employee01"))["total_points"] == 0


@pytest.mark.asyncio
async def test_second_approval_does_not_double_count(store, service, submission, manager):
    await service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager)

    with pytest.raises(ConflictError):
        await service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager)

    assert (await store.get_user("employee01"))["total_points"] == 500
    assert len(await store.list_points_records(username="employee01")) == 1


@pytest.mark.asyncio
async def test_concurrent_approvals_award_once(store, service, submission, manager):
    results = await asyncio.gather(
        *(service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager) for _ in range(3)),
        return_exceptions=True
    )

    assert len([r for r in results if isinstance(r, dict)]) == 1
    assert len([r for r in results if isinstance(r, ConflictError)]) == 2
    assert (await store.get_user("employee01"))["total_points"] == 500


@pytest.mark.asyncio
async def test_employee_cannot_review(store, service, submission):
    employee = await store.get_user("employee02")

    with pytest.raises(ForbiddenError):
        await service.review_submission(submission["id"], ReviewAction.APPROVE, None, employee)


@pytest.mark.asyncio
async def test_review_missing_submission(service, manager):
    with pytest.raises(NotFoundError):
        await service.review_submission("missing", ReviewAction.APPROVE, None, manager)


@pytest.mark.asyncio
async def test_failed_review_rolls_back(store, service, submission, manager):
    # Points record already present: the ledger insert fails mid-transaction
    await store.insert_points_record({
        "id": "pts-existing", "username": "employee01", "challenge_id": "ch1",
        "points": 500, "reason": "approval", "description": "", "awarded_at": submission["submitted_at"]
    })

    with pytest.raises(ConflictError):
        await service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager)

    review = await store.get_review_for_submission(submission["id"])
    assert review["status"] == "Pending Review"
    acceptance = await store.get_acceptance(submission["acceptance_id"])
    assert acceptance["status"] == "Pending Review"
    assert (await store.get_user("employee01"))["total_points"] == 0


@pytest.mark.asyncio
async def test_audit_trail_records_review(store, service, submission, manager):
    await service.review_submission(submission["id"], ReviewAction.APPROVE, None, manager)

    actions = [entry["action"] for entry in await store.list_audit_entries(challenge_id="ch1")]
    assert "submission_reviewed" in actions
    assert "submission_created" in actions
    assert "challenge_accepted" in actions
