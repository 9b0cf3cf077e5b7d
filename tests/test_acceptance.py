"""
Acceptance gate tests
"""
import asyncio
from datetime import date, timedelta

import pytest

from challengehub.models.challenge.review import ReviewAction
from challengehub.models.challenge.submission import SubmissionCreate
from challengehub.services.challenge.acceptance import AcceptanceService
from challengehub.services.challenge.review import ReviewService
from challengehub.services.challenge.submission import SubmissionService
from challengehub.utils.errors import ConflictError, NotFoundError

from tests.conftest import SOLUTION, seed_challenge


def committed(clock, days=3) -> date:
    return clock.today() + timedelta(days=days)


def solution(challenge_id: str) -> SubmissionCreate:
    return SubmissionCreate(
        challenge_id=challenge_id,
        description=SOLUTION,
        technologies=["python", "fastapi"],
        source_code_url="https://git.example.com/team/report-bot"
    )


@pytest.fixture
def service(store, clock):
    return AcceptanceService(store, clock=clock)


@pytest.mark.asyncio
async def test_accept_challenge(service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))

    assert acceptance["status"] == "Accepted"
    assert acceptance["is_active"] is True
    assert acceptance["committed_date"] == "2026-03-05"
    assert acceptance["accepted_at"] == clock()


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, -1])
async def test_committed_date_must_be_in_the_future(service, clock, days):
    with pytest.raises(ConflictError):
        await service.accept_challenge("employee01", "ch1", committed(clock, days))


@pytest.mark.asyncio
async def test_tomorrow_is_accepted(service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock, 1))
    assert acceptance["committed_date"] == "2026-03-03"


@pytest.mark.asyncio
async def test_one_active_challenge_per_user(service, clock):
    await service.accept_challenge("employee01", "ch1", committed(clock))

    with pytest.raises(ConflictError, match="already have an active challenge"):
        await service.accept_challenge("employee01", "ch2", committed(clock))

    # Other users are unaffected
    acceptance = await service.accept_challenge("employee02", "ch2", committed(clock))
    assert acceptance["username"] == "employee02"


@pytest.mark.asyncio
async def test_challenge_must_be_open(store, service, clock):
    await seed_challenge(store, "ch-pending", status="Pending Approval")
    await seed_challenge(store, "ch-closed", status="Closed")

    for challenge_id in ("ch-pending", "ch-closed", "missing"):
        with pytest.raises(NotFoundError):
            await service.accept_challenge("employee01", challenge_id, committed(clock))


@pytest.mark.asyncio
async def test_withdraw_frees_the_user(service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))

    withdrawn = await service.withdraw_challenge("employee01", acceptance["id"])
    assert withdrawn["status"] == "Withdrawn"
    assert withdrawn["is_active"] is False
    assert withdrawn["withdrawn_at"] == clock()

    other = await service.accept_challenge("employee01", "ch2", committed(clock))
    assert other["challenge_id"] == "ch2"


@pytest.mark.asyncio
async def test_reaccept_same_challenge_after_withdrawal(service, clock):
    first = await service.accept_challenge("employee01", "ch1", committed(clock))
    await service.withdraw_challenge("employee01", first["id"])
    clock.advance(minutes=5)

    second = await service.accept_challenge("employee01", "ch1", committed(clock, 5))

    assert second["id"] != first["id"]
    status = await service.get_acceptance_status("employee01", "ch1")
    assert status["status"]["acceptance_id"] == second["id"]
    assert status["accepted"] is True


@pytest.mark.asyncio
async def test_withdraw_only_own_acceptance(service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))

    with pytest.raises(NotFoundError):
        await service.withdraw_challenge("employee02", acceptance["id"])


@pytest.mark.asyncio
async def test_withdraw_twice_conflicts(service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))
    await service.withdraw_challenge("employee01", acceptance["id"])

    with pytest.raises(ConflictError):
        await service.withdraw_challenge("employee01", acceptance["id"])


@pytest.mark.asyncio
async def test_cannot_withdraw_after_submitting(store, service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))
    await SubmissionService(store, clock=clock).submit_solution("employee01", solution("ch1"))

    with pytest.raises(ConflictError):
        await service.withdraw_challenge("employee01", acceptance["id"])


@pytest.mark.asyncio
async def test_pending_review_still_blocks(store, service, clock):
    await service.accept_challenge("employee01", "ch1", committed(clock))
    await SubmissionService(store, clock=clock).submit_solution("employee01", solution("ch1"))

    with pytest.raises(ConflictError):
        await service.accept_challenge("employee01", "ch2", committed(clock))


@pytest.mark.asyncio
async def test_submission_between_check_and_write_stops_withdrawal(pausing_store, clock):
    service = AcceptanceService(pausing_store, clock=clock)
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))

    pausing_store.pause_after("find_submission")
    withdraw = asyncio.create_task(service.withdraw_challenge("employee01", acceptance["id"]))
    await pausing_store.reached.wait()

    # Withdrawal has seen no submission; let one commit
    submission = await SubmissionService(pausing_store, clock=clock).submit_solution("employee01", solution("ch1"))
    pausing_store.release.set()

    with pytest.raises(ConflictError, match="Pending Review"):
        await withdraw

    current = await pausing_store.get_acceptance(acceptance["id"])
    assert current["status"] == "Pending Review"
    assert current["is_active"] is True
    assert current["withdrawn_at"] is None
    assert (await pausing_store.get_submission(submission["id"]))["status"] == "Submitted"


@pytest.mark.asyncio
@pytest.mark.parametrize("action, outcome", [
    (ReviewAction.APPROVE, "Approved"),
    (ReviewAction.REJECT, "Rejected"),
    (ReviewAction.REWORK, "Needs Rework"),
])
async def test_reviewed_challenge_unblocks_but_cannot_be_repeated(store, service, clock, manager, action, outcome):
    await service.accept_challenge("employee01", "ch1", committed(clock))
    submission = await SubmissionService(store, clock=clock).submit_solution("employee01", solution("ch1"))
    await ReviewService(store, clock=clock).review_submission(submission["id"], action, "Reviewed", manager)

    status = await service.get_acceptance_status("employee01", "ch1")
    assert status["status"]["effective_status"] == outcome
    assert status["has_active_challenge"] is False
    assert status["can_accept"] is False

    with pytest.raises(ConflictError, match="already completed"):
        await service.accept_challenge("employee01", "ch1", committed(clock))

    acceptance = await service.accept_challenge("employee01", "ch2", committed(clock))
    assert acceptance["challenge_id"] == "ch2"


@pytest.mark.asyncio
async def test_concurrent_accepts_admit_one(service, clock):
    results = await asyncio.gather(
        *(service.accept_challenge("employee01", cid, committed(clock)) for cid in ("ch1", "ch2", "ch3")),
        return_exceptions=True
    )

    accepted = [r for r in results if isinstance(r, dict)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(accepted) == 1
    assert len(conflicts) == 2


@pytest.mark.asyncio
async def test_store_rejects_second_active_acceptance(store, clock):
    base = {
        "username": "employee01", "status": "Accepted", "is_active": True,
        "committed_date": "2026-03-05", "accepted_at": clock(), "updated_at": clock(), "withdrawn_at": None
    }
    await store.insert_acceptance({**base, "id": "acc1", "challenge_id": "ch1"})

    with pytest.raises(ConflictError):
        await store.insert_acceptance({**base, "id": "acc2", "challenge_id": "ch2"})


@pytest.mark.asyncio
async def test_store_rejects_reactivating_acceptance(store, clock):
    base = {
        "username": "employee01", "committed_date": "2026-03-05",
        "accepted_at": clock(), "updated_at": clock(), "withdrawn_at": None
    }
    await store.insert_acceptance({**base, "id": "acc1", "challenge_id": "ch1", "status": "Withdrawn", "is_active": False})
    await store.insert_acceptance({**base, "id": "acc2", "challenge_id": "ch2", "status": "Accepted", "is_active": True})

    with pytest.raises(ConflictError):
        await store.update_acceptance("acc1", {"status": "Accepted", "is_active": True})

    assert (await store.get_acceptance("acc1"))["is_active"] is False


@pytest.mark.asyncio
async def test_claim_acceptance_requires_expected_status(store, service, clock):
    acceptance = await service.accept_challenge("employee01", "ch1", committed(clock))

    claimed = await store.claim_acceptance(acceptance["id"], "Accepted", {"status": "Pending Review"})
    assert claimed["status"] == "Pending Review"

    assert await store.claim_acceptance(acceptance["id"], "Accepted", {"status": "Withdrawn"}) is None
    assert await store.claim_acceptance("missing", "Accepted", {"status": "Withdrawn"}) is None
    assert (await store.get_acceptance(acceptance["id"]))["status"] == "Pending Review"


@pytest.mark.asyncio
async def test_acceptance_status(service, clock):
    status = await service.get_acceptance_status("employee01", "ch1")
    assert status["can_accept"] is True
    assert status["has_active_challenge"] is False
    assert status["status"]["effective_status"] == "Not Accepted"

    await service.accept_challenge("employee01", "ch1", committed(clock))

    status = await service.get_acceptance_status("employee01", "ch2")
    assert status["can_accept"] is False
    assert status["active_challenge_id"] == "ch1"


@pytest.mark.asyncio
async def test_acceptance_status_for_unknown_challenge(service):
    with pytest.raises(NotFoundError, match="Challenge not found"):
        await service.get_acceptance_status("employee01", "missing")

    with pytest.raises(NotFoundError):
        await service.list_challenge_acceptances("missing")


@pytest.mark.asyncio
async def test_list_acceptances(service, clock):
    first = await service.accept_challenge("employee01", "ch1", committed(clock))
    await service.withdraw_challenge("employee01", first["id"])
    clock.advance(minutes=1)
    await service.accept_challenge("employee01", "ch2", committed(clock))

    acceptances = await service.list_user_acceptances("employee01")
    assert [a["challenge_id"] for a in acceptances] == ["ch1", "ch2"]
    assert [a["resolved"]["effective_status"] for a in acceptances] == ["Withdrawn", "Accepted"]

    assert len(await service.list_challenge_acceptances("ch1")) == 1
