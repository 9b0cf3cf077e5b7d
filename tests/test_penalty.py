"""
Missed-deadline penalty sweep tests
"""
import asyncio
from datetime import timedelta

import pytest

from challengehub.models.challenge.submission import SubmissionCreate
from challengehub.services.challenge.acceptance import AcceptanceService
from challengehub.services.challenge.penalty import PenaltyService
from challengehub.services.challenge.submission import SubmissionService

from tests.conftest import SOLUTION


async def accept(store, clock, username="employee01", challenge_id="ch1", days=2):
    service = AcceptanceService(store, clock=clock)
    return await service.accept_challenge(username, challenge_id, clock.today() + timedelta(days=days))


@pytest.fixture
def service(store, clock):
    return PenaltyService(store, clock=clock)


@pytest.mark.asyncio
async def test_missed_deadline_is_penalised(store, clock, service):
    await accept(store, clock)
    clock.advance(days=3)

    result = await service.apply_missed_deadline_penalties()

    assert result["processed"] == 1
    assert result["penalized"] == [{"username": "employee01", "challenge_id": "ch1", "points": -50}]
    assert (await store.get_user("employee01"))["total_points"] == -50

    records = await store.list_points_records(username="employee01")
    assert [(r["points"], r["reason"]) for r in records] == [(-50, "no_submission")]


@pytest.mark.asyncio
async def test_committed_day_itself_is_not_penalised(store, clock, service):
    acceptance = await accept(store, clock)
    clock.advance(days=2)
    assert clock.today().isoformat() == acceptance["committed_date"]

    result = await service.apply_missed_deadline_penalties()

    assert result["processed"] == 0
    assert result["penalized"] == []


@pytest.mark.asyncio
async def test_sweep_is_idempotent(store, clock, service):
    await accept(store, clock)
    clock.advance(days=3)

    await service.apply_missed_deadline_penalties()
    second = await service.apply_missed_deadline_penalties()

    assert second["penalized"] == []
    assert second["skipped"] == 1
    assert (await store.get_user("employee01"))["total_points"] == -50


@pytest.mark.asyncio
async def test_concurrent_sweeps_penalise_once(store, clock, service):
    await accept(store, clock)
    await accept(store, clock, username="employee02", challenge_id="ch2")
    clock.advance(days=3)

    results = await asyncio.gather(*(service.apply_missed_deadline_penalties() for _ in range(3)))

    assert sum(len(r["penalized"]) for r in results) == 2
    assert (await store.get_user("employee01"))["total_points"] == -50
    assert (await store.get_user("employee02"))["total_points"] == -30


@pytest.mark.asyncio
async def test_zero_penalty_challenge_is_skipped(store, clock, service):
    await accept(store, clock, challenge_id="ch3")
    clock.advance(days=3)

    result = await service.apply_missed_deadline_penalties()

    assert result["skipped"] == 1
    assert (await store.get_user("employee01"))["total_points"] == 0


@pytest.mark.asyncio
async def test_submitted_and_withdrawn_pairs_are_ignored(store, clock, service):
    await accept(store, clock)
    await SubmissionService(store, clock=clock).submit_solution("employee01", SubmissionCreate(
        challenge_id="ch1",
        description=SOLUTION,
        technologies=["python"],
        source_code_url="https://git.example.com/team/report-bot"
    ))
    withdrawn = await accept(store, clock, username="employee02", challenge_id="ch2")
    await AcceptanceService(store, clock=clock).withdraw_challenge("employee02", withdrawn["id"])
    clock.advance(days=5)

    result = await service.apply_missed_deadline_penalties()

    assert result["processed"] == 0
    assert result["penalized"] == []


@pytest.mark.asyncio
async def test_explicit_today(store, clock, service):
    await accept(store, clock)

    result = await service.apply_missed_deadline_penalties(today=clock.today() + timedelta(days=10))

    assert len(result["penalized"]) == 1
