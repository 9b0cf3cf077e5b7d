"""
In-memory Record Store

Dict-backed store for tests and single-process demos. Every operation runs
under one asyncio.Lock; transaction() holds the lock for the whole unit and
restores the previous state if the unit raises.
"""
import copy
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Dict, Any, Optional, List, AsyncIterator

import asyncio

from challengehub.models.challenge.acceptance import is_active_status
from challengehub.models.challenge.review import ReviewStatus
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError

# Store whose lock the current task holds
_unit_owner: ContextVar[Optional["InMemoryRecordStore"]] = ContextVar("memory_store_unit_owner", default=None)

TABLES = ("users", "challenges", "acceptances", "submissions", "reviews", "points_records", "audit_log")


def _sort_key(field: str):
    return lambda record: record.get(field) or datetime.min


class InMemoryRecordStore(RecordStore):
    """Record store kept in process memory"""

    store_id = "memory"

    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in TABLES}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _unit(self) -> AsyncIterator[None]:
        if _unit_owner.get() is self:
            yield
            return
        async with self._lock:
            token = _unit_owner.set(self)
            try:
                yield
            finally:
                _unit_owner.reset(token)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _unit_owner.get() is self:
            yield
            return
        async with self._lock:
            token = _unit_owner.set(self)
            backup = copy.deepcopy(self._tables)
            try:
                yield
            except BaseException:
                self._tables = backup
                raise
            finally:
                _unit_owner.reset(token)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        async with self._unit():
            yield

    def _table(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._tables[name]

    def _select(self, name: str, **filters) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(record)
            for record in self._table(name).values()
            if all(value is None or record.get(key) == value for key, value in filters.items())
        ]

    def _update(self, name: str, key: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = self._table(name).get(key)
        if record is None:
            return None
        record.update(copy.deepcopy(changes))
        return copy.deepcopy(record)

    # Users

    async def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            user = self._table("users").get(username)
            return copy.deepcopy(user) if user else None

    async def insert_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            users = self._table("users")
            if user["username"] in users:
                raise ConflictError(f"User '{user['username']}' already exists")
            users[user["username"]] = copy.deepcopy(user)
            return copy.deepcopy(user)

    async def list_users(self) -> List[Dict[str, Any]]:
        async with self._unit():
            return self._select("users")

    async def increment_user_points(self, username: str, amount: int) -> Optional[Dict[str, Any]]:
        async with self._unit():
            user = self._table("users").get(username)
            if user is None:
                return None
            user["total_points"] = user.get("total_points", 0) + amount
            user["updated_at"] = datetime.utcnow()
            return copy.deepcopy(user)

    # Challenges

    async def get_challenge(self, challenge_id: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            challenge = self._table("challenges").get(challenge_id)
            return copy.deepcopy(challenge) if challenge else None

    async def insert_challenge(self, challenge: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            challenges = self._table("challenges")
            if challenge["id"] in challenges:
                raise ConflictError(f"Challenge '{challenge['id']}' already exists")
            challenges[challenge["id"]] = copy.deepcopy(challenge)
            return copy.deepcopy(challenge)

    async def update_challenge(self, challenge_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._unit():
            return self._update("challenges", challenge_id, changes)

    async def list_challenges(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        async with self._unit():
            challenges = self._select("challenges", status=status)
            return sorted(challenges, key=_sort_key("created_at"), reverse=True)

    # Acceptances

    async def insert_acceptance(self, acceptance: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            acceptances = self._table("acceptances")
            if is_active_status(acceptance["status"]):
                for existing in acceptances.values():
                    if existing["username"] == acceptance["username"] and existing.get("is_active"):
                        raise ConflictError("You already have an active challenge. Complete it first.")
            acceptances[acceptance["id"]] = copy.deepcopy(acceptance)
            return copy.deepcopy(acceptance)

    async def get_acceptance(self, acceptance_id: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            acceptance = self._table("acceptances").get(acceptance_id)
            return copy.deepcopy(acceptance) if acceptance else None

    async def list_acceptances(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        async with self._unit():
            acceptances = self._select("acceptances", username=username, challenge_id=challenge_id, status=status)
            return sorted(acceptances, key=_sort_key("accepted_at"))

    def _check_single_active(self, acceptance_id: str, changes: Dict[str, Any]) -> None:
        current = self._table("acceptances").get(acceptance_id)
        if current is None or not changes.get("is_active"):
            return
        for key, existing in self._table("acceptances").items():
            if key != acceptance_id and existing["username"] == current["username"] and existing.get("is_active"):
                raise ConflictError("You already have an active challenge. Complete it first.")

    async def update_acceptance(self, acceptance_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._unit():
            self._check_single_active(acceptance_id, changes)
            return self._update("acceptances", acceptance_id, changes)

    async def claim_acceptance(
        self,
        acceptance_id: str,
        expected_status: str,
        changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        async with self._unit():
            acceptance = self._table("acceptances").get(acceptance_id)
            if acceptance is None or acceptance["status"] != expected_status:
                return None
            self._check_single_active(acceptance_id, changes)
            return self._update("acceptances", acceptance_id, changes)

    # Submissions

    async def insert_submission(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            submissions = self._table("submissions")
            for existing in submissions.values():
                if (existing["username"], existing["challenge_id"]) == (submission["username"], submission["challenge_id"]):
                    raise ConflictError("You have already submitted a solution for this challenge")
            submissions[submission["id"]] = copy.deepcopy(submission)
            return copy.deepcopy(submission)

    async def get_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            submission = self._table("submissions").get(submission_id)
            return copy.deepcopy(submission) if submission else None

    async def find_submission(self, username: str, challenge_id: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            matches = self._select("submissions", username=username, challenge_id=challenge_id)
            return matches[0] if matches else None

    async def list_submissions(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        async with self._unit():
            submissions = self._select("submissions", username=username, challenge_id=challenge_id)
            return sorted(submissions, key=_sort_key("submitted_at"), reverse=True)

    async def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._unit():
            return self._update("submissions", submission_id, changes)

    # Reviews

    async def insert_review(self, review: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            reviews = self._table("reviews")
            if review["submission_id"] in reviews:
                raise ConflictError("A review already exists for this submission")
            reviews[review["submission_id"]] = copy.deepcopy(review)
            return copy.deepcopy(review)

    async def get_review_for_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        async with self._unit():
            review = self._table("reviews").get(submission_id)
            return copy.deepcopy(review) if review else None

    async def list_reviews(
        self,
        status: Optional[str] = None,
        username: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        async with self._unit():
            reviews = self._select("reviews", status=status, username=username)
            return sorted(reviews, key=_sort_key("submission_date"), reverse=True)

    async def claim_pending_review(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._unit():
            review = self._table("reviews").get(submission_id)
            if review is None or review["status"] != ReviewStatus.PENDING_REVIEW:
                return None
            return self._update("reviews", submission_id, changes)

    # Points ledger

    async def insert_points_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        async with self._unit():
            key = f"{record['username']}:{record['challenge_id']}:{record['reason']}"
            records = self._table("points_records")
            if key in records:
                raise ConflictError("Points already recorded for this challenge")
            records[key] = copy.deepcopy(record)
            return copy.deepcopy(record)

    async def list_points_records(self, username: Optional[str] = None) -> List[Dict[str, Any]]:
        async with self._unit():
            records = self._select("points_records", username=username)
            return sorted(records, key=_sort_key("awarded_at"), reverse=True)

    # Audit trail

    async def insert_audit_entry(self, entry: Dict[str, Any]) -> None:
        async with self._unit():
            audit_log = self._table("audit_log")
            audit_log[str(len(audit_log))] = copy.deepcopy(entry)

    async def list_audit_entries(
        self,
        challenge_id: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        async with self._unit():
            entries = self._select("audit_log", challenge_id=challenge_id, username=username)
            return sorted(entries, key=_sort_key("timestamp"), reverse=True)[:limit]
