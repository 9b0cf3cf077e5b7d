"""
MongoDB Record Store

Backed by motor. Uniqueness rules are enforced by the indexes created in
Database.create_indexes(); a duplicate key surfaces as ConflictError.
"""
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Dict, Any, Optional, List, AsyncIterator

from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorClientSession
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from challengehub.models.challenge.review import ReviewStatus
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError

_current_session: ContextVar[Optional[AsyncIOMotorClientSession]] = ContextVar("mongo_store_session", default=None)

# Hide Mongo's own _id from every record handed to the services
NO_ID = {"_id": 0}


class MongoRecordStore(RecordStore):
    """Record store backed by MongoDB collections"""

    store_id = "mongo"

    def __init__(self, db: AsyncIOMotorDatabase, use_transactions: bool = True):
        self.db = db
        self.use_transactions = use_transactions
        self.users = db.users
        self.challenges = db.challenges
        self.acceptances = db.challenge_acceptances
        self.submissions = db.challenge_submissions
        self.reviews = db.submission_reviews
        self.points_records = db.points_records
        self.audit_log = db.challenge_audit_log

    @property
    def _session(self) -> Optional[AsyncIOMotorClientSession]:
        return _current_session.get()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if not self.use_transactions or self._session is not None:
            yield
            return
        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                token = _current_session.set(session)
                try:
                    yield
                finally:
                    _current_session.reset(token)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        if not self.use_transactions or self._session is not None:
            yield
            return
        async with await self.db.client.start_session(snapshot=True) as session:
            token = _current_session.set(session)
            try:
                yield
            finally:
                _current_session.reset(token)

    async def _insert(self, collection, document: Dict[str, Any], conflict_message: str) -> Dict[str, Any]:
        try:
            # insert_one adds _id to the dict it is given
            await collection.insert_one(dict(document), session=self._session)
        except DuplicateKeyError:
            raise ConflictError(conflict_message)
        return document

    async def _find_one(self, collection, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await collection.find_one(query, NO_ID, session=self._session)

    async def _find(self, collection, query: Dict[str, Any], sort_field: str, direction: int, limit: int = None) -> List[Dict[str, Any]]:
        cursor = collection.find(query, NO_ID, session=self._session).sort(sort_field, direction)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def _update(self, collection, query: Dict[str, Any], changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return await collection.find_one_and_update(
                query,
                {"$set": changes},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
                session=self._session
            )
        except DuplicateKeyError:
            # Only the partial index on active acceptances can trip on an update
            raise ConflictError("You already have an active challenge. Complete it first.")

    @staticmethod
    def _query(**filters) -> Dict[str, Any]:
        return {key: value for key, value in filters.items() if value is not None}

    # Users

    async def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.users, {"username": username})

    async def insert_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(self.users, user, f"User '{user['username']}' already exists")

    async def list_users(self) -> List[Dict[str, Any]]:
        return await self._find(self.users, {}, "username", ASCENDING)

    async def increment_user_points(self, username: str, amount: int) -> Optional[Dict[str, Any]]:
        return await self.users.find_one_and_update(
            {"username": username},
            {"$inc": {"total_points": amount}, "$set": {"updated_at": datetime.utcnow()}},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
            session=self._session
        )

    # Challenges

    async def get_challenge(self, challenge_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.challenges, {"id": challenge_id})

    async def insert_challenge(self, challenge: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(self.challenges, challenge, f"Challenge '{challenge['id']}' already exists")

    async def update_challenge(self, challenge_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(self.challenges, {"id": challenge_id}, changes)

    async def list_challenges(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._find(self.challenges, self._query(status=status), "created_at", DESCENDING)

    # Acceptances

    async def insert_acceptance(self, acceptance: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(
            self.acceptances,
            acceptance,
            "You already have an active challenge. Complete it first."
        )

    async def get_acceptance(self, acceptance_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.acceptances, {"id": acceptance_id})

    async def list_acceptances(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self._query(username=username, challenge_id=challenge_id, status=status)
        return await self._find(self.acceptances, query, "accepted_at", ASCENDING)

    async def update_acceptance(self, acceptance_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(self.acceptances, {"id": acceptance_id}, changes)

    async def claim_acceptance(
        self,
        acceptance_id: str,
        expected_status: str,
        changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return await self._update(
            self.acceptances,
            {"id": acceptance_id, "status": expected_status},
            changes
        )

    # Submissions

    async def insert_submission(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(
            self.submissions,
            submission,
            "You have already submitted a solution for this challenge"
        )

    async def get_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.submissions, {"id": submission_id})

    async def find_submission(self, username: str, challenge_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.submissions, {"username": username, "challenge_id": challenge_id})

    async def list_submissions(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self._query(username=username, challenge_id=challenge_id)
        return await self._find(self.submissions, query, "submitted_at", DESCENDING)

    async def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(self.submissions, {"id": submission_id}, changes)

    # Reviews

    async def insert_review(self, review: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(self.reviews, review, "A review already exists for this submission")

    async def get_review_for_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        return await self._find_one(self.reviews, {"submission_id": submission_id})

    async def list_reviews(
        self,
        status: Optional[str] = None,
        username: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self._query(status=status, username=username)
        return await self._find(self.reviews, query, "submission_date", DESCENDING)

    async def claim_pending_review(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(
            self.reviews,
            {"submission_id": submission_id, "status": ReviewStatus.PENDING_REVIEW.value},
            changes
        )

    # Points ledger

    async def insert_points_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert(self.points_records, record, "Points already recorded for this challenge")

    async def list_points_records(self, username: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._find(self.points_records, self._query(username=username), "awarded_at", DESCENDING)

    # Audit trail

    async def insert_audit_entry(self, entry: Dict[str, Any]) -> None:
        await self.audit_log.insert_one(dict(entry), session=self._session)

    async def list_audit_entries(
        self,
        challenge_id: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        query = self._query(challenge_id=challenge_id, username=username)
        return await self._find(self.audit_log, query, "timestamp", DESCENDING, limit=limit)
