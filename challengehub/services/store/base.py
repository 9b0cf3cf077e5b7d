"""
Base Record Store
Abstract class defining the storage contract the challenge services rely on
"""
import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional, List, AsyncIterator


class RecordStore(ABC):
    """
    Abstract base class for record stores.
    All record stores must implement these methods.

    Records are plain dicts keyed by a string "id" (users are keyed by
    "username"). Getters return copies; callers write back through the
    update methods.

    Invariants a store must enforce at write time:
    - one user per username
    - at most one acceptance per username with is_active = True
    - one submission per (username, challenge_id)
    - one review per submission_id
    - one points record per (username, challenge_id, reason)
    Violations raise ConflictError.
    """

    store_id: str = "base"

    def user_lock(self, username: str) -> asyncio.Lock:
        """Per-username lock serialising check-then-insert sequences in this process"""
        locks = self.__dict__.setdefault("_user_locks", {})
        return locks.setdefault(username, asyncio.Lock())

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Group writes into one unit that commits entirely or not at all.
        Subclasses override this; the default offers no isolation.
        """
        yield

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        """Group reads so they observe one consistent state"""
        yield

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def list_users(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def increment_user_points(self, username: str, amount: int) -> Optional[Dict[str, Any]]:
        """Atomically add amount (may be negative) to total_points"""
        pass

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_challenge(self, challenge_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert_challenge(self, challenge: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def update_challenge(self, challenge_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_challenges(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        pass

    # ------------------------------------------------------------------
    # Acceptances
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_acceptance(self, acceptance: Dict[str, Any]) -> Dict[str, Any]:
        """Insert, raising ConflictError if the user already holds an active acceptance"""
        pass

    @abstractmethod
    async def get_acceptance(self, acceptance_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_acceptances(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Acceptances ordered by accepted_at ascending"""
        pass

    @abstractmethod
    async def update_acceptance(self, acceptance_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update, raising ConflictError if it would give the user a second active acceptance"""
        pass

    @abstractmethod
    async def claim_acceptance(
        self,
        acceptance_id: str,
        expected_status: str,
        changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Apply changes only while the acceptance still has expected_status.

        Returns the updated acceptance, or None when it is missing or has
        moved on to another status.
        """
        pass

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_submission(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        """Insert, raising ConflictError on a duplicate (username, challenge_id)"""
        pass

    @abstractmethod
    async def get_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find_submission(self, username: str, challenge_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_submissions(
        self,
        username: Optional[str] = None,
        challenge_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Submissions ordered by submitted_at descending"""
        pass

    @abstractmethod
    async def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pass

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_review(self, review: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def get_review_for_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_reviews(
        self,
        status: Optional[str] = None,
        username: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def claim_pending_review(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply changes only while the review is still pending.

        Returns the updated review, or None when the review is missing or
        already carries a terminal status.
        """
        pass

    # ------------------------------------------------------------------
    # Points ledger
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_points_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert, raising ConflictError on a duplicate (username, challenge_id, reason)"""
        pass

    @abstractmethod
    async def list_points_records(self, username: Optional[str] = None) -> List[Dict[str, Any]]:
        """Ledger entries ordered by awarded_at descending"""
        pass

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_audit_entry(self, entry: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def list_audit_entries(
        self,
        challenge_id: Optional[str] = None,
        username: Optional[str] = None,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Audit entries ordered by timestamp descending"""
        pass
