from typing import List, Dict, Any
from datetime import datetime

import structlog

from challengehub.models.auth.user import UserRole, UserCreate
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user profiles and their challenge records"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def get_user(self, username: str) -> Dict[str, Any]:
        """Get a user by username"""
        user = await self.store.get_user(username)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, user_data: UserCreate) -> Dict[str, Any]:
        """Onboard a user with zero points"""
        now = datetime.utcnow()
        user = {
            "username": user_data.username,
            "display_name": user_data.display_name or user_data.username,
            "role": UserRole(user_data.role).value,
            "department": user_data.department,
            "total_points": 0,
            "created_at": now,
            "updated_at": now
        }
        await self.store.insert_user(user)
        logger.info("user_created", username=user["username"], role=user["role"])
        return user

    async def ensure_user(self, user_data: UserCreate) -> Dict[str, Any]:
        """Return the user, onboarding them on first sight"""
        user = await self.store.get_user(user_data.username)
        if user:
            return user

        try:
            return await self.create_user(user_data)
        except ConflictError:
            # Created by a concurrent request
            return await self.get_user(user_data.username)

    async def list_users(self) -> List[Dict[str, Any]]:
        return await self.store.list_users()

    async def get_user_data(self, username: str) -> Dict[str, Any]:
        """User profile with all related acceptances, submissions and reviews"""
        user = await self.get_user(username)

        async with self.store.snapshot():
            acceptances = await self.store.list_acceptances(username=username)
            submissions = await self.store.list_submissions(username=username)
            reviews = await self.store.list_reviews(username=username)

        return {
            "user": user,
            "acceptances": acceptances,
            "submissions": submissions,
            "reviews": reviews
        }

    async def get_points_history(self, username: str) -> Dict[str, Any]:
        """Points ledger for a user, newest first"""
        user = await self.get_user(username)
        records = await self.store.list_points_records(username=username)

        return {
            "username": username,
            "total_points": user.get("total_points", 0),
            "history": records
        }
