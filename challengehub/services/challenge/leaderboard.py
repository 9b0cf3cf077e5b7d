from typing import List, Dict, Any

from challengehub.models.challenge.review import ReviewStatus
from challengehub.services.challenge.status import StatusResolver
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import NotFoundError


class LeaderboardService:
    """Service for the points leaderboard - calculates from stored totals"""
    
    def __init__(self, store: RecordStore):
        self.store = store
        self.resolver = StatusResolver(store)
    
    def _get_rank_badge(self, points: int) -> str:
        """Determine rank badge based on total points"""
        if points >= 10000:
            return "Legend"
        elif points >= 5000:
            return "Champion"
        elif points >= 2500:
            return "Innovator"
        elif points >= 1000:
            return "Achiever"
        elif points > 0:
            return "Contributor"
        else:
            return "Newcomer"
    
    async def _build_rankings(self) -> List[Dict[str, Any]]:
        async with self.store.snapshot():
            users = await self.store.list_users()
            approved = await self.store.list_reviews(status=ReviewStatus.APPROVED.value)
        
        completed: Dict[str, int] = {}
        for review in approved:
            completed[review["username"]] = completed.get(review["username"], 0) + 1
        
        # Highest points first, username breaks ties so ranks are stable
        users.sort(key=lambda u: (-u.get("total_points", 0), u["username"]))
        
        rankings = []
        for position, user in enumerate(users, start=1):
            points = user.get("total_points", 0)
            rankings.append({
                "rank": position,
                "username": user["username"],
                "display_name": user.get("display_name") or user["username"],
                "department": user.get("department"),
                "total_points": points,
                "challenges_completed": completed.get(user["username"], 0),
                "rank_badge": self._get_rank_badge(points)
            })
        
        return rankings
    
    async def get_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Top users by total points"""
        rankings = await self._build_rankings()
        return rankings[:limit]
    
    async def get_user_rank(self, username: str) -> Dict[str, Any]:
        """A user's rank, points and current challenge"""
        rankings = await self._build_rankings()
        
        for entry in rankings:
            if entry["username"] == username:
                active = await self.resolver.find_active_acceptance(username)
                return {
                    **entry,
                    "total_users": len(rankings),
                    "active_challenge_id": active["challenge_id"] if active else None
                }
        
        raise NotFoundError("User not found")
