from typing import Optional, Dict, Any, List
from datetime import datetime

import structlog

from challengehub.models.challenge.audit import AuditAction, AuditEntry
from challengehub.services.store.base import RecordStore

logger = structlog.get_logger(__name__)


class AuditService:
    """Service for audit trail logging"""
    
    def __init__(self, store: RecordStore):
        self.store = store
    
    async def log_action(
        self,
        challenge_id: str,
        action: AuditAction,
        username: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Log an audit trail entry"""
        try:
            audit_entry = AuditEntry(
                challenge_id=challenge_id,
                action=action,
                username=username,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=metadata,
                timestamp=datetime.utcnow()
            )
            
            await self.store.insert_audit_entry(audit_entry.model_dump())
            return True
            
        except Exception as e:
            logger.warning("audit_log_failed", action=action.value, challenge_id=challenge_id, error=str(e))
            return False
    
    async def get_challenge_history(
        self,
        challenge_id: str,
        limit: int = 100
    ) -> List[Dict]:
        """Get audit history for a challenge"""
        return await self.store.list_audit_entries(challenge_id=challenge_id, limit=limit)
    
    async def get_user_actions(
        self,
        username: str,
        limit: int = 100
    ) -> List[Dict]:
        """Get actions by a user"""
        return await self.store.list_audit_entries(username=username, limit=limit)
