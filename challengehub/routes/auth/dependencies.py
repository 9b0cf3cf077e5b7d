from typing import Optional
from fastapi import Depends, Header
from pydantic import ValidationError

import structlog

from challengehub.models.auth.user import UserCreate, UserRole
from challengehub.services.auth.user import UserService
from challengehub.services.store.base import RecordStore
from challengehub.services.store.factory import get_record_store

logger = structlog.get_logger(__name__)


async def get_store() -> RecordStore:
    """Record store dependency"""
    return get_record_store()


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[UserRole] = Header(None, alias="X-User-Role"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    x_user_department: Optional[str] = Header(None, alias="X-User-Department"),
    store: RecordStore = Depends(get_store)
) -> Optional[dict]:
    """
    Get current user from the identity headers.

    Authentication happens upstream; the username in X-User-Id is trusted.
    Users are onboarded on first request, seeded from the optional
    X-User-Role / X-User-Name / X-User-Department headers.
    """
    if not x_user_id or not x_user_id.strip():
        return None
    
    try:
        user_data = UserCreate(
            username=x_user_id.strip(),
            display_name=x_user_name,
            role=x_user_role or UserRole.EMPLOYEE,
            department=x_user_department
        )
    except ValidationError as e:
        logger.warning("identity_header_invalid", error=str(e))
        return None
    
    user_service = UserService(store)
    return await user_service.ensure_user(user_data)
