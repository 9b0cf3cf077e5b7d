from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User roles"""
    EMPLOYEE = "Employee"
    MANAGEMENT = "Management"
    ADMIN = "Admin"


# Roles allowed to review submissions, approve and close challenges
MANAGER_ROLES = frozenset({UserRole.MANAGEMENT, UserRole.ADMIN})


class UserCreate(BaseModel):
    """Schema for onboarding a user"""
    username: str = Field(..., min_length=1, max_length=100)
    display_name: Optional[str] = None
    role: UserRole = UserRole.EMPLOYEE
    department: Optional[str] = None


class UserResponse(BaseModel):
    """Schema for user response"""
    username: str
    display_name: str
    role: UserRole
    department: Optional[str] = None
    total_points: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "username": "employee01",
                "display_name": "John Doe",
                "role": "Employee",
                "department": "Engineering",
                "total_points": 1200,
                "created_at": "2024-01-01T00:00:00",
                "updated_at": "2024-01-01T00:00:00"
            }
        }
