"""
User Models - Pydantic schemas for user operations
"""

from datetime import datetime as dt
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ================== Request Models ==================

class UserRegisterRequest(BaseModel):
    """
    User registration request body.

    Email is optional at the schema level so the registration gate can
    answer a missing email with EMAIL_REQUIRED.
    """
    email: Optional[EmailStr] = None
    password: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=255)


# ================== Response Models ==================

class UserProfileResponse(BaseModel):
    """Full user profile response (for authenticated user)."""
    user_id: str
    email: str
    name: str
    role: str
    is_active: bool
    created_at: dt
    updated_at: dt


class UserResponse(BaseModel):
    """Standard user response wrapper."""
    status: int = 1
    message: str
    data: UserProfileResponse


# ================== Internal Models ==================

class UserCreate(BaseModel):
    """Internal model for creating a user."""
    user_id: str
    email: str
    name: str
    password_hash: str
    role: str
    is_active: bool = True
    created_at: dt
    updated_at: dt
