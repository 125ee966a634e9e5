"""
User Services - Business logic for user operations
"""

import logging
from datetime import datetime as dt
from datetime import timezone as tz
from typing import Optional

from altiora.auth.auth_models import USER_ROLE
from altiora.core.adapter import DuplicateRecordError, Where
from altiora.core.db_manager import get_db
from altiora.core.security import generate_user_id, hash_password
from altiora.users.user_models import UserCreate, UserProfileResponse, UserResponse

logger = logging.getLogger("app")

TABLE = "users"


class UserService:
    """User service handling user operations."""

    @property
    def db(self):
        """Get database adapter from global manager."""
        return get_db()

    # ================== Response Builders ==================

    def _build_user_profile_response(self, user: dict) -> UserProfileResponse:
        """Build UserProfileResponse from user dict."""
        return UserProfileResponse(
            user_id=user["user_id"],
            email=user["email"],
            name=user["name"],
            role=user["role"],
            is_active=user["is_active"],
            created_at=user["created_at"],
            updated_at=user["updated_at"],
        )

    def build_user_response(
        self,
        user: dict,
        message: str = "User retrieved",
    ) -> UserResponse:
        """Build complete UserResponse wrapper."""
        return UserResponse(
            status=1,
            message=message,
            data=self._build_user_profile_response(user),
        )

    # ================== User CRUD ==================

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        """Get active user by user_id."""
        return await self.db.find_one(
            TABLE,
            [Where(field="user_id", value=user_id), Where(field="is_active", value=True)],
        )

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        """Get user by email (case-insensitive)."""
        return await self.db.find_one(TABLE, [Where(field="email", value=email.strip().lower())])

    async def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: str = USER_ROLE,
    ) -> dict:
        """
        Create a new user.

        Raises ValueError if email already exists.
        """
        email = email.strip().lower()
        if await self.get_user_by_email(email):
            raise ValueError("Email already registered")

        # Generate unique user_id
        user_id = generate_user_id()
        while await self.db.find_one(TABLE, [Where(field="user_id", value=user_id)]):
            user_id = generate_user_id()

        now = dt.now(tz.utc)
        user_data = UserCreate(
            user_id=user_id,
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        try:
            user = await self.db.create(TABLE, user_data.model_dump())
        except DuplicateRecordError as e:
            raise ValueError("Email already registered") from e

        logger.info(f"User {user_id} registered")
        return user


# Global user service instance
user_service = UserService()
