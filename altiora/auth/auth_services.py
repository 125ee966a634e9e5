"""
Auth Services - login, session resolution and the admin guard

The caller's session is a JWT bearer token; it is resolved against the
users table on every request so role changes apply immediately.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from altiora.access.access_dependencies import get_access_options
from altiora.access.access_errors import AccessControlError, AccessErrorCode
from altiora.access.access_models import AccessControlOptions
from altiora.auth.auth_models import ADMIN_ROLE, SessionUser
from altiora.core.security import create_access_token, decode_access_token, verify_password
from altiora.users.user_services import user_service

logger = logging.getLogger("app")

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    """Authentication service for email/password login and bearer tokens."""

    async def authenticate_by_email(self, email: str, password: str) -> Optional[dict]:
        """
        Authenticate user by email and password.

        Returns user dict if valid, None otherwise.
        """
        user = await user_service.get_user_by_email(email)
        if not user or not user.get("is_active"):
            return None

        if not verify_password(password, user["password_hash"]):
            return None

        return user

    def issue_access_token(self, user: dict) -> str:
        return create_access_token(user["user_id"], user["email"], user["role"])

    async def resolve_session(self, token: str) -> Optional[SessionUser]:
        """
        Resolve a bearer token to the current user.

        Returns None for invalid, expired or orphaned tokens.
        """
        payload = decode_access_token(token)
        if not payload or not payload.get("sub"):
            return None

        user = await user_service.get_user_by_id(payload["sub"])
        if not user:
            return None

        return SessionUser(user_id=user["user_id"], email=user["email"], role=user["role"])


# Global auth service instance
auth_service = AuthService()


def has_admin_access(user_id: str, role: Optional[str], options: AccessControlOptions) -> bool:
    """
    Decide admin privilege for access-list management.

    A non-empty admin_user_ids list is authoritative and the role is ignored;
    otherwise the role must be the admin role.
    """
    if options.admin_user_ids:
        return user_id in options.admin_user_ids
    return role == ADMIN_ROLE


# ================== FastAPI Dependencies ==================

async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionUser]:
    """Dependency: the caller's session, or None when not signed in."""
    if not credentials:
        return None
    return await auth_service.resolve_session(credentials.credentials)


async def get_current_user_session(
    session: Optional[SessionUser] = Depends(get_current_session),
) -> SessionUser:
    """Dependency: the caller's session; fails UNAUTHORIZED without one."""
    if session is None:
        raise AccessControlError(AccessErrorCode.UNAUTHORIZED)
    return session


async def require_admin(
    session: Optional[SessionUser] = Depends(get_current_session),
    options: AccessControlOptions = Depends(get_access_options),
) -> SessionUser:
    """
    Dependency: admin guard for access-list management endpoints.

    With allow_admin_management off, management is closed to every caller,
    admins included; the privilege check is not skipped.

    Raises:
        AccessControlError: UNAUTHORIZED without a session, ADMIN_REQUIRED when
            management is disabled or the caller lacks privilege
    """
    if session is None:
        raise AccessControlError(AccessErrorCode.UNAUTHORIZED)

    if not options.allow_admin_management or not has_admin_access(session.user_id, session.role, options):
        logger.warning(f"User {session.user_id} denied access-list management")
        raise AccessControlError(AccessErrorCode.ADMIN_REQUIRED)

    return session
