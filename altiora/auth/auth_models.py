"""
Auth Models - Pydantic schemas for authentication
"""

from pydantic import BaseModel, EmailStr

ADMIN_ROLE = "admin"
USER_ROLE = "user"


# ================== Request Models ==================

class EmailLoginRequest(BaseModel):
    """Email login request body."""
    email: EmailStr
    password: str


# ================== Response Models ==================

class AccessTokenResponse(BaseModel):
    """Bearer token issued on login."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    message: str


# ================== Internal Models ==================

class SessionUser(BaseModel):
    """The caller resolved from a bearer token."""
    user_id: str
    email: str
    role: str = USER_ROLE
