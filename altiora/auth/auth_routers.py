"""
Auth Routers - Authentication API endpoints

Provides endpoints for:
- POST /auth/email/login - exchange email/password for a bearer token
"""

from fastapi import APIRouter, HTTPException, status

from altiora.auth.auth_models import AccessTokenResponse, EmailLoginRequest
from altiora.auth.auth_services import auth_service
from altiora.core.security import ACCESS_TOKEN_EXPIRE_MINUTES

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/email/login", response_model=AccessTokenResponse)
async def email_login(body: EmailLoginRequest) -> AccessTokenResponse:
    """
    Login with email and password.
    Returns a JWT bearer token identifying the caller and their role.
    """
    user = await auth_service.authenticate_by_email(body.email, body.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AccessTokenResponse(
        access_token=auth_service.issue_access_token(user),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        message="Login successful",
    )
