"""
User Routers - User API endpoints

Provides endpoints for:
- POST /register - Register new user (guarded by the access list)
- GET /me - Get current user profile (bearer token auth)
"""

from fastapi import APIRouter, Depends, HTTPException, status

from altiora.access.access_dependencies import get_access_store, get_registration_gate
from altiora.access.access_store import AccessListStore
from altiora.access.registration_gate import RegistrationGate
from altiora.auth.auth_models import SessionUser
from altiora.auth.auth_services import get_current_user_session
from altiora.users.user_models import UserRegisterRequest, UserResponse
from altiora.users.user_services import user_service

router = APIRouter(prefix="/users", tags=["users"])


# ================== Public Endpoints ==================


@router.post("/register", response_model=UserResponse)
async def register_user(
    body: UserRegisterRequest,
    gate: RegistrationGate = Depends(get_registration_gate),
    store: AccessListStore = Depends(get_access_store),
) -> UserResponse:
    """
    Register a new user.
    Only approved access-list emails may register while the gate is enforced.
    Returns 403 with NOT_WHITELISTED / PENDING_APPROVAL / ACCESS_REJECTED otherwise.
    """
    await gate.check(body.model_dump())

    if body.email is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is required",
        )

    try:
        user = await user_service.create_user(body.email, body.password, body.name)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    if await store.find_by_email(user["email"]):
        await store.link_user(user["email"], user["user_id"])

    return user_service.build_user_response(user, "User registered successfully")


# ================== Authenticated User Endpoints ==================


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: SessionUser = Depends(get_current_user_session),
) -> UserResponse:
    """
    Get current authenticated user's profile.
    Requires a bearer token.
    """
    user = await user_service.get_user_by_id(current_user.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user_service.build_user_response(user, "User profile retrieved")
