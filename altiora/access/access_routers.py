"""
Access Routers - whitelist / waitlist API endpoints

Provides endpoints for:
- POST /whitelist/add - Add an approved email (admin)
- POST /waitlist/join - Join the waitlist (public)
- POST /access/update-status - Set any status (admin)
- POST /waitlist/approve - Approve one waitlist entry (admin)
- POST /waitlist/approve-cohort - Approve the oldest pending entries (admin)
- POST /access/check - Look up an email's status (public)
- GET /access/list - Browse the access list (admin)

All of them share one per-IP rate limit bucket. Status notifications are
queued as background tasks, so they run only after the response is sent.
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from altiora.access.access_dependencies import get_access_service
from altiora.access.access_models import (
    AccessListQuery,
    AccessResponse,
    ApproveCohortRequest,
    EmailRequest,
    UpdateStatusRequest,
)
from altiora.access.access_services import AccessControlService
from altiora.access.notifications import dispatch_status_notifications
from altiora.auth.auth_models import SessionUser
from altiora.auth.auth_services import require_admin
from altiora.core.rate_limit import access_list_limit

router = APIRouter(tags=["access"])


def _queue_notifications(background_tasks: BackgroundTasks, service: AccessControlService, changes) -> None:
    if changes and service.options.send_status_notification:
        background_tasks.add_task(
            dispatch_status_notifications,
            service.options.send_status_notification,
            changes,
        )


# ================== Admin Endpoints ==================


@router.post("/whitelist/add", response_model=AccessResponse)
@access_list_limit
async def add_to_whitelist(
    request: Request,
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """
    Add an email directly to the whitelist (status approved).
    Returns 400 EMAIL_ALREADY_EXISTS if the email already has an entry.
    """
    result, changes = await service.add_to_whitelist(body.email, admin.user_id)
    _queue_notifications(background_tasks, service, changes)
    return AccessResponse(message=result.message)


@router.post("/access/update-status", response_model=AccessResponse)
@access_list_limit
async def update_access_status(
    request: Request,
    body: UpdateStatusRequest,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """
    Set an arbitrary status on an existing entry.
    Returns 404 EMAIL_NOT_FOUND if the email has no entry.
    """
    result, changes = await service.update_access_status(body.email, body.status)
    _queue_notifications(background_tasks, service, changes)
    return AccessResponse(message=result.message)


@router.post("/waitlist/approve", response_model=AccessResponse)
@access_list_limit
async def approve_waitlist_user(
    request: Request,
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """
    Approve a single waitlist entry.
    Already approved entries are left as they are.
    """
    result, changes = await service.approve_waitlist_user(body.email, admin.user_id)
    _queue_notifications(background_tasks, service, changes)
    return AccessResponse(message=result.message)


@router.post("/waitlist/approve-cohort", response_model=AccessResponse)
@access_list_limit
async def approve_waitlist_cohort(
    request: Request,
    body: ApproveCohortRequest,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """
    Approve up to `count` pending entries, oldest first.
    Returns approved_count 0 when nobody is waiting.
    """
    result, changes = await service.approve_waitlist_cohort(body.count, admin.user_id)
    _queue_notifications(background_tasks, service, changes)
    return AccessResponse(
        message=result.message,
        data={"approved_count": result.approved_count, "approved_emails": result.approved_emails},
    )


@router.get("/access/list", response_model=AccessResponse)
@access_list_limit
async def list_access_entries(
    request: Request,
    query: Annotated[AccessListQuery, Query()],
    admin: SessionUser = Depends(require_admin),
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """Browse the access list with search, status filter, sorting and pagination."""
    page = await service.list_access_entries(query)
    return AccessResponse(message="Access list retrieved", data=page.model_dump(mode="json"))


# ================== Public Endpoints ==================


@router.post("/waitlist/join", response_model=AccessResponse)
@access_list_limit
async def join_waitlist(
    request: Request,
    body: EmailRequest,
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """
    Join the waitlist.
    Returns 403 WAITLIST_DISABLED when self-service joining is turned off.
    """
    result = await service.join_waitlist(body.email)
    return AccessResponse(message=result.message)


@router.post("/access/check", response_model=AccessResponse)
@access_list_limit
async def check_access_status(
    request: Request,
    body: EmailRequest,
    service: AccessControlService = Depends(get_access_service),
) -> AccessResponse:
    """Check whether an email is approved, pending, rejected or unknown."""
    result = await service.check_access_status(body.email)
    return AccessResponse(message="Access status retrieved", data=result.model_dump(exclude_none=True))
