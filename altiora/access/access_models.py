"""
Access Models - Pydantic schemas for the access list (whitelist / waitlist)
"""

from datetime import datetime as dt
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class AccessStatus(str, Enum):
    """Approval state of an access list entry."""
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


# (email, new_status, old_status) -> awaitable
StatusNotificationCallback = Callable[[str, AccessStatus, Optional[AccessStatus]], Awaitable[None]]


# ================== Configuration ==================

class AccessControlOptions(BaseModel):
    """Switches for the access-control subsystem, passed to every component."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    enforce_on_registration: bool = True
    allow_admin_management: bool = True
    allow_waitlist: bool = True
    admin_user_ids: List[str] = Field(default_factory=list)
    send_status_notification: Optional[StatusNotificationCallback] = None


# ================== Internal Models ==================

class AccessListEntry(BaseModel):
    """Row of the access_list table."""
    id: str
    email: str
    status: AccessStatus
    added_by: Optional[str] = None
    user_id: Optional[str] = None
    created_at: dt
    updated_at: dt


class StatusChange(BaseModel):
    """A status transition to report to the notification callback."""
    email: str
    status: AccessStatus
    old_status: Optional[AccessStatus] = None


# ================== Request Models ==================

class EmailRequest(BaseModel):
    """Request body carrying a single email."""
    email: EmailStr


class UpdateStatusRequest(BaseModel):
    """Admin request to set an arbitrary status."""
    email: EmailStr
    status: AccessStatus


class ApproveCohortRequest(BaseModel):
    """Admin request to approve the oldest `count` pending entries."""
    count: int = Field(gt=0)

    @field_validator("count", mode="before")
    @classmethod
    def reject_non_integers(cls, value: Any) -> Any:
        # Refuse 2.5 / "3" / True instead of coercing them
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("count must be a positive integer")
        return value


class AccessListQuery(BaseModel):
    """Filters, sort and pagination for the admin access list view."""
    search: Optional[str] = None
    status: Literal["all", "approved", "pending", "rejected"] = "all"
    sort_by: Literal["email", "status", "created_at"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


# ================== Response Models ==================

class ActionResult(BaseModel):
    """Outcome of an access list action."""
    success: bool = True
    message: str


class CohortResult(ActionResult):
    approved_count: int = 0
    approved_emails: List[str] = Field(default_factory=list)


class AccessCheckResult(BaseModel):
    """Public status lookup result."""
    status: Literal["not_found", "approved", "pending", "rejected"]
    can_join_waitlist: Optional[bool] = None
    is_approved: Optional[bool] = None
    is_pending: Optional[bool] = None
    is_rejected: Optional[bool] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class AccessListPage(BaseModel):
    entries: List[AccessListEntry]
    pagination: Pagination


class AccessResponse(BaseModel):
    """Standard response wrapper."""
    status: int = 1
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
