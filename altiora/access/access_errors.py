"""
Access Errors - typed error codes with fixed messages

Every failure of the access-control subsystem reaches the client as
{"status": 0, "code": <code>, "message": <fixed message>}.
"""

import logging
from enum import Enum

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("app")


class AccessErrorCode(str, Enum):
    NOT_WHITELISTED = "NOT_WHITELISTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACCESS_REJECTED = "ACCESS_REJECTED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    UNAUTHORIZED = "UNAUTHORIZED"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
    WAITLIST_DISABLED = "WAITLIST_DISABLED"
    EMAIL_REQUIRED = "EMAIL_REQUIRED"


ERROR_MESSAGES = {
    AccessErrorCode.NOT_WHITELISTED: "This email is not on the access list. Join the waitlist to request access.",
    AccessErrorCode.PENDING_APPROVAL: "Your access request is still pending approval.",
    AccessErrorCode.ACCESS_REJECTED: "Your access request has been rejected.",
    AccessErrorCode.ADMIN_REQUIRED: "Admin privileges are required for this action.",
    AccessErrorCode.UNAUTHORIZED: "You must be signed in to perform this action.",
    AccessErrorCode.EMAIL_ALREADY_EXISTS: "This email is already on the access list.",
    AccessErrorCode.EMAIL_NOT_FOUND: "This email was not found on the access list.",
    AccessErrorCode.WAITLIST_DISABLED: "The waitlist is currently closed.",
    AccessErrorCode.EMAIL_REQUIRED: "An email address is required.",
}

ERROR_STATUS_CODES = {
    AccessErrorCode.NOT_WHITELISTED: status.HTTP_403_FORBIDDEN,
    AccessErrorCode.PENDING_APPROVAL: status.HTTP_403_FORBIDDEN,
    AccessErrorCode.ACCESS_REJECTED: status.HTTP_403_FORBIDDEN,
    AccessErrorCode.ADMIN_REQUIRED: status.HTTP_403_FORBIDDEN,
    AccessErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    AccessErrorCode.EMAIL_ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    AccessErrorCode.EMAIL_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AccessErrorCode.WAITLIST_DISABLED: status.HTTP_403_FORBIDDEN,
    AccessErrorCode.EMAIL_REQUIRED: status.HTTP_400_BAD_REQUEST,
}


class AccessControlError(HTTPException):
    """HTTPException tagged with an AccessErrorCode."""

    def __init__(self, code: AccessErrorCode):
        self.code = code
        headers = {"WWW-Authenticate": "Bearer"} if code == AccessErrorCode.UNAUTHORIZED else None
        super().__init__(
            status_code=ERROR_STATUS_CODES[code],
            detail=ERROR_MESSAGES[code],
            headers=headers,
        )


async def access_control_exception_handler(request: Request, exc: AccessControlError) -> JSONResponse:
    """Render an AccessControlError as the standard error envelope."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code.value}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": 0, "code": exc.code.value, "message": exc.detail},
        headers=exc.headers,
    )
