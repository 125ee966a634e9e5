"""
Registration Gate - blocks account creation for emails that are not approved
"""

import logging
from typing import Any, Mapping, Optional

from altiora.access.access_errors import AccessControlError, AccessErrorCode
from altiora.access.access_models import AccessControlOptions, AccessStatus
from altiora.access.access_store import AccessListStore

logger = logging.getLogger("app")


class RegistrationGate:
    """Pre-registration check against the access list."""

    def __init__(self, store: AccessListStore, options: AccessControlOptions):
        self.store = store
        self.options = options

    @property
    def enabled(self) -> bool:
        return self.options.enforce_on_registration

    async def check(self, payload: Optional[Mapping[str, Any]]) -> None:
        """
        Raise unless the payload's email is approved.

        Args:
            payload: Registration request body

        Raises:
            AccessControlError: EMAIL_REQUIRED, NOT_WHITELISTED,
                PENDING_APPROVAL or ACCESS_REJECTED
        """
        if not self.enabled:
            return

        email = payload.get("email") if payload else None
        if not email or not isinstance(email, str):
            raise AccessControlError(AccessErrorCode.EMAIL_REQUIRED)

        entry = await self.store.find_by_email(email)

        # Same error whether or not the waitlist accepts self-service joins
        if entry is None:
            logger.info(f"Registration blocked for {email.lower()}: not on access list")
            raise AccessControlError(AccessErrorCode.NOT_WHITELISTED)

        if entry.status == AccessStatus.PENDING:
            logger.info(f"Registration blocked for {entry.email}: pending approval")
            raise AccessControlError(AccessErrorCode.PENDING_APPROVAL)

        if entry.status == AccessStatus.REJECTED:
            logger.info(f"Registration blocked for {entry.email}: rejected")
            raise AccessControlError(AccessErrorCode.ACCESS_REJECTED)
