"""
Access Services - status transitions for the access list

Transport-free: each mutating operation returns its result together with
the status changes that should be reported to the notification callback.
The router decides when those notifications run.
"""

import asyncio
import logging
from typing import List, Tuple

from altiora.access.access_errors import AccessControlError, AccessErrorCode
from altiora.access.access_models import (
    AccessCheckResult,
    AccessControlOptions,
    AccessListPage,
    AccessListQuery,
    AccessStatus,
    ActionResult,
    CohortResult,
    StatusChange,
)
from altiora.access.access_store import AccessListStore, normalize_email

logger = logging.getLogger("app")


class AccessControlService:
    """Whitelist / waitlist operations."""

    def __init__(self, store: AccessListStore, options: AccessControlOptions):
        self.store = store
        self.options = options

    # ================== Admin Operations ==================

    async def add_to_whitelist(self, email: str, admin_id: str) -> Tuple[ActionResult, List[StatusChange]]:
        """
        Add an email directly as approved.

        Raises:
            AccessControlError: EMAIL_ALREADY_EXISTS if the email has an entry
        """
        entry = await self.store.create(email, AccessStatus.APPROVED, added_by=admin_id)
        logger.info(f"{entry.email} added to whitelist by {admin_id}")

        change = StatusChange(email=entry.email, status=AccessStatus.APPROVED, old_status=None)
        return ActionResult(message="Email added to the whitelist"), [change]

    async def update_access_status(
        self,
        email: str,
        status: AccessStatus,
    ) -> Tuple[ActionResult, List[StatusChange]]:
        """
        Set an arbitrary status on an existing entry.

        Raises:
            AccessControlError: EMAIL_NOT_FOUND if the email has no entry
        """
        entry = await self.store.find_by_email(email)
        if entry is None:
            raise AccessControlError(AccessErrorCode.EMAIL_NOT_FOUND)

        await self.store.update_status(entry.email, status)
        logger.info(f"{entry.email} status {entry.status.value} -> {status.value}")

        change = StatusChange(email=entry.email, status=status, old_status=entry.status)
        return ActionResult(message=f"Status updated to {status.value}"), [change]

    async def approve_waitlist_user(self, email: str, admin_id: str) -> Tuple[ActionResult, List[StatusChange]]:
        """
        Approve one entry, recording the approving admin.

        Raises:
            AccessControlError: EMAIL_NOT_FOUND if the email has no entry
        """
        entry = await self.store.find_by_email(email)
        if entry is None:
            raise AccessControlError(AccessErrorCode.EMAIL_NOT_FOUND)

        if entry.status == AccessStatus.APPROVED:
            return ActionResult(message="User is already approved"), []

        await self.store.update_status(entry.email, AccessStatus.APPROVED, added_by=admin_id)
        logger.info(f"{entry.email} approved by {admin_id}")

        change = StatusChange(email=entry.email, status=AccessStatus.APPROVED, old_status=entry.status)
        return ActionResult(message="User has been approved"), [change]

    async def approve_waitlist_cohort(self, count: int, admin_id: str) -> Tuple[CohortResult, List[StatusChange]]:
        """
        Approve the `count` oldest pending entries (first come, first served).

        Updates are issued concurrently without a transaction; a partial batch
        is completed by running the cohort again.
        """
        pending = await self.store.find_pending_oldest_first(count)
        if not pending:
            return CohortResult(message="No pending waitlist entries found", approved_count=0), []

        emails = [entry.email for entry in pending]
        await asyncio.gather(
            *(self.store.update_status(email, AccessStatus.APPROVED, added_by=admin_id) for email in emails)
        )
        logger.info(f"Cohort of {len(emails)} approved by {admin_id}")

        changes = [
            StatusChange(email=email, status=AccessStatus.APPROVED, old_status=AccessStatus.PENDING)
            for email in emails
        ]
        result = CohortResult(
            message=f"Approved {len(emails)} users from the waitlist",
            approved_count=len(emails),
            approved_emails=emails,
        )
        return result, changes

    async def list_access_entries(self, query: AccessListQuery) -> AccessListPage:
        entries, pagination = await self.store.list_entries(query)
        return AccessListPage(entries=entries, pagination=pagination)

    # ================== Public Operations ==================

    async def join_waitlist(self, email: str) -> ActionResult:
        """
        Put an email on the waitlist.

        Approved and pending entries are left untouched; a rejected entry goes
        back to pending.

        Raises:
            AccessControlError: WAITLIST_DISABLED if self-service joining is off
        """
        if not self.options.allow_waitlist:
            raise AccessControlError(AccessErrorCode.WAITLIST_DISABLED)

        entry = await self.store.find_by_email(email)
        if entry is None:
            try:
                await self.store.create(email, AccessStatus.PENDING, added_by=None)
            except AccessControlError as e:
                # Lost a race with a concurrent join for the same email
                if e.code != AccessErrorCode.EMAIL_ALREADY_EXISTS:
                    raise
                return ActionResult(message="Email is already on the waitlist")
            logger.info(f"{normalize_email(email)} joined the waitlist")
            return ActionResult(message="Successfully joined the waitlist")

        if entry.status == AccessStatus.APPROVED:
            return ActionResult(message="Email is already approved")
        if entry.status == AccessStatus.PENDING:
            return ActionResult(message="Email is already on the waitlist")

        await self.store.update_status(entry.email, AccessStatus.PENDING)
        logger.info(f"{entry.email} rejoined the waitlist after rejection")
        return ActionResult(message="Successfully joined the waitlist")

    async def check_access_status(self, email: str) -> AccessCheckResult:
        entry = await self.store.find_by_email(email)
        if entry is None:
            return AccessCheckResult(status="not_found", can_join_waitlist=self.options.allow_waitlist)

        return AccessCheckResult(
            status=entry.status.value,
            is_approved=entry.status == AccessStatus.APPROVED,
            is_pending=entry.status == AccessStatus.PENDING,
            is_rejected=entry.status == AccessStatus.REJECTED,
        )
