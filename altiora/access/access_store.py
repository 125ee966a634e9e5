"""
Access List Store - data access for the access_list table

Emails are lowercased here, at the boundary, on every read and write path.
"""

import math
from datetime import datetime as dt
from datetime import timezone as tz
from typing import List, Optional, Tuple

from altiora.access.access_errors import AccessControlError, AccessErrorCode
from altiora.access.access_models import AccessListEntry, AccessListQuery, AccessStatus, Pagination
from altiora.core.adapter import DatabaseAdapter, DuplicateRecordError, Where
from altiora.core.security import generate_access_entry_id

TABLE = "access_list"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccessListStore:
    """Store for access list entries, unique on email."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    async def create(
        self,
        email: str,
        status: AccessStatus,
        added_by: Optional[str] = None,
    ) -> AccessListEntry:
        """
        Create an entry.

        Raises:
            AccessControlError: EMAIL_ALREADY_EXISTS if the email is already present
        """
        now = dt.now(tz.utc)
        entry = AccessListEntry(
            id=generate_access_entry_id(),
            email=normalize_email(email),
            status=status,
            added_by=added_by,
            user_id=None,
            created_at=now,
            updated_at=now,
        )
        data = entry.model_dump()
        data["status"] = entry.status.value
        try:
            row = await self.db.create(TABLE, data)
        except DuplicateRecordError as e:
            raise AccessControlError(AccessErrorCode.EMAIL_ALREADY_EXISTS) from e
        return AccessListEntry(**row)

    async def find_by_email(self, email: str) -> Optional[AccessListEntry]:
        row = await self.db.find_one(TABLE, [Where(field="email", value=normalize_email(email))])
        return AccessListEntry(**row) if row else None

    async def update_status(
        self,
        email: str,
        status: AccessStatus,
        added_by: Optional[str] = None,
    ) -> None:
        """Set the status (and optionally added_by); updated_at always moves forward."""
        update = {"status": status.value, "updated_at": dt.now(tz.utc)}
        if added_by is not None:
            update["added_by"] = added_by
        await self.db.update(TABLE, [Where(field="email", value=normalize_email(email))], update)

    async def find_pending_oldest_first(self, limit: int) -> List[AccessListEntry]:
        rows = await self.db.find_many(
            TABLE,
            where=[Where(field="status", value=AccessStatus.PENDING.value)],
            sort_by="created_at",
            limit=limit,
        )
        return [AccessListEntry(**row) for row in rows]

    async def link_user(self, email: str, user_id: str) -> None:
        """Record the account created for this email."""
        await self.db.update(
            TABLE,
            [Where(field="email", value=normalize_email(email))],
            {"user_id": user_id, "updated_at": dt.now(tz.utc)},
        )

    async def list_entries(self, query: AccessListQuery) -> Tuple[List[AccessListEntry], Pagination]:
        """Return one page of entries plus pagination metadata."""
        where: List[Where] = []
        if query.search:
            where.append(Where(field="email", value=query.search.strip().lower(), operator="contains"))
        if query.status != "all":
            where.append(Where(field="status", value=query.status))

        total = await self.db.count(TABLE, where)
        rows = await self.db.find_many(
            TABLE,
            where=where,
            sort_by=query.sort_by,
            sort_desc=query.sort_order == "desc",
            limit=query.limit,
            offset=(query.page - 1) * query.limit,
        )

        total_pages = math.ceil(total / query.limit)
        pagination = Pagination(
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=total_pages,
            has_next_page=query.page < total_pages,
            has_previous_page=query.page > 1,
        )
        return [AccessListEntry(**row) for row in rows], pagination
