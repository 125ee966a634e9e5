"""
Persistence Adapter

A small table-oriented contract (create / find_many / count / update) with
field-level equality and substring filters, sorting and limits. Services
depend on this contract instead of raw SQL so the same logic runs on
PostgreSQL or on the in-process store used for tests and local runs.
"""

import copy
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

import asyncpg
from pydantic import BaseModel

from altiora.core.postgres_database import PostgresAsyncClient

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class DuplicateRecordError(Exception):
    """Raised when a write violates a unique constraint."""

    def __init__(self, table: str, detail: str = ""):
        self.table = table
        super().__init__(f"Duplicate record in {table}: {detail}".rstrip(": "))


class Where(BaseModel):
    """Single filter condition on a column."""
    field: str
    value: Any
    operator: Literal["eq", "contains"] = "eq"


class DatabaseAdapter(ABC):
    """Table-oriented persistence contract."""

    @abstractmethod
    async def create(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it. Raises DuplicateRecordError on unique conflicts."""

    @abstractmethod
    async def find_many(
        self,
        table: str,
        where: Optional[Sequence[Where]] = None,
        sort_by: Optional[str] = None,
        sort_desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows matching every condition in `where`."""

    @abstractmethod
    async def count(self, table: str, where: Optional[Sequence[Where]] = None) -> int:
        """Count rows matching every condition in `where`."""

    @abstractmethod
    async def update(self, table: str, where: Sequence[Where], data: Dict[str, Any]) -> int:
        """Update matching rows with `data` and return the number of rows changed."""

    async def find_one(self, table: str, where: Sequence[Where]) -> Optional[Dict[str, Any]]:
        rows = await self.find_many(table, where=where, limit=1)
        return rows[0] if rows else None

    async def close(self) -> None:
        return None


# ================== PostgreSQL ==================


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresAdapter(DatabaseAdapter):
    """DatabaseAdapter backed by PostgresAsyncClient."""

    def __init__(self, client: PostgresAsyncClient):
        self.client = client

    def _build_where(
        self,
        where: Optional[Sequence[Where]],
        start: int = 1,
    ) -> Tuple[str, List[Any]]:
        """
        Build a WHERE clause with $n placeholders.

        Args:
            where: Conditions joined with AND
            start: Index of the first placeholder

        Returns:
            Tuple of (clause including the WHERE keyword or "", parameters)
        """
        if not where:
            return "", []

        parts = []
        params: List[Any] = []
        for index, condition in enumerate(where, start=start):
            column = _check_identifier(condition.field)
            if condition.operator == "contains":
                parts.append(f"{column} ILIKE ${index} ESCAPE '\\'")
                params.append(f"%{_escape_like(str(condition.value))}%")
            else:
                parts.append(f"{column} = ${index}")
                params.append(condition.value)

        return "WHERE " + " AND ".join(parts), params

    async def create(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        _check_identifier(table)
        for column in data:
            _check_identifier(column)
        try:
            return await self.client.insert_one(table, data)
        except asyncpg.exceptions.UniqueViolationError as e:
            raise DuplicateRecordError(table, str(e)) from e

    async def find_many(
        self,
        table: str,
        where: Optional[Sequence[Where]] = None,
        sort_by: Optional[str] = None,
        sort_desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        clause, params = self._build_where(where)
        query = f"SELECT * FROM {_check_identifier(table)} {clause}"

        if sort_by:
            direction = "DESC" if sort_desc else "ASC"
            query += f" ORDER BY {_check_identifier(sort_by)} {direction}"
        if limit is not None:
            params.append(int(limit))
            query += f" LIMIT ${len(params)}"
        if offset:
            params.append(int(offset))
            query += f" OFFSET ${len(params)}"

        return await self.client.read(query, *params)

    async def count(self, table: str, where: Optional[Sequence[Where]] = None) -> int:
        clause, params = self._build_where(where)
        query = f"SELECT COUNT(*) AS total FROM {_check_identifier(table)} {clause}"
        row = await self.client.read_one(query, *params)
        return int(row["total"]) if row else 0

    async def update(self, table: str, where: Sequence[Where], data: Dict[str, Any]) -> int:
        assignments = []
        params: List[Any] = []
        for column, value in data.items():
            params.append(value)
            assignments.append(f"{_check_identifier(column)} = ${len(params)}")

        clause, where_params = self._build_where(where, start=len(params) + 1)
        params.extend(where_params)

        query = f"UPDATE {_check_identifier(table)} SET {', '.join(assignments)} {clause}"
        try:
            result = await self.client.execute(query, *params)
        except asyncpg.exceptions.UniqueViolationError as e:
            raise DuplicateRecordError(table, str(e)) from e

        # Status string looks like "UPDATE 3"
        return int(result.split()[-1]) if result else 0

    async def close(self) -> None:
        await self.client.close()


# ================== In-memory ==================


DEFAULT_UNIQUE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "access_list": ("id", "email"),
    "users": ("user_id", "email"),
}


class MemoryAdapter(DatabaseAdapter):
    """
    In-process DatabaseAdapter.

    Rows live in plain lists per table. Unique columns are enforced on
    create and update; sorting is stable, so ties keep insertion order.
    """

    def __init__(self, unique_columns: Optional[Dict[str, Tuple[str, ...]]] = None):
        self.unique_columns = dict(DEFAULT_UNIQUE_COLUMNS if unique_columns is None else unique_columns)
        self.tables: Dict[str, List[Dict[str, Any]]] = {}

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row: Dict[str, Any], where: Optional[Sequence[Where]]) -> bool:
        for condition in where or []:
            current = row.get(condition.field)
            if condition.operator == "contains":
                if str(condition.value).lower() not in str(current or "").lower():
                    return False
            elif current != condition.value:
                return False
        return True

    def _check_unique(self, table: str, candidate: Dict[str, Any], skip: Optional[Dict[str, Any]] = None):
        for column in self.unique_columns.get(table, ()):
            value = candidate.get(column)
            if value is None:
                continue
            for row in self._rows(table):
                if row is not skip and row.get(column) == value:
                    raise DuplicateRecordError(table, f"{column}={value}")

    async def create(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self._check_unique(table, data)
        row = copy.deepcopy(data)
        self._rows(table).append(row)
        return copy.deepcopy(row)

    async def find_many(
        self,
        table: str,
        where: Optional[Sequence[Where]] = None,
        sort_by: Optional[str] = None,
        sort_desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        rows = [row for row in self._rows(table) if self._matches(row, where)]
        if sort_by:
            rows = sorted(rows, key=lambda row: row.get(sort_by), reverse=sort_desc)
        if offset:
            rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, table: str, where: Optional[Sequence[Where]] = None) -> int:
        return sum(1 for row in self._rows(table) if self._matches(row, where))

    async def update(self, table: str, where: Sequence[Where], data: Dict[str, Any]) -> int:
        changed = 0
        for row in self._rows(table):
            if self._matches(row, where):
                self._check_unique(table, {**row, **data}, skip=row)
                row.update(copy.deepcopy(data))
                changed += 1
        return changed
