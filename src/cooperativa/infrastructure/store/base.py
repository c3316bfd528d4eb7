"""
Table store interface.

The rest of the application talks to persistence only through ``TableStore``:
rows by table name, plain-dict in and out, plus a payload-free change feed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, Protocol

# Called with no arguments whenever a table changed; means "please refetch".
ChangeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]

Row = dict[str, Any]
Where = Mapping[str, Any]


class StoreErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONSTRAINT = "constraint"
    OPERATIONAL = "operational"


class StoreError(Exception):
    """A store call failed. ``kind`` tells callers why."""

    def __init__(self, message: str, kind: StoreErrorKind = StoreErrorKind.OPERATIONAL) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind

    def with_context(self, context: str) -> StoreError:
        """Same error with a human-readable prefix (``"<context>: <message>"``)."""
        return StoreError(f"{context}: {self.message}", self.kind)


class TableStore(Protocol):
    """Generic transactional table store."""

    def list_rows(
        self,
        table: str,
        where: Where | None = None,
        order_by: str | Sequence[str] = "id",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]: ...

    def insert(self, table: str, row: Mapping[str, Any]) -> Row: ...

    def insert_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> list[Row]: ...

    def update(self, table: str, row_id: int, patch: Mapping[str, Any]) -> Row: ...

    def delete(self, table: str, row_id: int) -> Row | None: ...

    def upsert(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        conflict_key: Sequence[str] = ("id",),
    ) -> None: ...

    def delete_where(self, table: str, where: Where | None = None) -> int: ...

    def subscribe_changes(self, table: str, callback: ChangeCallback) -> Unsubscribe: ...
