"""
Shared fixtures: in-memory stores, store doubles and workbook builders.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Iterator

import pytest
from openpyxl import Workbook

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.container import Container
from cooperativa.domain.config import AppConfig
from cooperativa.domain.models import CHANGE_LOG_TABLE
from cooperativa.infrastructure.store import SqliteTableStore, StoreError


def table_name(table: Any) -> str:
    return str(getattr(table, "value", table))


class RecordingStore:
    """
    Delegates to a real store and records every call.

    ``calls`` holds ``(method, table, args, kwargs)`` tuples in call order.
    """

    def __init__(self, inner: SqliteTableStore):
        self.inner = inner
        self.calls: list[tuple[str, str, tuple, dict]] = []

    def __getattr__(self, name: str):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            table = table_name(args[0]) if args else ""
            self.calls.append((name, table, args[1:], kwargs))
            return attr(*args, **kwargs)

        return wrapper

    def calls_to(self, method: str, table: str | None = None) -> list[tuple[str, str, tuple, dict]]:
        return [c for c in self.calls if c[0] == method and (table is None or c[1] == table)]

    def reset(self) -> None:
        self.calls.clear()


class ChangeLogDownStore:
    """Real store whose change-log table is unreachable."""

    def __init__(self, inner: SqliteTableStore):
        self.inner = inner
        self.failed_inserts = 0

    def __getattr__(self, name: str):
        return getattr(self.inner, name)

    def insert(self, table, row):
        if table_name(table) == CHANGE_LOG_TABLE:
            self.failed_inserts += 1
            raise StoreError('relation "registro_cambios" does not exist')
        return self.inner.insert(table, row)

    def list_rows(self, table, *args, **kwargs):
        if table_name(table) == CHANGE_LOG_TABLE:
            raise StoreError('relation "registro_cambios" does not exist')
        return self.inner.list_rows(table, *args, **kwargs)


@pytest.fixture
def store() -> Iterator[SqliteTableStore]:
    """Fresh in-memory store with the schema created."""
    store = SqliteTableStore(":memory:")
    store.initialize_schema()
    yield store
    store.close()


@pytest.fixture
def change_log(store) -> ChangeLog:
    return ChangeLog(store)


@pytest.fixture
def recording_store(store) -> RecordingStore:
    return RecordingStore(store)


@pytest.fixture
def container(store) -> Container:
    return Container(AppConfig(database_path=":memory:"), store=store)


def change_log_rows(store: SqliteTableStore) -> list[dict[str, Any]]:
    """Change-log rows in insertion order."""
    return store.list_rows(CHANGE_LOG_TABLE, order_by="id")


def make_workbook(sheets: dict[str, list[list[Any]]]) -> bytes:
    """
    Build ``.xlsx`` bytes from ``{sheet name: [header, row, row, ...]}``.

    Stands in for a workbook edited by hand in a spreadsheet program.
    """
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title=title)
        for row in rows:
            ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
