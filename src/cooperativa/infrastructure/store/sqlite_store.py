"""
SQLite-backed table store.

Implements ``TableStore`` over the tables described in ``domain.tables``:

- JSON and boolean columns are encoded on write and decoded on read
- ``created_at``/``updated_at`` are stamped by the store
- foreign keys are declared nowhere and never enforced
- change subscribers are notified after the write has committed

Uses stdlib sqlite3 with no ORM. One connection is shared by all threads and
guarded by a re-entrant lock.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from cooperativa.domain.datetime_utils import utc_now_iso
from cooperativa.domain.tables import ALL_SPECS, ColumnKind, TableSpec
from cooperativa.infrastructure.store.base import (
    ChangeCallback,
    Row,
    StoreError,
    StoreErrorKind,
    Unsubscribe,
    Where,
)

logger = logging.getLogger(__name__)

# Schema version - increment when making breaking changes
SCHEMA_VERSION = 1

MEMORY = ":memory:"

_COLLECTIONS = (list, tuple, set, frozenset)


class SqliteTableStore:
    """
    SQLite storage for every cooperative table and the change log.

    Usage:
        store = SqliteTableStore(Path("data/cooperativa.db"))
        store.initialize_schema()

        row = store.insert("ropa", {"cantidad": 3, "tipo": "verano", "talle": "M"})
        store.update("ropa", row["id"], {"cantidad": 4})
        store.list_rows("ropa", order_by="id")
    """

    def __init__(self, db_path: Path | str = MEMORY) -> None:
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (created if not exists),
                or ``":memory:"`` for a throwaway database
        """
        self.db_path = db_path if str(db_path) == MEMORY else Path(db_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._specs: dict[str, TableSpec] = {spec.name: spec for spec in ALL_SPECS}
        self._subscribers: dict[str, list[ChangeCallback]] = defaultdict(list)
        logger.info("SqliteTableStore initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,  # explicit BEGIN/COMMIT in _transaction
            )
            self._connection.row_factory = sqlite3.Row
            logger.debug("Database connection established")
        return self._connection

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
                logger.debug("Database connection closed")

    # ========================================================================
    # Schema Management
    # ========================================================================

    def initialize_schema(self) -> None:
        """
        Create database tables if they don't exist.

        Safe to call multiple times - uses CREATE TABLE IF NOT EXISTS.
        """
        with self._translate_errors(), self._transaction() as conn:
            for spec in ALL_SPECS:
                conn.execute(_create_table_sql(spec))

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """
            )
            conn.execute(
                "INSERT OR REPLACE INTO schema_meta (key, value) VALUES ('version', ?)",
                (str(SCHEMA_VERSION),),
            )
        logger.info("Database schema initialized (version %d)", SCHEMA_VERSION)

    # ========================================================================
    # Reads
    # ========================================================================

    def list_rows(
        self,
        table: str,
        where: Where | None = None,
        order_by: str | Sequence[str] = "id",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        spec = self._spec(table)
        clause, params = _where_sql(spec, where)
        if clause is None:
            return []

        columns = (order_by,) if isinstance(order_by, str) else tuple(order_by)
        for column in columns:
            _require_column(spec, column)
        direction = " DESC" if descending else ""
        sql = f"SELECT * FROM {spec.name}{clause}"
        if columns:
            sql += " ORDER BY " + ", ".join(f"{column}{direction}" for column in columns)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._translate_errors(), self._lock:
            cursor = self._get_connection().execute(sql, params)
            return [_decode_row(spec, row) for row in cursor.fetchall()]

    # ========================================================================
    # Writes
    # ========================================================================

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        spec = self._spec(table)
        with self._translate_errors(), self._transaction() as conn:
            created = self._insert_row(conn, spec, row)
        self._notify(spec.name)
        return created

    def insert_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> list[Row]:
        spec = self._spec(table)
        rows = list(rows)
        if not rows:
            return []
        with self._translate_errors(), self._transaction() as conn:
            created = [self._insert_row(conn, spec, row) for row in rows]
        self._notify(spec.name)
        return created

    def update(self, table: str, row_id: int, patch: Mapping[str, Any]) -> Row:
        spec = self._spec(table)
        values = _encode_row(spec, patch)
        values.pop("id", None)
        if "updated_at" in spec.timestamps:
            values["updated_at"] = utc_now_iso()

        with self._translate_errors(), self._transaction() as conn:
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                conn.execute(
                    f"UPDATE {spec.name} SET {assignments} WHERE id = ?",
                    [*values.values(), row_id],
                )
            updated = self._fetch_by_id(conn, spec, row_id)
            if updated is None:
                raise StoreError(f"No row with id {row_id} in {spec.name}", StoreErrorKind.NOT_FOUND)
        self._notify(spec.name)
        return updated

    def delete(self, table: str, row_id: int) -> Row | None:
        spec = self._spec(table)
        with self._translate_errors(), self._transaction() as conn:
            existing = self._fetch_by_id(conn, spec, row_id)
            if existing is None:
                return None
            conn.execute(f"DELETE FROM {spec.name} WHERE id = ?", (row_id,))
        self._notify(spec.name)
        return existing

    def upsert(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        conflict_key: Sequence[str] = ("id",),
    ) -> None:
        """
        Insert rows, updating the existing row on a ``conflict_key`` clash.

        Rows missing any key column are plain inserts. All rows are written in
        one transaction: a rejected row rejects the whole call.
        """
        spec = self._spec(table)
        rows = list(rows)
        if not rows:
            return
        key = tuple(conflict_key)
        for column in key:
            _require_column(spec, column)

        with self._translate_errors(), self._transaction() as conn:
            for row in rows:
                values = _encode_row(spec, row)
                if any(values.get(column) is None for column in key):
                    self._insert_row(conn, spec, row)
                    continue

                now = utc_now_iso()
                for stamp in spec.timestamps:
                    values[stamp] = now
                updates = [
                    column
                    for column in values
                    if column not in key and column != "created_at" and not (column == "id" and key != ("id",))
                ]
                action = (
                    "DO UPDATE SET " + ", ".join(f"{column} = excluded.{column}" for column in updates)
                    if updates
                    else "DO NOTHING"
                )
                conn.execute(
                    f"INSERT INTO {spec.name} ({', '.join(values)}) "
                    f"VALUES ({', '.join('?' for _ in values)}) "
                    f"ON CONFLICT ({', '.join(key)}) {action}",
                    list(values.values()),
                )
        logger.debug("Upserted %d rows into %s", len(rows), spec.name)
        self._notify(spec.name)

    def delete_where(self, table: str, where: Where | None = None) -> int:
        spec = self._spec(table)
        clause, params = _where_sql(spec, where)
        if clause is None:
            return 0
        with self._translate_errors(), self._transaction() as conn:
            deleted = conn.execute(f"DELETE FROM {spec.name}{clause}", params).rowcount
        if deleted:
            self._notify(spec.name)
        return deleted

    # ========================================================================
    # Change feed
    # ========================================================================

    def subscribe_changes(self, table: str, callback: ChangeCallback) -> Unsubscribe:
        spec = self._spec(table)
        with self._lock:
            self._subscribers[spec.name].append(callback)
        logger.debug("Subscribed to changes on %s", spec.name)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers[spec.name]
                if callback in callbacks:
                    callbacks.remove(callback)
                    logger.debug("Unsubscribed from changes on %s", spec.name)

        return unsubscribe

    def _notify(self, table_name: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(table_name, ()))
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Change subscriber for %s failed", table_name)

    # ========================================================================
    # Internals
    # ========================================================================

    def _spec(self, table: str) -> TableSpec:
        spec = self._specs.get(str(getattr(table, "value", table)))
        if spec is None:
            raise StoreError(f"Unknown table: {table}", StoreErrorKind.OPERATIONAL)
        return spec

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._get_connection()
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as exc:
            raise StoreError(str(exc), StoreErrorKind.CONSTRAINT) from exc
        except OverflowError as exc:
            raise StoreError(str(exc), StoreErrorKind.CONSTRAINT) from exc
        except sqlite3.Error as exc:
            logger.error("SQLite error: %s", exc)
            raise StoreError(str(exc), StoreErrorKind.OPERATIONAL) from exc

    def _insert_row(self, conn: sqlite3.Connection, spec: TableSpec, row: Mapping[str, Any]) -> Row:
        values = _encode_row(spec, row)
        if values.get("id") is None:
            values.pop("id", None)
        now = utc_now_iso()
        for stamp in spec.timestamps:
            values[stamp] = now

        if values:
            cursor = conn.execute(
                f"INSERT INTO {spec.name} ({', '.join(values)}) VALUES ({', '.join('?' for _ in values)})",
                list(values.values()),
            )
        else:
            cursor = conn.execute(f"INSERT INTO {spec.name} DEFAULT VALUES")
        created = self._fetch_by_id(conn, spec, cursor.lastrowid)
        if created is None:
            raise StoreError(f"Inserted row {cursor.lastrowid} not found in {spec.name}", StoreErrorKind.OPERATIONAL)
        return created

    def _fetch_by_id(self, conn: sqlite3.Connection, spec: TableSpec, row_id: int) -> Row | None:
        found = conn.execute(f"SELECT * FROM {spec.name} WHERE id = ?", (row_id,)).fetchone()
        return _decode_row(spec, found) if found is not None else None


# ============================================================================
# SQL building and value encoding
# ============================================================================


def _create_table_sql(spec: TableSpec) -> str:
    lines = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
    for column in spec.columns:
        if column.name == "id":
            continue
        line = f"{column.name} {column.sql_type}"
        if column.required:
            line += " NOT NULL"
        lines.append(line)
    for stamp in spec.timestamps:
        lines.append(f"{stamp} TEXT")
    if spec.unique_together:
        lines.append(f"UNIQUE ({', '.join(spec.unique_together)})")
    body = ",\n    ".join(lines)
    return f"CREATE TABLE IF NOT EXISTS {spec.name} (\n    {body}\n)"


def _require_column(spec: TableSpec, column: str) -> None:
    if column not in spec.stored_columns:
        raise StoreError(f"Unknown column {column!r} for table {spec.name}", StoreErrorKind.CONSTRAINT)


def _json_default(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode_value(spec: TableSpec, column: str, value: Any) -> Any:
    if value is None:
        return None
    column_spec = spec.column(column)
    kind = column_spec.kind if column_spec is not None else ColumnKind.TEXT
    if kind is ColumnKind.JSON:
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    if kind is ColumnKind.BOOL:
        return int(bool(value))
    if isinstance(value, Enum):
        return value.value
    return value


def _encode_row(spec: TableSpec, row: Mapping[str, Any]) -> dict[str, Any]:
    """Encode writable columns; caller-supplied timestamps are ignored."""
    values: dict[str, Any] = {}
    for column, value in row.items():
        if column in spec.timestamps:
            continue
        _require_column(spec, column)
        values[column] = _encode_value(spec, column, value)
    return values


def _decode_row(spec: TableSpec, row: sqlite3.Row) -> Row:
    decoded: Row = {}
    for column in spec.stored_columns:
        value = row[column]
        column_spec = spec.column(column)
        if value is not None and column_spec is not None:
            if column_spec.kind is ColumnKind.JSON:
                value = json.loads(value)
            elif column_spec.kind is ColumnKind.BOOL:
                value = bool(value)
        decoded[column] = value
    return decoded


def _where_sql(spec: TableSpec, where: Where | None) -> tuple[str | None, list[Any]]:
    """
    Build a WHERE clause.

    Scalars match by equality, ``None`` by IS NULL, collections by membership.
    Returns ``(None, [])`` when an empty collection makes the filter match nothing.
    """
    if not where:
        return "", []
    conditions: list[str] = []
    params: list[Any] = []
    for column, value in where.items():
        _require_column(spec, column)
        if isinstance(value, _COLLECTIONS):
            if not value:
                return None, []
            conditions.append(f"{column} IN ({', '.join('?' for _ in value)})")
            params.extend(_encode_value(spec, column, item) for item in value)
        elif value is None:
            conditions.append(f"{column} IS NULL")
        else:
            conditions.append(f"{column} = ?")
            params.append(_encode_value(spec, column, value))
    return " WHERE " + " AND ".join(conditions), params
