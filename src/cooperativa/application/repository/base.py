"""
Generic table repository.

One CRUD implementation for every table, parameterised by the table's
``TableSpec``. Each successful mutation is followed by exactly one change-log
entry carrying the post-mutation row (the pre-deletion row for deletes).

Store failures are re-raised as ``StoreError`` with a Spanish context prefix
suitable for showing to the user.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from cooperativa.application.change_log import ChangeLog
from cooperativa.domain.models import CHANGE_LOG_TABLE, ChangeAction, Record, TableName
from cooperativa.domain.tables import TableSpec, get_table_spec
from cooperativa.infrastructure.store.base import StoreError, StoreErrorKind, TableStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


@contextmanager
def store_errors(context: str) -> Iterator[None]:
    """Prefix any ``StoreError`` raised inside the block with ``context``."""
    try:
        yield
    except StoreError as e:
        raise e.with_context(context) from e


def check_connection(store: TableStore) -> None:
    """
    Cheap read proving the store is reachable.

    Raises:
        StoreError: "Error al conectar con la base de datos: ..."
    """
    with store_errors("Error al conectar con la base de datos"):
        store.list_rows(CHANGE_LOG_TABLE, limit=1)
    logger.debug("Store connection OK")


class TableRepository(Generic[R]):
    """
    CRUD over one table.

    Subclasses add the typed ``create``/``update`` signatures and call the
    protected ``_insert``/``_update`` helpers.
    """

    order_by: str | tuple[str, ...] = "id"

    def __init__(self, store: TableStore, change_log: ChangeLog, table: TableName) -> None:
        self.store = store
        self.change_log = change_log
        self.table = TableName(table)
        self.spec: TableSpec = get_table_spec(self.table)

    @property
    def name(self) -> str:
        return self.table.value

    def _to_entity(self, row: Mapping[str, Any]) -> R:
        return self.spec.to_entity(row)  # type: ignore[return-value]

    def fetch_all(self) -> list[R]:
        with store_errors(f"No se pudo obtener datos de {self.name}"):
            rows = self.store.list_rows(self.table, order_by=self.order_by)
        return [self._to_entity(row) for row in rows]

    def get(self, record_id: int) -> R | None:
        return self._find(record_id)

    def _find(self, record_id: int) -> R | None:
        with store_errors(f"No se pudo obtener datos de {self.name}"):
            rows = self.store.list_rows(self.table, where={"id": record_id}, limit=1)
        return self._to_entity(rows[0]) if rows else None

    def _insert(self, values: Mapping[str, Any], context: str | None = None) -> R:
        with store_errors(context or f"No se pudo insertar en {self.name}"):
            row = self.store.insert(self.table, values)
        self.change_log.log_change(self.table, ChangeAction.INSERT, row["id"], row)
        logger.debug("Inserted %s #%s", self.name, row["id"])
        return self._to_entity(row)

    def _update(self, record_id: int, patch: Mapping[str, Any], context: str | None = None) -> R:
        with store_errors(context or f"No se pudo actualizar {self.name}"):
            row = self.store.update(self.table, record_id, patch)
        self.change_log.log_change(self.table, ChangeAction.UPDATE, record_id, row)
        logger.debug("Updated %s #%s", self.name, record_id)
        return self._to_entity(row)

    def delete(self, record_id: int) -> R | None:
        """Delete by id. Returns the deleted record, or None if there was none."""
        return self._delete(record_id)

    def _delete(self, record_id: int, context: str | None = None) -> R | None:
        with store_errors(context or f"No se pudo eliminar en {self.name}"):
            row = self.store.delete(self.table, record_id)
        self.change_log.log_change(self.table, ChangeAction.DELETE, record_id, row)
        logger.debug("Deleted %s #%s (found=%s)", self.name, record_id, row is not None)
        return self._to_entity(row) if row is not None else None

    def require(self, record_id: int, message: str) -> R:
        """``get`` that raises NOT_FOUND with ``message`` when absent."""
        record = self._find(record_id)
        if record is None:
            raise StoreError(message, StoreErrorKind.NOT_FOUND)
        return record
