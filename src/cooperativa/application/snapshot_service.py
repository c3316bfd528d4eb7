"""
Snapshot engine: full export and full-replace import of all nine tables.

Export reads every table concurrently. Import is destructive: each table is
cleared and refilled from the snapshot, and there is no rollback if a later
table fails. Re-running the same import converges to the same state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Iterable

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.repository.base import store_errors
from cooperativa.domain.models import ChangeAction, Record, TableName
from cooperativa.domain.snapshot import Snapshot
from cooperativa.domain.tables import ACTIVITY_TABLES, SIMPLE_TABLES, TABLE_REGISTRY
from cooperativa.infrastructure.store.base import TableStore

logger = logging.getLogger(__name__)

BULK_SYNC = "bulk-sync"

# Export order per table; activities are listed by name like everywhere else.
_EXPORT_ORDER: dict[TableName, str] = {TableName.ACTIVIDADES: "nombre"}


class SnapshotService:
    """
    Export and import snapshots against a ``TableStore``.

    Usage:
        service = SnapshotService(store, change_log)
        snapshot = service.export_snapshot()
        counts = service.import_snapshot(snapshot)
    """

    def __init__(self, store: TableStore, change_log: ChangeLog, max_workers: int = len(TABLE_REGISTRY)):
        self.store = store
        self.change_log = change_log
        self.max_workers = max(1, max_workers)

    # ========================================================================
    # Export
    # ========================================================================

    def _fetch_table(self, table: TableName) -> list[Record]:
        spec = TABLE_REGISTRY[table]
        with store_errors(f"No se pudo obtener datos de {table.value}"):
            rows = self.store.list_rows(table, order_by=_EXPORT_ORDER.get(table, "id"))
        # Entity conversion re-sanitises schedules; timestamps never leave the store
        return [
            spec.to_entity({key: value for key, value in row.items() if key not in spec.timestamps})
            for row in rows
        ]

    def export_snapshot(self) -> Snapshot:
        """Read all nine tables concurrently into one snapshot."""
        tables: dict[TableName, list[Record]] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_table = {executor.submit(self._fetch_table, table): table for table in TABLE_REGISTRY}
            for future in as_completed(future_to_table):
                table = future_to_table[future]
                tables[table] = future.result()
                logger.debug("Exported %s: %d rows", table.value, len(tables[table]))

        snapshot = Snapshot.from_mapping(tables)
        logger.info("Snapshot exported: %d rows", snapshot.total_rows)
        return snapshot

    # ========================================================================
    # Import
    # ========================================================================

    def _prepare_rows(self, table: TableName, records: Iterable[Any]) -> list[dict[str, Any]]:
        """Re-validate records through the table schema; invalid ones are dropped."""
        spec = TABLE_REGISTRY[table]
        rows = []
        total = 0
        for record in records:
            total += 1
            raw = record.to_row() if isinstance(record, Record) else dict(record)
            values = spec.sanitize_row(raw)
            if values is not None:
                rows.append(spec.to_entity(values).to_row())

        if total != len(rows):
            logger.debug("Import %s: dropped %d invalid rows", table.value, total - len(rows))
        return rows

    def _clear(self, table: TableName) -> None:
        with store_errors(f"No se pudo limpiar la tabla {table.value}"):
            deleted = self.store.delete_where(table)
        logger.debug("Cleared %s (%d rows)", table.value, deleted)

    def _write(self, table: TableName, rows: list[dict[str, Any]]) -> None:
        if rows:
            with store_errors(f"No se pudo importar datos en {table.value}"):
                self.store.upsert(table, rows, conflict_key=("id",))
        self.change_log.log_change(table, ChangeAction.UPDATE, None, {"accion": BULK_SYNC, "total": len(rows)})

    def import_snapshot(self, snapshot: Snapshot | Mapping[str, Iterable[Any]]) -> dict[TableName, int]:
        """
        Replace the content of every table with the snapshot's rows.

        Missing tables count as empty and are cleared too. Rows with an id keep
        it; rows without one get a new id.

        Returns:
            Rows written per table
        """
        if not isinstance(snapshot, Snapshot):
            snapshot = Snapshot.from_mapping(snapshot)

        counts: dict[TableName, int] = {}
        for table in SIMPLE_TABLES:
            rows = self._prepare_rows(table, snapshot.rows(table))
            self._clear(table)
            self._write(table, rows)
            counts[table] = len(rows)

        prepared = {table: self._prepare_rows(table, snapshot.rows(table)) for table in ACTIVITY_TABLES}
        for table in reversed(ACTIVITY_TABLES):
            self._clear(table)
        for table in ACTIVITY_TABLES:
            self._write(table, prepared[table])
            counts[table] = len(prepared[table])

        logger.info("Snapshot imported: %d rows", sum(counts.values()))
        return counts
