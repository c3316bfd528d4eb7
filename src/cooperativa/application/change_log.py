"""
Change log.

Append-only audit trail of mutations in ``registro_cambios``. Writing to it is
best-effort: a failure is reported once per ``ChangeLog`` instance as a
warning and never reaches the caller whose mutation already succeeded.
"""

from __future__ import annotations

import logging
from typing import Any

from cooperativa.domain.models import CHANGE_LOG_TABLE, ChangeAction, ChangeLogEntry, TableName
from cooperativa.domain.sanitize import normalise_payload
from cooperativa.infrastructure.store.base import ChangeCallback, TableStore, Unsubscribe

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class ChangeLog:
    """
    Records and reads change-log entries.

    The two warning flags are per instance; ``reset_warnings`` re-arms them.
    """

    def __init__(self, store: TableStore) -> None:
        self.store = store
        self.insert_warning_shown = False
        self.fetch_warning_shown = False

    def reset_warnings(self) -> None:
        self.insert_warning_shown = False
        self.fetch_warning_shown = False

    def log_change(
        self,
        table: TableName | str,
        action: ChangeAction | str,
        record_id: int | None = None,
        payload: Any = None,
    ) -> None:
        """Append one entry. Never raises."""
        row = {
            "tabla": str(getattr(table, "value", table)),
            "accion": ChangeAction(action).value,
            "registro_id": record_id,
            "payload": normalise_payload(payload),
        }
        try:
            self.store.insert(CHANGE_LOG_TABLE, row)
        except Exception as e:
            if not self.insert_warning_shown:
                self.insert_warning_shown = True
                logger.warning("No se pudo registrar el cambio en %s: %s", CHANGE_LOG_TABLE, e)
            else:
                logger.debug("Change log write failed again: %s", e)

    def list_recent_changes(self, limit: int = DEFAULT_LIMIT) -> list[ChangeLogEntry]:
        """Newest entries first. Returns [] when the log cannot be read."""
        try:
            rows = self.store.list_rows(
                CHANGE_LOG_TABLE,
                order_by=("created_at", "id"),
                descending=True,
                limit=limit,
            )
        except Exception as e:
            if not self.fetch_warning_shown:
                self.fetch_warning_shown = True
                logger.warning("No se pudo obtener el registro de cambios: %s", e)
            return []
        return [ChangeLogEntry.from_row(row) for row in rows]

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """Notify ``callback`` whenever a change-log entry is written."""
        return self.store.subscribe_changes(CHANGE_LOG_TABLE, callback)
