"""
Realtime change notifier.

Subscribes "please refetch" callbacks to one or more tables. The signal
carries no payload: listeners reload whatever they display.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cooperativa.domain.models import TableName
from cooperativa.infrastructure.store.base import ChangeCallback, TableStore, Unsubscribe

logger = logging.getLogger(__name__)


class ChangeNotifier:
    def __init__(self, store: TableStore) -> None:
        self.store = store

    def subscribe_table(self, table: TableName | str, callback: ChangeCallback) -> Unsubscribe:
        return self.store.subscribe_changes(TableName(table), callback)

    def subscribe(
        self,
        tables: TableName | str | Iterable[TableName | str],
        callback: ChangeCallback,
    ) -> Unsubscribe:
        """
        Call ``callback`` on any change to ``tables``.

        A multi-table subscription is one single-table subscription per table;
        a write touching two of them fires the callback twice.

        Returns:
            One function tearing down every subscription made here
        """
        if isinstance(tables, str):
            tables = [tables]
        unsubscribers = [self.subscribe_table(table, callback) for table in tables]
        logger.debug("Subscribed to %d tables", len(unsubscribers))

        def unsubscribe() -> None:
            for unsub in unsubscribers:
                unsub()

        return unsubscribe
