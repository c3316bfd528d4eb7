"""
Table store: protocol, errors and the SQLite adapter.
"""

from cooperativa.infrastructure.store.base import (
    ChangeCallback,
    StoreError,
    StoreErrorKind,
    TableStore,
    Unsubscribe,
)
from cooperativa.infrastructure.store.sqlite_store import SqliteTableStore

__all__ = [
    "ChangeCallback",
    "StoreError",
    "StoreErrorKind",
    "TableStore",
    "Unsubscribe",
    "SqliteTableStore",
]
