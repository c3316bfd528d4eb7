"""
Application layer: change log, repositories, snapshot engine and notifier.
"""

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.container import Container
from cooperativa.application.realtime import ChangeNotifier
from cooperativa.application.snapshot_service import SnapshotService

__all__ = [
    "ChangeLog",
    "ChangeNotifier",
    "Container",
    "SnapshotService",
]
