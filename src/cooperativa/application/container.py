"""
Dependency injection container for the application.

Builds the store, change log, repositories and services from an ``AppConfig``
on first use and hands out the same instances afterwards.
"""

from __future__ import annotations

import logging
from typing import Optional

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.realtime import ChangeNotifier
from cooperativa.application.repository import (
    ActivityRepository,
    AssignmentRepository,
    AttendanceRepository,
    ClothingRepository,
    DonationRepository,
    FamilyRepository,
    PeopleRepository,
    check_connection,
)
from cooperativa.application.snapshot_service import SnapshotService
from cooperativa.domain.config import AppConfig
from cooperativa.domain.models import TableName
from cooperativa.infrastructure.store import SqliteTableStore, TableStore

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Usage:
        container = Container(AppConfig(database_path=":memory:"))
        container.init()
        container.clothing.create(3, "verano", "M")
    """

    def __init__(self, config: Optional[AppConfig] = None, store: Optional[TableStore] = None):
        """
        Initialize the container.

        Args:
            config: Application configuration (defaults when omitted)
            store: Ready store to use instead of the configured SQLite file
        """
        self.config = config or AppConfig()
        self._store: Optional[TableStore] = store
        self._change_log: Optional[ChangeLog] = None
        self._snapshot_service: Optional[SnapshotService] = None
        self._notifier: Optional[ChangeNotifier] = None
        self._repositories: dict[str, object] = {}

    @property
    def store(self) -> TableStore:
        if self._store is None:
            self._store = SqliteTableStore(self.config.database_path)
        return self._store

    def init(self) -> None:
        """Create the schema when the store supports it and check connectivity."""
        initialize = getattr(self.store, "initialize_schema", None)
        if initialize is not None:
            initialize()
        check_connection(self.store)

    def close(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            close()

    @property
    def change_log(self) -> ChangeLog:
        if self._change_log is None:
            self._change_log = ChangeLog(self.store)
        return self._change_log

    @property
    def snapshot_service(self) -> SnapshotService:
        if self._snapshot_service is None:
            self._snapshot_service = SnapshotService(
                self.store, self.change_log, max_workers=self.config.export_workers
            )
        return self._snapshot_service

    @property
    def notifier(self) -> ChangeNotifier:
        if self._notifier is None:
            self._notifier = ChangeNotifier(self.store)
        return self._notifier

    # ========================================================================
    # Repositories
    # ========================================================================

    def _repository(self, key: str, factory):
        if key not in self._repositories:
            self._repositories[key] = factory()
        return self._repositories[key]

    @property
    def clothing(self) -> ClothingRepository:
        return self._repository("ropa", lambda: ClothingRepository(self.store, self.change_log))

    @property
    def jovenes(self) -> PeopleRepository:
        return self._repository(
            "jovenes", lambda: PeopleRepository(self.store, self.change_log, TableName.JOVENES)
        )

    @property
    def alumnos(self) -> PeopleRepository:
        return self._repository(
            "alumnos", lambda: PeopleRepository(self.store, self.change_log, TableName.ALUMNOS)
        )

    @property
    def families(self) -> FamilyRepository:
        return self._repository("familias", lambda: FamilyRepository(self.store, self.change_log))

    @property
    def donations(self) -> DonationRepository:
        return self._repository("donaciones", lambda: DonationRepository(self.store, self.change_log))

    @property
    def activities(self) -> ActivityRepository:
        return self._repository("actividades", lambda: ActivityRepository(self.store, self.change_log))

    @property
    def assignments(self) -> AssignmentRepository:
        return self._repository(
            "alumno_actividades", lambda: AssignmentRepository(self.store, self.change_log)
        )

    @property
    def attendance(self) -> AttendanceRepository:
        return self._repository(
            "actividad_asistencias", lambda: AttendanceRepository(self.store, self.change_log)
        )
