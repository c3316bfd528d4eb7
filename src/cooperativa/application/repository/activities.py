"""
Activity repositories.

Covers activities with weekly schedules, student assignments and attendance
(sessions plus per-student detail). The store enforces no foreign keys, so
every cascade here is performed explicitly, children first.

Architecture Note:
    Multi-step operations are not transactional. Each step is idempotent, so
    a failed call can simply be retried.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.repository.base import TableRepository, store_errors
from cooperativa.domain.datetime_utils import normalise_date, normalise_time
from cooperativa.domain.models import (
    Actividad,
    AlumnoActividad,
    Asistencia,
    AsistenciaDetalle,
    AsistenciaEstado,
    ChangeAction,
    TableName,
)
from cooperativa.domain.sanitize import sanitise_horarios, to_id
from cooperativa.domain.schedule import Horario
from cooperativa.infrastructure.store.base import TableStore

logger = logging.getLogger(__name__)

SESSIONS = TableName.ACTIVIDAD_ASISTENCIAS
DETAILS = TableName.ACTIVIDAD_ASISTENCIA_DETALLE
ASSIGNMENTS = TableName.ALUMNO_ACTIVIDADES


def _session_ids(store: TableStore, actividad_id: int) -> list[int]:
    with store_errors("No se pudieron obtener las asistencias vinculadas a la actividad"):
        rows = store.list_rows(SESSIONS, where={"actividad_id": actividad_id})
    return [row["id"] for row in rows]


# ============================================================================
# Activities
# ============================================================================


class ActivityRepository(TableRepository[Actividad]):
    """Activities, listed alphabetically."""

    order_by = "nombre"

    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, TableName.ACTIVIDADES)

    @staticmethod
    def _values(nombre: str, horarios: Iterable[Horario | Mapping[str, Any]]) -> dict[str, Any]:
        nombre = nombre.strip()
        if not nombre:
            raise ValueError("El nombre de la actividad es obligatorio")
        return {
            "nombre": nombre,
            "horarios": [horario.to_dict() for horario in sanitise_horarios(horarios)],
        }

    def fetch_all(self) -> list[Actividad]:
        with store_errors("No se pudieron obtener las actividades"):
            rows = self.store.list_rows(self.table, order_by=self.order_by)
        return [self._to_entity(row) for row in rows]

    def get(self, record_id: int) -> Actividad:
        """Raises StoreError(NOT_FOUND) when the activity does not exist."""
        return self.require(record_id, "Actividad no encontrada")

    def create(self, nombre: str, horarios: Iterable[Horario | Mapping[str, Any]] = ()) -> Actividad:
        return self._insert(self._values(nombre, horarios), "No se pudo crear la actividad")

    def update(
        self,
        record_id: int,
        nombre: str,
        horarios: Iterable[Horario | Mapping[str, Any]] = (),
    ) -> Actividad:
        return self._update(record_id, self._values(nombre, horarios), "No se pudo actualizar la actividad")

    def delete(self, record_id: int) -> Actividad | None:
        """Delete an activity together with its assignments, sessions and their detail."""
        session_ids = _session_ids(self.store, record_id)
        with store_errors("No se pudo eliminar la actividad"):
            details = self.store.delete_where(DETAILS, {"asistencia_id": session_ids})
            sessions = self.store.delete_where(SESSIONS, {"actividad_id": record_id})
            assignments = self.store.delete_where(ASSIGNMENTS, {"actividad_id": record_id})
        logger.debug(
            "Activity #%s cascade: %d assignments, %d sessions, %d details",
            record_id,
            assignments,
            sessions,
            details,
        )
        return self._delete(record_id, "No se pudo eliminar la actividad")


# ============================================================================
# Assignments
# ============================================================================


@dataclass
class AssignmentChanges:
    """Result of reconciling an activity's students."""

    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class AssignmentRepository(TableRepository[AlumnoActividad]):
    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, ASSIGNMENTS)

    def get_student_ids(self, actividad_id: int) -> list[int]:
        with store_errors("No se pudieron cargar los alumnos asociados a la actividad"):
            rows = self.store.list_rows(self.table, where={"actividad_id": actividad_id})
        return [row["alumno_id"] for row in rows]

    def set_activity_assignments(self, actividad_id: int, alumno_ids: Iterable[int]) -> AssignmentChanges:
        """
        Make the activity's students exactly ``alumno_ids``.

        Only the difference is written: new students are inserted, dropped
        students are deleted, and the attendance detail of dropped students is
        removed from every session of the activity. One change-log entry
        summarises the call.
        """
        desired: list[int] = []
        for alumno_id in alumno_ids:
            parsed = to_id(alumno_id)
            if parsed is None:
                raise ValueError(f"Identificador de alumno inválido: {alumno_id!r}")
            if parsed not in desired:
                desired.append(parsed)

        with store_errors("No se pudieron obtener las asignaciones actuales"):
            existing_rows = self.store.list_rows(self.table, where={"actividad_id": actividad_id})
        existing = [row["alumno_id"] for row in existing_rows]

        desired_set = set(desired)
        existing_set = set(existing)
        changes = AssignmentChanges(
            added=[alumno_id for alumno_id in desired if alumno_id not in existing_set],
            removed=[alumno_id for alumno_id in existing if alumno_id not in desired_set],
        )

        if changes.added:
            with store_errors("No se pudieron asociar alumnos a la actividad"):
                self.store.insert_many(
                    self.table,
                    [{"actividad_id": actividad_id, "alumno_id": alumno_id} for alumno_id in changes.added],
                )

        if changes.removed:
            with store_errors("No se pudieron quitar alumnos de la actividad"):
                self.store.delete_where(
                    self.table,
                    {"actividad_id": actividad_id, "alumno_id": changes.removed},
                )
            session_ids = _session_ids(self.store, actividad_id)
            with store_errors("No se pudieron limpiar las asistencias de los alumnos removidos"):
                self.store.delete_where(
                    DETAILS,
                    {"asistencia_id": session_ids, "alumno_id": changes.removed},
                )

        self.change_log.log_change(
            self.table,
            ChangeAction.UPDATE,
            actividad_id,
            {
                "actividad_id": actividad_id,
                "total_alumnos": len(desired),
                "agregados": changes.added,
                "quitados": changes.removed,
            },
        )
        logger.info(
            "Activity #%s assignments: +%d -%d",
            actividad_id,
            len(changes.added),
            len(changes.removed),
        )
        return changes


# ============================================================================
# Attendance
# ============================================================================


def _session_date(fecha: Any) -> str:
    normalised = normalise_date(fecha)
    if normalised is None:
        raise ValueError(f"Fecha inválida: {fecha!r}")
    return normalised


def _session_time(value: Any) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    normalised = normalise_time(value)
    if normalised is None:
        raise ValueError(f"Hora inválida: {value!r}")
    return normalised


def _detail_entry(entry: Any) -> tuple[int, str]:
    if isinstance(entry, AsistenciaDetalle):
        alumno_id, estado = entry.alumno_id, entry.estado
    elif isinstance(entry, Mapping):
        alumno_id, estado = entry.get("alumno_id"), entry.get("estado")
    else:
        alumno_id, estado = entry

    parsed = to_id(alumno_id)
    if parsed is None:
        raise ValueError(f"Identificador de alumno inválido: {alumno_id!r}")
    return parsed, AsistenciaEstado(estado).value


class AttendanceRepository(TableRepository[Asistencia]):
    """
    Attendance sessions (``actividad_asistencias``) and their per-student
    detail (``actividad_asistencia_detalle``).
    """

    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, SESSIONS)

    def fetch_all_sessions(self) -> list[Asistencia]:
        with store_errors("No se pudieron obtener las asistencias"):
            rows = self.store.list_rows(self.table)
        return [self._to_entity(row) for row in rows]

    def fetch_all_details(self) -> list[AsistenciaDetalle]:
        with store_errors(f"No se pudo obtener datos de {DETAILS.value}"):
            rows = self.store.list_rows(DETAILS)
        return [AsistenciaDetalle.from_row(row) for row in rows]

    def list_sessions(self, actividad_id: int) -> list[Asistencia]:
        """
        An activity's sessions with their detail, newest first.

        Ordered by date, then start time, both descending; sessions without a
        start time come last within their date.
        """
        with store_errors("No se pudieron obtener las asistencias de la actividad"):
            rows = self.store.list_rows(
                self.table,
                where={"actividad_id": actividad_id},
                order_by=("fecha", "hora_inicio"),
                descending=True,
            )
            detail_rows = self.store.list_rows(DETAILS, where={"asistencia_id": [row["id"] for row in rows]})

        by_session: dict[int, list[AsistenciaDetalle]] = defaultdict(list)
        for detail in detail_rows:
            by_session[detail["asistencia_id"]].append(AsistenciaDetalle.from_row(detail))

        sessions = [self._to_entity(row) for row in rows]
        for session in sessions:
            session.detalles = by_session.get(session.id, [])
        return sessions

    def create_session(
        self,
        actividad_id: int,
        fecha: str,
        hora_inicio: str | None = None,
        hora_fin: str | None = None,
    ) -> Asistencia:
        """Create a session with no detail, not yet marked as held."""
        values = {
            "actividad_id": actividad_id,
            "fecha": _session_date(fecha),
            "hora_inicio": _session_time(hora_inicio),
            "hora_fin": _session_time(hora_fin),
            "se_dicto": False,
        }
        return self._insert(values, "No se pudo crear el registro de asistencia")

    def update_session(
        self,
        record_id: int,
        fecha: str,
        hora_inicio: str | None = None,
        hora_fin: str | None = None,
    ) -> Asistencia:
        values = {
            "fecha": _session_date(fecha),
            "hora_inicio": _session_time(hora_inicio),
            "hora_fin": _session_time(hora_fin),
        }
        return self._update(record_id, values, "No se pudo actualizar la asistencia")

    def set_held(self, record_id: int, se_dicto: bool) -> Asistencia:
        return self._update(
            record_id,
            {"se_dicto": bool(se_dicto)},
            "No se pudo actualizar el estado de la asistencia",
        )

    def delete_session(self, record_id: int) -> Asistencia | None:
        """Delete a session and its detail rows."""
        with store_errors("No se pudo eliminar la asistencia"):
            self.store.delete_where(DETAILS, {"asistencia_id": record_id})
        return self._delete(record_id, "No se pudo eliminar la asistencia")

    def delete(self, record_id: int) -> Asistencia | None:
        return self.delete_session(record_id)

    def save_attendance_detail(self, session_id: int, entries: Iterable[Any]) -> int:
        """
        Record presence for students of one session.

        ``entries`` holds ``(alumno_id, estado)`` pairs, mappings or
        ``AsistenciaDetalle`` objects. Existing detail for the same student is
        overwritten. Empty input writes nothing and logs nothing.

        Returns:
            Number of entries written
        """
        rows = [
            {"asistencia_id": session_id, "alumno_id": alumno_id, "estado": estado}
            for alumno_id, estado in (_detail_entry(entry) for entry in entries)
        ]
        if not rows:
            return 0

        with store_errors("No se pudo guardar el detalle de asistencia"):
            self.store.upsert(DETAILS, rows, conflict_key=("asistencia_id", "alumno_id"))

        self.change_log.log_change(
            DETAILS,
            ChangeAction.UPDATE,
            session_id,
            {"asistencia_id": session_id, "total_detalles": len(rows)},
        )
        return len(rows)
