"""
Domain models for the cooperative's records.

These models are pure data structures with no I/O dependencies. Rows travel
through the store as plain dicts; ``Record.from_row`` and ``Record.to_row``
convert between the two.

Fields set by the store (timestamps, nested detail lists) are excluded from
equality and from ``to_row`` so a record compares equal to its re-imported copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping, TypeVar

from cooperativa.domain.sanitize import parse_horarios_cell, to_se_dicto
from cooperativa.domain.schedule import Horario


# ============================================================================
# Enumerations
# ============================================================================


class TableName(str, Enum):
    """Closed set of data tables. Values are store table and channel names."""

    ROPA = "ropa"
    JOVENES = "jovenes"
    ALUMNOS = "alumnos"
    FAMILIAS = "familias"
    DONACIONES = "donaciones"
    ACTIVIDADES = "actividades"
    ALUMNO_ACTIVIDADES = "alumno_actividades"
    ACTIVIDAD_ASISTENCIAS = "actividad_asistencias"
    ACTIVIDAD_ASISTENCIA_DETALLE = "actividad_asistencia_detalle"


CHANGE_LOG_TABLE = "registro_cambios"


class ChangeAction(str, Enum):
    """Kind of mutation recorded in the change log."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Temporada(str, Enum):
    """Season a clothing item belongs to."""

    INVIERNO = "invierno"
    VERANO = "verano"


class AsistenciaEstado(str, Enum):
    """Attendance of one student at one session."""

    PRESENTE = "presente"
    AUSENTE = "ausente"


# ============================================================================
# Base record
# ============================================================================

R = TypeVar("R", bound="Record")


def server_field(**kwargs: Any) -> Any:
    """Field populated by the store; ignored by equality and ``to_row``."""
    if "default_factory" not in kwargs:
        kwargs.setdefault("default", None)
    return field(compare=False, metadata={"server_side": True}, **kwargs)


@dataclass
class Record:
    """Common row conversion for all table entities."""

    @classmethod
    def from_row(cls: type[R], row: Mapping[str, Any]) -> R:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in row.items() if key in known})

    def to_row(self) -> dict[str, Any]:
        """Writable columns; ``id`` is omitted when not yet assigned."""
        row: dict[str, Any] = {}
        for f in fields(self):
            if f.metadata.get("server_side"):
                continue
            value = getattr(self, f.name)
            if f.name == "id" and value is None:
                continue
            row[f.name] = value
        return row


# ============================================================================
# Entities
# ============================================================================


@dataclass
class Ropa(Record):
    """Clothing stock line."""

    id: int | None = None
    cantidad: int = 0
    tipo: str = Temporada.INVIERNO.value
    talle: str = ""


@dataclass
class Persona(Record):
    """A youth (``jovenes``) or a student (``alumnos``); same shape, different table."""

    id: int | None = None
    nombre: str = ""
    apellido: str = ""


Joven = Persona
Alumno = Persona


@dataclass
class Familia(Record):
    id: int | None = None
    apellido: str = ""
    miembros: int = 0


@dataclass
class Donacion(Record):
    id: int | None = None
    tipo: str = ""
    cantidad: int = 0


@dataclass
class Actividad(Record):
    """
    A recurring program with a weekly schedule.

    Attributes:
        id: Unique identifier (store-assigned)
        nombre: Display name
        horarios: Weekly slots, kept in the order given
        created_at: Store timestamp
        updated_at: Store timestamp
    """

    id: int | None = None
    nombre: str = ""
    horarios: list[Horario] = field(default_factory=list)
    created_at: str | None = server_field()
    updated_at: str | None = server_field()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Actividad:
        return cls(
            id=row.get("id"),
            nombre=str(row.get("nombre") or ""),
            horarios=parse_horarios_cell(row.get("horarios")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_row(self) -> dict[str, Any]:
        row = super().to_row()
        row["horarios"] = [horario.to_dict() for horario in self.horarios]
        return row


@dataclass
class AlumnoActividad(Record):
    """Assignment of a student to an activity."""

    id: int | None = None
    actividad_id: int | None = None
    alumno_id: int | None = None


@dataclass
class AsistenciaDetalle(Record):
    """One student's presence at one session; unique per (asistencia_id, alumno_id)."""

    id: int | None = None
    asistencia_id: int | None = None
    alumno_id: int | None = None
    estado: str = AsistenciaEstado.AUSENTE.value


@dataclass
class Asistencia(Record):
    """
    One dated occurrence of an activity.

    ``detalles`` is only filled when sessions are listed per activity.
    """

    id: int | None = None
    actividad_id: int | None = None
    fecha: str = ""
    hora_inicio: str | None = None
    hora_fin: str | None = None
    se_dicto: bool = False
    created_at: str | None = server_field()
    updated_at: str | None = server_field()
    detalles: list[AsistenciaDetalle] = server_field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Asistencia:
        return cls(
            id=row.get("id"),
            actividad_id=row.get("actividad_id"),
            fecha=str(row.get("fecha") or ""),
            hora_inicio=row.get("hora_inicio"),
            hora_fin=row.get("hora_fin"),
            se_dicto=to_se_dicto(row.get("se_dicto")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            detalles=[
                detalle if isinstance(detalle, AsistenciaDetalle) else AsistenciaDetalle.from_row(detalle)
                for detalle in row.get("detalles") or []
            ],
        )


@dataclass
class ChangeLogEntry:
    """Append-only audit entry; never mutated or deleted by the application."""

    id: int | None = None
    tabla: str = ""
    accion: str = ChangeAction.UPDATE.value
    registro_id: int | None = None
    payload: Any = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ChangeLogEntry:
        return cls(
            id=row.get("id"),
            tabla=str(row.get("tabla") or ""),
            accion=str(row.get("accion") or ""),
            registro_id=row.get("registro_id"),
            payload=row.get("payload"),
            created_at=row.get("created_at"),
        )
