"""
Domain layer: entities, table schemas, sanitisers and configuration model.

Pure Python, no I/O.
"""

from cooperativa.domain.models import (
    CHANGE_LOG_TABLE,
    Actividad,
    AlumnoActividad,
    Asistencia,
    AsistenciaDetalle,
    AsistenciaEstado,
    ChangeAction,
    ChangeLogEntry,
    Donacion,
    Familia,
    Persona,
    Ropa,
    TableName,
    Temporada,
)
from cooperativa.domain.schedule import DIAS_SEMANA, DiaSemana, Horario
from cooperativa.domain.snapshot import Snapshot
from cooperativa.domain.tables import (
    ACTIVITY_TABLES,
    SIMPLE_TABLES,
    TABLE_REGISTRY,
    TableSpec,
    get_table_spec,
)

__all__ = [
    "CHANGE_LOG_TABLE",
    "Actividad",
    "AlumnoActividad",
    "Asistencia",
    "AsistenciaDetalle",
    "AsistenciaEstado",
    "ChangeAction",
    "ChangeLogEntry",
    "Donacion",
    "Familia",
    "Persona",
    "Ropa",
    "TableName",
    "Temporada",
    "DIAS_SEMANA",
    "DiaSemana",
    "Horario",
    "Snapshot",
    "ACTIVITY_TABLES",
    "SIMPLE_TABLES",
    "TABLE_REGISTRY",
    "TableSpec",
    "get_table_spec",
]
