"""
Centralized Table Registry.

SINGLE SOURCE OF TRUTH for the shape of every table: store columns, workbook
sheet name and column order, required fields, foreign keys and the sanitiser
applied to each column when reading loosely-typed input.

The generic repository, the SQLite store, the snapshot engine and the workbook
codec all read from here; none of them hard-code per-table column lists.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cooperativa.domain.models import (
    CHANGE_LOG_TABLE,
    Actividad,
    AlumnoActividad,
    Asistencia,
    AsistenciaDetalle,
    Donacion,
    Familia,
    Persona,
    Record,
    Ropa,
    TableName,
)
from cooperativa.domain.sanitize import (
    normalise_date,
    normalise_time,
    parse_horarios_cell,
    to_count,
    to_estado,
    to_id,
    to_required_text,
    to_se_dicto,
    to_temporada,
)


class ColumnKind(str, Enum):
    """Storage kind of a column; drives SQL type and value encoding."""

    ID = "id"
    INTEGER = "integer"
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    BOOL = "bool"
    JSON = "json"


_SQL_TYPES = {
    ColumnKind.ID: "INTEGER",
    ColumnKind.INTEGER: "INTEGER",
    ColumnKind.TEXT: "TEXT",
    ColumnKind.DATE: "TEXT",
    ColumnKind.TIME: "TEXT",
    ColumnKind.BOOL: "INTEGER",
    ColumnKind.JSON: "TEXT",
}


def _passthrough(value: Any) -> Any:
    return value


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """
    One column of a table.

    Attributes:
        name: Column name (also the workbook header, lower-case)
        kind: Storage kind
        sanitize: Total function from a raw cell to a canonical value or None
        required: A None after sanitising drops the whole row
        references: Table this column points to, for foreign keys
    """

    name: str
    kind: ColumnKind
    sanitize: Callable[[Any], Any] = _passthrough
    required: bool = False
    references: TableName | None = None

    @property
    def sql_type(self) -> str:
        return _SQL_TYPES[self.kind]


@dataclass(frozen=True, slots=True)
class TableSpec:
    """
    Complete description of a table.

    Attributes:
        name: Store table name
        entity: Record class rows convert to
        columns: Columns in workbook order, ``id`` first
        sheet_name: Workbook tab name, None for tables never exported
        timestamps: Store-stamped columns (``created_at`` on insert, ``updated_at`` on write)
        unique_together: Composite unique key, used as an upsert conflict target
    """

    name: str
    entity: type
    columns: tuple[ColumnSpec, ...]
    sheet_name: str | None = None
    timestamps: tuple[str, ...] = ()
    unique_together: tuple[str, ...] = ()
    _by_name: dict[str, ColumnSpec] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        self._by_name.update({column.name: column for column in self.columns})

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def stored_columns(self) -> tuple[str, ...]:
        """Every physical column, timestamps included."""
        return self.column_names + self.timestamps

    @property
    def foreign_keys(self) -> dict[str, TableName]:
        return {c.name: c.references for c in self.columns if c.references is not None}

    def column(self, name: str) -> ColumnSpec | None:
        return self._by_name.get(name)

    def sanitize_row(self, raw: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Fold the column sanitisers over a raw row.

        Returns the canonical values, or None as soon as a required column
        fails. This is the single place where a row gets dropped.
        """
        values: dict[str, Any] = {}
        for column in self.columns:
            value = column.sanitize(raw.get(column.name))
            if value is None and column.required:
                return None
            values[column.name] = value
        return values

    def to_entity(self, row: Mapping[str, Any]) -> Record:
        return self.entity.from_row(row)


def _id_column() -> ColumnSpec:
    return ColumnSpec("id", ColumnKind.ID, to_id)


def _fk(name: str, target: TableName) -> ColumnSpec:
    return ColumnSpec(name, ColumnKind.INTEGER, to_id, required=True, references=target)


def _person_spec(name: TableName, sheet_name: str) -> TableSpec:
    return TableSpec(
        name=name.value,
        entity=Persona,
        sheet_name=sheet_name,
        columns=(
            _id_column(),
            ColumnSpec("nombre", ColumnKind.TEXT, to_required_text, required=True),
            ColumnSpec("apellido", ColumnKind.TEXT, to_required_text, required=True),
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════
# TABLE REGISTRY - workbook sheet order
# ═══════════════════════════════════════════════════════════════════════════

TABLE_REGISTRY: dict[TableName, TableSpec] = {
    TableName.ROPA: TableSpec(
        name=TableName.ROPA.value,
        entity=Ropa,
        sheet_name="Ropa",
        columns=(
            _id_column(),
            ColumnSpec("cantidad", ColumnKind.INTEGER, to_count, required=True),
            ColumnSpec("tipo", ColumnKind.TEXT, to_temporada, required=True),
            ColumnSpec("talle", ColumnKind.TEXT, to_required_text, required=True),
        ),
    ),
    TableName.JOVENES: _person_spec(TableName.JOVENES, "Jovenes"),
    TableName.ALUMNOS: _person_spec(TableName.ALUMNOS, "Alumnos"),
    TableName.FAMILIAS: TableSpec(
        name=TableName.FAMILIAS.value,
        entity=Familia,
        sheet_name="Familias",
        columns=(
            _id_column(),
            ColumnSpec("apellido", ColumnKind.TEXT, to_required_text, required=True),
            ColumnSpec("miembros", ColumnKind.INTEGER, to_count, required=True),
        ),
    ),
    TableName.DONACIONES: TableSpec(
        name=TableName.DONACIONES.value,
        entity=Donacion,
        sheet_name="Donaciones",
        columns=(
            _id_column(),
            ColumnSpec("tipo", ColumnKind.TEXT, to_required_text, required=True),
            ColumnSpec("cantidad", ColumnKind.INTEGER, to_count, required=True),
        ),
    ),
    TableName.ACTIVIDADES: TableSpec(
        name=TableName.ACTIVIDADES.value,
        entity=Actividad,
        sheet_name="Actividades",
        timestamps=("created_at", "updated_at"),
        columns=(
            _id_column(),
            ColumnSpec("nombre", ColumnKind.TEXT, to_required_text, required=True),
            # A broken schedule cell empties the schedule, it never drops the activity
            ColumnSpec("horarios", ColumnKind.JSON, parse_horarios_cell),
        ),
    ),
    TableName.ALUMNO_ACTIVIDADES: TableSpec(
        name=TableName.ALUMNO_ACTIVIDADES.value,
        entity=AlumnoActividad,
        sheet_name="Actividad Alumnos",
        columns=(
            _id_column(),
            _fk("actividad_id", TableName.ACTIVIDADES),
            _fk("alumno_id", TableName.ALUMNOS),
        ),
    ),
    TableName.ACTIVIDAD_ASISTENCIAS: TableSpec(
        name=TableName.ACTIVIDAD_ASISTENCIAS.value,
        entity=Asistencia,
        sheet_name="Actividad Asistencias",
        timestamps=("created_at", "updated_at"),
        columns=(
            _id_column(),
            _fk("actividad_id", TableName.ACTIVIDADES),
            ColumnSpec("fecha", ColumnKind.DATE, normalise_date, required=True),
            ColumnSpec("hora_inicio", ColumnKind.TIME, normalise_time),
            ColumnSpec("hora_fin", ColumnKind.TIME, normalise_time),
            ColumnSpec("se_dicto", ColumnKind.BOOL, to_se_dicto, required=True),
        ),
    ),
    TableName.ACTIVIDAD_ASISTENCIA_DETALLE: TableSpec(
        name=TableName.ACTIVIDAD_ASISTENCIA_DETALLE.value,
        entity=AsistenciaDetalle,
        sheet_name="Actividad Asistencia Detalle",
        unique_together=("asistencia_id", "alumno_id"),
        columns=(
            _id_column(),
            _fk("asistencia_id", TableName.ACTIVIDAD_ASISTENCIAS),
            _fk("alumno_id", TableName.ALUMNOS),
            ColumnSpec("estado", ColumnKind.TEXT, to_estado, required=True),
        ),
    ),
}

missing = set(TableName) - set(TABLE_REGISTRY)
if missing:
    raise RuntimeError(f"Tables without a schema: {sorted(t.value for t in missing)}")
del missing

CHANGE_LOG_SPEC = TableSpec(
    name=CHANGE_LOG_TABLE,
    entity=dict,
    timestamps=("created_at",),
    columns=(
        _id_column(),
        ColumnSpec("tabla", ColumnKind.TEXT, required=True),
        ColumnSpec("accion", ColumnKind.TEXT, required=True),
        ColumnSpec("registro_id", ColumnKind.INTEGER),
        ColumnSpec("payload", ColumnKind.JSON),
    ),
)

# Tables with no foreign keys between them; replaced one by one on import.
SIMPLE_TABLES: tuple[TableName, ...] = (
    TableName.ROPA,
    TableName.JOVENES,
    TableName.ALUMNOS,
    TableName.FAMILIAS,
    TableName.DONACIONES,
)

# Activity tables in foreign-key order: parents before children.
ACTIVITY_TABLES: tuple[TableName, ...] = (
    TableName.ACTIVIDADES,
    TableName.ALUMNO_ACTIVIDADES,
    TableName.ACTIVIDAD_ASISTENCIAS,
    TableName.ACTIVIDAD_ASISTENCIA_DETALLE,
)

ALL_SPECS: tuple[TableSpec, ...] = (*TABLE_REGISTRY.values(), CHANGE_LOG_SPEC)


def get_table_spec(table: TableName | str) -> TableSpec:
    """Look up a data table's spec. Raises ValueError for unknown names."""
    return TABLE_REGISTRY[TableName(table)]
