"""
Snapshot aggregate: the rows of all nine tables, the unit of export/import.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from cooperativa.domain.models import (
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
from cooperativa.domain.tables import TABLE_REGISTRY


@dataclass
class Snapshot:
    """
    In-memory union of every table's rows.

    Field names match ``TableName`` values so a snapshot can be built from,
    and read as, a ``{table: rows}`` mapping.
    """

    ropa: list[Ropa] = field(default_factory=list)
    jovenes: list[Persona] = field(default_factory=list)
    alumnos: list[Persona] = field(default_factory=list)
    familias: list[Familia] = field(default_factory=list)
    donaciones: list[Donacion] = field(default_factory=list)
    actividades: list[Actividad] = field(default_factory=list)
    alumno_actividades: list[AlumnoActividad] = field(default_factory=list)
    actividad_asistencias: list[Asistencia] = field(default_factory=list)
    actividad_asistencia_detalle: list[AsistenciaDetalle] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[Any]]) -> Snapshot:
        """
        Build a snapshot from a partial ``{table: rows}`` mapping.

        Missing tables become empty. Rows may be records or plain dicts;
        unknown table names raise ValueError.
        """
        snapshot = cls()
        for key, rows in data.items():
            table = TableName(key)
            entity = TABLE_REGISTRY[table].entity
            setattr(
                snapshot,
                table.value,
                [row if isinstance(row, Record) else entity.from_row(row) for row in rows or ()],
            )
        return snapshot

    def rows(self, table: TableName | str) -> list[Any]:
        return getattr(self, TableName(table).value)

    def tables(self) -> Iterator[tuple[TableName, list[Any]]]:
        for table in TableName:
            yield table, self.rows(table)

    def counts(self) -> dict[TableName, int]:
        return {table: len(rows) for table, rows in self.tables()}

    @property
    def total_rows(self) -> int:
        return sum(self.counts().values())
