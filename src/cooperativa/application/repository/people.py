"""
People repositories: youths and students share one shape, families differ.
"""

from __future__ import annotations

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.repository.base import TableRepository
from cooperativa.domain.models import Familia, Persona, TableName
from cooperativa.domain.sanitize import to_count
from cooperativa.infrastructure.store.base import TableStore

PERSON_TABLES = (TableName.JOVENES, TableName.ALUMNOS)


class PeopleRepository(TableRepository[Persona]):
    """
    ``jovenes`` or ``alumnos``, chosen at construction.

    Usage:
        alumnos = PeopleRepository(store, change_log, TableName.ALUMNOS)
        alumnos.create("Ana", "Pérez")
    """

    def __init__(self, store: TableStore, change_log: ChangeLog, table: TableName | str) -> None:
        table = TableName(table)
        if table not in PERSON_TABLES:
            raise ValueError(f"{table.value} is not a people table")
        super().__init__(store, change_log, table)

    def create(self, nombre: str, apellido: str) -> Persona:
        return self._insert({"nombre": nombre.strip(), "apellido": apellido.strip()})

    def update(self, record_id: int, nombre: str, apellido: str) -> Persona:
        return self._update(
            record_id,
            {"nombre": nombre.strip(), "apellido": apellido.strip()},
            f"No se pudo actualizar en {self.name}",
        )


class FamilyRepository(TableRepository[Familia]):
    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, TableName.FAMILIAS)

    @staticmethod
    def _values(apellido: str, miembros: int) -> dict:
        count = to_count(miembros)
        if count is None:
            raise ValueError("La cantidad de miembros debe ser un número entero positivo")
        return {"apellido": apellido.strip(), "miembros": count}

    def create(self, apellido: str, miembros: int) -> Familia:
        return self._insert(self._values(apellido, miembros))

    def update(self, record_id: int, apellido: str, miembros: int) -> Familia:
        return self._update(record_id, self._values(apellido, miembros))
