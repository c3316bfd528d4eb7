"""
Clothing inventory repository (``ropa``).
"""

from __future__ import annotations

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.repository.base import TableRepository
from cooperativa.domain.models import Ropa, TableName, Temporada
from cooperativa.domain.sanitize import to_count
from cooperativa.infrastructure.store.base import TableStore


def _clothing_values(cantidad: int, tipo: Temporada | str, talle: str) -> dict:
    count = to_count(cantidad)
    if count is None:
        raise ValueError("La cantidad debe ser un número entero positivo")
    return {"cantidad": count, "tipo": Temporada(tipo).value, "talle": talle.strip()}


class ClothingRepository(TableRepository[Ropa]):
    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, TableName.ROPA)

    def create(self, cantidad: int, tipo: Temporada | str, talle: str) -> Ropa:
        return self._insert(_clothing_values(cantidad, tipo, talle), "No se pudo insertar ropa")

    def update(self, record_id: int, cantidad: int, tipo: Temporada | str, talle: str) -> Ropa:
        return self._update(record_id, _clothing_values(cantidad, tipo, talle), "No se pudo actualizar ropa")
