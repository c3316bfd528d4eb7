"""
Donations repository (``donaciones``).
"""

from __future__ import annotations

from cooperativa.application.change_log import ChangeLog
from cooperativa.application.repository.base import TableRepository
from cooperativa.domain.models import Donacion, TableName
from cooperativa.domain.sanitize import to_count
from cooperativa.infrastructure.store.base import TableStore


class DonationRepository(TableRepository[Donacion]):
    def __init__(self, store: TableStore, change_log: ChangeLog) -> None:
        super().__init__(store, change_log, TableName.DONACIONES)

    def _values(self, tipo: str, cantidad: int) -> dict:
        count = to_count(cantidad)
        if count is None:
            raise ValueError("La cantidad debe ser un número entero positivo")
        return {"tipo": tipo.strip(), "cantidad": count}

    def create(self, tipo: str, cantidad: int) -> Donacion:
        return self._insert(self._values(tipo, cantidad), "No se pudo insertar donación")

    def update(self, record_id: int, tipo: str, cantidad: int) -> Donacion:
        return self._update(record_id, self._values(tipo, cantidad), "No se pudo actualizar donación")
