"""
Weekly schedule value objects.

An activity's schedule is stored as a list of ``Horario`` entries directly on
the activity row (not in a join table).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiaSemana(str, Enum):
    """Day of the week, in the lower-case Spanish form used on disk."""

    LUNES = "lunes"
    MARTES = "martes"
    MIERCOLES = "miercoles"
    JUEVES = "jueves"
    VIERNES = "viernes"
    SABADO = "sabado"
    DOMINGO = "domingo"


DIAS_SEMANA: tuple[str, ...] = tuple(dia.value for dia in DiaSemana)


@dataclass(frozen=True)
class Horario:
    """
    One weekly time slot of an activity.

    Attributes:
        dia: Day of the week (one of ``DIAS_SEMANA``)
        hora_inicio: Start time, ``HH:MM``
        hora_fin: End time, ``HH:MM``
    """

    dia: str
    hora_inicio: str
    hora_fin: str

    def to_dict(self) -> dict[str, str]:
        return {
            "dia": self.dia,
            "hora_inicio": self.hora_inicio,
            "hora_fin": self.hora_fin,
        }
