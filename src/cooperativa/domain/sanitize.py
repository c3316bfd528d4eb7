"""
Sanitisation of loosely-typed input.

Spreadsheet cells and hand-built rows reach the core as ``RawCell`` values.
Every function here is total: it returns a canonical value, or ``None`` (``""``
for text) when the input is absent or invalid. Deciding whether a missing value
drops a row is left to the table schema (see ``domain.tables``).

Architecture Note:
    Pure domain module, no I/O.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time
from typing import Any, Union

from cooperativa.domain.datetime_utils import normalise_date, normalise_time
from cooperativa.domain.schedule import DIAS_SEMANA, Horario

__all__ = [
    "RawCell",
    "to_number",
    "to_id",
    "to_count",
    "to_text",
    "to_required_text",
    "to_boolean",
    "to_temporada",
    "to_estado",
    "to_se_dicto",
    "normalise_date",
    "normalise_time",
    "sanitise_horarios",
    "parse_horarios_cell",
    "normalise_payload",
]

# Values a spreadsheet cell may hold before sanitisation.
RawCell = Union[str, int, float, bool, date, datetime, time, None]

_TRUE_VALUES = frozenset({"true", "t", "1", "si", "sí", "s", "yes", "y", "verdadero", "x"})
_FALSE_VALUES = frozenset({"false", "f", "0", "no", "n", "falso"})

# Largest value an INTEGER column can hold
MAX_INTEGER = 2**63 - 1


# ============================================================================
# Scalars
# ============================================================================


def to_number(value: Any) -> int | float | None:
    """Parse a finite number. Booleans and blank strings are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        parsed = float(text)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def to_id(value: Any) -> int | None:
    """Parse a row identifier: truncated number, strictly positive."""
    parsed = to_number(value)
    if parsed is None:
        return None
    truncated = math.trunc(parsed)
    return truncated if 0 < truncated <= MAX_INTEGER else None


def to_count(value: Any) -> int | None:
    """Parse a quantity: integral and strictly positive (``2.0`` is fine, ``2.5`` is not)."""
    parsed = to_number(value)
    if parsed is None:
        return None
    if isinstance(parsed, float):
        if not parsed.is_integer():
            return None
        parsed = int(parsed)
    return parsed if 0 < parsed <= MAX_INTEGER else None


def to_text(value: Any) -> str:
    """Trimmed text. Absent values become ``""``; ``42.0`` renders as ``"42"``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_required_text(value: Any) -> str | None:
    """Like ``to_text`` but blank means missing."""
    return to_text(value) or None


def to_boolean(value: Any) -> bool | None:
    """Parse a yes/no cell (``true``/``false``, ``si``/``no``, ``1``/``0``)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE_VALUES:
            return True
        if key in _FALSE_VALUES:
            return False
    return None


# ============================================================================
# Domain enumerations with defaults
# ============================================================================


def to_temporada(value: Any) -> str:
    """Clothing season. Anything other than ``verano`` is ``invierno``."""
    return "verano" if to_text(value).lower() == "verano" else "invierno"


def to_estado(value: Any) -> str:
    """Attendance state. Anything other than ``presente`` is ``ausente``."""
    return "presente" if to_text(value).lower() == "presente" else "ausente"


def to_se_dicto(value: Any) -> bool:
    """Whether a session was held. Absent or unreadable means it was not."""
    return bool(to_boolean(value))


# ============================================================================
# Schedules
# ============================================================================


def _clean_schedule_time(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    return normalise_time(text) or text


def sanitise_horarios(entries: Iterable[Any] | None) -> list[Horario]:
    """
    Normalise a schedule list.

    Lower-cases the day, drops entries whose day is not a weekday name or whose
    start/end time is blank, trims the times (canonicalising them to ``HH:MM``
    when they parse). Order is preserved. Applying it twice changes nothing.
    """
    result: list[Horario] = []
    for entry in entries or ():
        if isinstance(entry, Horario):
            dia, inicio, fin = entry.dia, entry.hora_inicio, entry.hora_fin
        elif isinstance(entry, Mapping):
            dia = entry.get("dia")
            inicio = entry.get("hora_inicio")
            fin = entry.get("hora_fin")
        else:
            continue

        dia = to_text(dia).lower()
        if dia not in DIAS_SEMANA:
            continue

        hora_inicio = _clean_schedule_time(inicio)
        hora_fin = _clean_schedule_time(fin)
        if not hora_inicio or not hora_fin:
            continue

        result.append(Horario(dia=dia, hora_inicio=hora_inicio, hora_fin=hora_fin))
    return result


def parse_horarios_cell(value: Any) -> list[Horario]:
    """
    Read a schedule from a JSON string cell (or an already-decoded list).

    A parse failure or a non-array value yields an empty schedule.
    """
    if isinstance(value, (list, tuple)):
        return sanitise_horarios(value)
    if not isinstance(value, str) or not value.strip():
        return []
    try:
        decoded = json.loads(value)
    except ValueError:
        return []
    if not isinstance(decoded, list):
        return []
    return sanitise_horarios(decoded)


# ============================================================================
# Change log payloads
# ============================================================================


def _json_round_trip(value: Any) -> Any:
    try:
        return json.loads(json.dumps(value, allow_nan=False))
    except (TypeError, ValueError):
        return None


def normalise_payload(value: Any) -> Any:
    """
    Make a change-log payload JSON-safe.

    Dataclasses are converted to dicts; dicts and lists are deep-cloned through
    a JSON round trip; anything unserialisable (objects, cycles, NaN) becomes
    ``None``. Non-null scalars are wrapped as ``{"value": ...}``.
    """
    if value is None:
        return None
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, (dict, list, tuple)):
        return _json_round_trip(value)
    return _json_round_trip({"value": value})
