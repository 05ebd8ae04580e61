"""Length units. Everything internal is in angstrom, like MDAnalysis."""
from __future__ import annotations

from typing import Dict

_ANGSTROM_PER_UNIT: Dict[str, float] = {
    "a": 1.0,
    "ang": 1.0,
    "angstrom": 1.0,
    "angstroms": 1.0,
    "nm": 10.0,
    "nanometer": 10.0,
    "nanometers": 10.0,
}


def _scale(unit: str) -> float:
    try:
        return _ANGSTROM_PER_UNIT[unit.strip().lower()]
    except KeyError:
        raise ValueError(f"Unsupported unit: {unit}") from None


def to_internal_length(value: float, unit: str) -> float:
    return float(value) * _scale(unit)


def from_internal_length(value_angstrom: float, unit: str) -> float:
    return float(value_angstrom) / _scale(unit)
