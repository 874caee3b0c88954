"""
Unit conversion table for ingredient and stock quantities

Quantities only convert within one dimension (mass, volume, count).
Unknown unit strings are compared literally.
"""

from typing import Dict, Optional, Tuple

# unit -> (dimension, factor to the dimension's base unit)
UNIT_TABLE: Dict[str, Tuple[str, float]] = {
    "mg": ("mass", 0.001),
    "g": ("mass", 1.0),
    "kg": ("mass", 1000.0),
    "мг": ("mass", 0.001),
    "г": ("mass", 1.0),
    "гр": ("mass", 1.0),
    "кг": ("mass", 1000.0),
    "ml": ("volume", 1.0),
    "l": ("volume", 1000.0),
    "мл": ("volume", 1.0),
    "л": ("volume", 1000.0),
    "pcs": ("count", 1.0),
    "pc": ("count", 1.0),
    "шт": ("count", 1.0),
}

BASE_UNITS: Dict[str, str] = {"mass": "g", "volume": "ml", "count": "pcs"}


def normalize_unit(unit: str) -> str:
    return (unit or "").strip().lower().rstrip(".")


def unit_dimension(unit: str) -> Optional[str]:
    entry = UNIT_TABLE.get(normalize_unit(unit))
    return entry[0] if entry else None


def units_compatible(from_unit: str, to_unit: str) -> bool:
    """True when a quantity in from_unit can be expressed in to_unit"""
    if normalize_unit(from_unit) == normalize_unit(to_unit):
        return True
    dimension = unit_dimension(from_unit)
    return dimension is not None and dimension == unit_dimension(to_unit)


def convert_quantity(quantity: float, from_unit: str, to_unit: str) -> float:
    """Convert quantity between compatible units

    Raises ValueError for units of different dimensions.
    """
    source, target = normalize_unit(from_unit), normalize_unit(to_unit)
    if source == target:
        return quantity
    if not units_compatible(source, target):
        raise ValueError(f"Cannot convert {from_unit!r} to {to_unit!r}")
    return quantity * UNIT_TABLE[source][1] / UNIT_TABLE[target][1]


def to_base_unit(quantity: float, unit: str) -> Tuple[float, str]:
    """Express quantity in its dimension's base unit; unknown units are only normalized"""
    dimension = unit_dimension(unit)
    if dimension is None:
        return quantity, normalize_unit(unit)
    base = BASE_UNITS[dimension]
    return convert_quantity(quantity, unit, base), base
