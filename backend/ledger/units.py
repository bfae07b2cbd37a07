from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

# Quantities are stored as Numeric(14, 4).
QUANTUM = Decimal("0.0001")

# Factor to the base unit of each dimension (g, ml, pcs).
UNIT_FACTORS = {
    "mg": Decimal("0.001"),
    "g": Decimal("1"),
    "kg": Decimal("1000"),
    "oz": Decimal("28.3495"),
    "lb": Decimal("453.592"),
    "ml": Decimal("1"),
    "cl": Decimal("10"),
    "l": Decimal("1000"),
    "fl_oz": Decimal("29.5735"),
    "pcs": Decimal("1"),
    "ea": Decimal("1"),
    "unit": Decimal("1"),
    "dozen": Decimal("12"),
}

WEIGHT_UNITS = {"mg", "g", "kg", "oz", "lb"}
VOLUME_UNITS = {"ml", "cl", "l", "fl_oz"}
COUNT_UNITS = {"pcs", "ea", "unit", "dozen"}


def quantize(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTUM, rounding=ROUND_HALF_UP)


def _normalize(unit: Optional[str]) -> str:
    return (unit or "").strip().lower()


def _dimension(unit: str) -> Optional[str]:
    if unit in WEIGHT_UNITS:
        return "weight"
    if unit in VOLUME_UNITS:
        return "volume"
    if unit in COUNT_UNITS:
        return "count"
    return None


def convert(quantity: Decimal, from_unit: Optional[str], to_unit: Optional[str]) -> Optional[Decimal]:
    """
    Convert `quantity` between units of the same dimension.

    Returns the quantity unchanged when both units are equal, None when the units
    are unknown or of different dimensions.
    """
    src = _normalize(from_unit)
    dst = _normalize(to_unit)
    if src == dst:
        return quantity
    dim = _dimension(src)
    if dim is None or dim != _dimension(dst):
        return None
    return quantity * UNIT_FACTORS[src] / UNIT_FACTORS[dst]
