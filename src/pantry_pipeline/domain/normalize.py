import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from ..logging import get_logger

_LOG = get_logger("normalize")

DEFAULT_UNIT = "pcs"
WEIGHT_UNITS = frozenset({"g", "kg", "grams"})
WEIGHT_CHOICES: Tuple[str, str] = ("g", "kg")

_LEADING_FLOAT = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def parse_quantity_text(raw: Any) -> float:
    """Read a user-typed quantity, clamping anything unusable to 0.

    Reads the leading number like a lenient form field would:
    '2.5' -> 2.5, '3 kg' -> 3.0, 'abc' -> 0.0, '-4' -> 0.0, '' -> 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        m = _LEADING_FLOAT.match(str(raw))
        if not m:
            return 0.0
        try:
            value = float(m.group(0))
        except ValueError:
            return 0.0
    if math.isnan(value) or math.isinf(value) or value < 0:
        return 0.0
    return value


def parse_leading_int(raw: Any) -> int:
    """Integer prefix of a value, 0 when there is none ('25g' -> 25, None -> 0)."""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else 0
    m = _LEADING_INT.match(str(raw))
    return int(m.group(0)) if m else 0


def round_half_up(value: float, places: int = 0) -> float:
    """Round like Math.round does for non-negative values (2.5 -> 3, not 2)."""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        _LOG.debug(f"Cannot round non-finite value {value!r}")
        return value


def round_to_int(value: float) -> int:
    return int(round_half_up(value, 0))


def format_quantity(value: float) -> str:
    """3.0 -> '3', 2.5 -> '2.5'."""
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def format_display(quantity: float, unit: str) -> str:
    return f"{format_quantity(quantity)} {unit}"


def normalize_unit(unit: Optional[str]) -> str:
    u = (unit or "").strip()
    return u or DEFAULT_UNIT


def is_weight_unit(unit: Optional[str]) -> bool:
    return (unit or "").strip() in WEIGHT_UNITS


def normalize_name(name: Any) -> str:
    """Strip a product name; non-strings become ''."""
    if not isinstance(name, str):
        return ""
    return " ".join(name.split())
