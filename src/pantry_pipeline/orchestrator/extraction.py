"""Parse extraction responses into a tagged union, then into ExtractedItems.

The two endpoints answer in unrelated shapes, so each ExtractionMode has
exactly one parser and the union is dispatched once by type:

- bill:  {"success": bool, "items": [{"name", "quantity": {"value", "unit"}, "quantity_display"}]}
- items: {"<name>": <count>, ...}  (also accepted nested under "items")
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from ..domain.models import ExtractedItem, ExtractionMode
from ..domain.normalize import DEFAULT_UNIT, normalize_name, normalize_unit
from ..errors import ShapeMismatch
from ..logging import get_logger

LOG = get_logger("extraction")


@dataclass(frozen=True)
class BillLine:
    name: str
    quantity: float
    unit: str
    quantity_display: str = ""


@dataclass(frozen=True)
class BillExtraction:
    success: bool
    lines: Tuple[BillLine, ...]


@dataclass(frozen=True)
class ItemCountExtraction:
    counts: Tuple[Tuple[str, int], ...]


ExtractionResponse = Union[BillExtraction, ItemCountExtraction]


def _as_quantity(value: Any) -> float:
    if isinstance(value, bool):
        raise ShapeMismatch("boolean cannot be used as a quantity")
    if isinstance(value, (int, float)):
        q = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            q = float(value.strip().replace(",", "."))
        except ValueError:
            raise ShapeMismatch(f"invalid quantity: {value!r}") from None
    else:
        raise ShapeMismatch(f"invalid quantity: {value!r}")
    if math.isnan(q) or math.isinf(q) or q < 0:
        raise ShapeMismatch(f"quantity must be a finite number >= 0 (got {value!r})")
    return q


def _as_count(value: Any) -> int:
    q = _as_quantity(value)
    if not q.is_integer():
        raise ShapeMismatch(f"detection count must be a whole number (got {value!r})")
    return int(q)


def parse_bill(body: Any) -> BillExtraction:
    if not isinstance(body, dict):
        raise ShapeMismatch("bill response must be a JSON object")
    success = body.get("success")
    if success is not True:
        return BillExtraction(success=False, lines=())
    raw_items = body.get("items")
    if not isinstance(raw_items, list):
        raise ShapeMismatch("bill response is missing an 'items' list")

    lines: List[BillLine] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ShapeMismatch(f"items[{idx}] must be an object")
        name = normalize_name(raw.get("name"))
        if not name:
            LOG.warning(f"Skipping bill items[{idx}]: empty name")
            continue
        qty = raw.get("quantity")
        if not isinstance(qty, dict) or "value" not in qty:
            raise ShapeMismatch(f"items[{idx}].quantity must be an object with 'value'")
        lines.append(
            BillLine(
                name=name,
                quantity=_as_quantity(qty.get("value")),
                unit=normalize_unit(qty.get("unit")),
                quantity_display=str(raw.get("quantity_display") or ""),
            )
        )
    return BillExtraction(success=True, lines=tuple(lines))


def parse_item_counts(body: Any) -> ItemCountExtraction:
    if not isinstance(body, dict):
        raise ShapeMismatch("item detection response must be a JSON object")
    mapping = body.get("items") if isinstance(body.get("items"), dict) else body

    counts: List[Tuple[str, int]] = []
    for key, value in mapping.items():
        name = normalize_name(key)
        if not name:
            LOG.warning("Skipping detected item with an empty name")
            continue
        counts.append((name, _as_count(value)))
    return ItemCountExtraction(counts=tuple(counts))


def parse_extraction(mode: ExtractionMode, body: Any) -> ExtractionResponse:
    if mode is ExtractionMode.BILL:
        return parse_bill(body)
    return parse_item_counts(body)


def items_from_extraction(response: ExtractionResponse, photo_index: int) -> List[ExtractedItem]:
    """Materialise items in response order; names are already non-empty."""
    if isinstance(response, BillExtraction):
        return [
            ExtractedItem(
                name=line.name,
                quantity=line.quantity,
                unit=line.unit,
                source_photo_index=photo_index,
            )
            for line in response.lines
        ]
    if isinstance(response, ItemCountExtraction):
        return [
            ExtractedItem(name=name, quantity=count, unit=DEFAULT_UNIT, source_photo_index=photo_index)
            for name, count in response.counts
        ]
    raise TypeError(f"Unsupported extraction response: {type(response).__name__}")


def response_succeeded(response: ExtractionResponse) -> bool:
    if isinstance(response, BillExtraction):
        return response.success
    return True


def extraction_summary(response: ExtractionResponse) -> Dict[str, Any]:
    if isinstance(response, BillExtraction):
        return {"kind": "bill", "success": response.success, "lines": len(response.lines)}
    return {"kind": "items", "distinct": len(response.counts)}
