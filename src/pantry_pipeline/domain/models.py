from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .normalize import DEFAULT_UNIT, format_display, normalize_name


@dataclass(frozen=True)
class CapturedPhoto:
    uri: str
    local_index: int

    @property
    def upload_filename(self) -> str:
        return f"photo_{self.local_index}.jpg"


class ExtractionMode(Enum):
    BILL = "bill"
    ITEM_PHOTO = "items"

    @property
    def endpoint(self) -> str:
        if self is ExtractionMode.BILL:
            return "/extract-bill-upload/"
        return "/detect-items/"

    @classmethod
    def parse(cls, value: str) -> "ExtractionMode":
        v = (value or "").strip().lower()
        for mode in cls:
            if v in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(f"Unknown extraction mode: {value!r} (bill / items)")


@dataclass(eq=False)
class ExtractedItem:
    """One reconcilable line: a name, a non-negative quantity and a unit."""

    name: str
    quantity: float
    unit: str = DEFAULT_UNIT
    source_photo_index: int = 0

    def __post_init__(self) -> None:
        self.name = normalize_name(self.name)
        if not self.name:
            raise ValueError("ExtractedItem.name must be non-empty")
        self.quantity = float(self.quantity)
        if not math.isfinite(self.quantity) or self.quantity < 0:
            raise ValueError(f"ExtractedItem.quantity must be a finite number >= 0 (got {self.quantity})")
        self.unit = (self.unit or "").strip() or DEFAULT_UNIT

    @property
    def display_text(self) -> str:
        return format_display(self.quantity, self.unit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "source_photo_index": self.source_photo_index,
            "display_text": self.display_text,
        }


@dataclass(frozen=True)
class BatchResult:
    photo_index: int
    photo_uri: str
    success: bool
    raw_response: Optional[Any] = None
    error_message: Optional[str] = None


@dataclass
class CommitOutcome:
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    committed: List[ExtractedItem] = field(default_factory=list, compare=False, repr=False)

    @property
    def attempted(self) -> int:
        return self.success_count + self.error_count

    def summary(self) -> str:
        text = f"Successfully added {self.success_count} items to your inventory."
        if self.error_count > 0:
            text += f" {self.error_count} items failed to add."
        return text


@dataclass(frozen=True)
class NutritionRecord:
    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass(frozen=True)
class TotalNutrition:
    calories: int
    protein: float
    carbs: float
    fat: float
    item_count: int


@dataclass(frozen=True)
class Detection:
    """A single object found by the ``/predict/`` model."""

    name: str
    confidence: float = 0.0
    xmin: float = 0.0
    ymin: float = 0.0
    xmax: float = 0.0
    ymax: float = 0.0
    class_id: int = 0

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        """(x, y, width, height)."""
        return (self.xmin, self.ymin, self.xmax - self.xmin, self.ymax - self.ymin)


@dataclass
class InventoryEntry:
    id: Any
    name: str
    quantity: float
    unit: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "InventoryEntry":
        qty = row.get("Quantity")
        try:
            quantity = float(qty) if qty is not None else 0.0
        except (TypeError, ValueError):
            quantity = 0.0
        return cls(
            id=row.get("id"),
            name=str(row.get("Name") or ""),
            quantity=quantity,
            unit=row.get("Units") or None,
            created_at=row.get("created_at"),
        )

    @property
    def display_text(self) -> str:
        return format_display(self.quantity, self.unit or "units")


@dataclass
class Recipe:
    recipe_name: str
    prep_time: Optional[str] = None
    ingredients: List[str] = field(default_factory=list)
    instructions: Any = None
    macros: Dict[str, Any] = field(default_factory=dict)
    suggested_inventory_update: Optional[Any] = None
    meal_type: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], *, meal_type: Optional[str] = None) -> "Recipe":
        ingredients = payload.get("ingredients")
        macros = payload.get("macros")
        return cls(
            recipe_name=str(payload.get("recipe_name") or ""),
            prep_time=payload.get("prep_time"),
            ingredients=list(ingredients) if isinstance(ingredients, list) else [],
            instructions=payload.get("instructions"),
            macros=dict(macros) if isinstance(macros, dict) else {},
            suggested_inventory_update=payload.get("suggested_inventory_update"),
            meal_type=meal_type or payload.get("meal_type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MacroTotals:
    protein: int = 0
    carbs: int = 0
    fat: int = 0
