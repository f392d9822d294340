"""Static nutrition lookup and batch-level totals for detection summaries."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from .models import BatchResult, Detection, NutritionRecord, TotalNutrition
from .normalize import round_half_up, round_to_int

UNKNOWN_KEY = "unknown"

# Per-item values; the fallback for names missing from the table is "unknown".
NUTRITION_TABLE: Dict[str, NutritionRecord] = {
    # fruits
    "apple": NutritionRecord(calories=80, protein=0.4, carbs=21, fat=0.3),
    "banana": NutritionRecord(calories=105, protein=1.3, carbs=27, fat=0.4),
    "orange": NutritionRecord(calories=60, protein=1.2, carbs=15, fat=0.2),
    "grape": NutritionRecord(calories=62, protein=0.6, carbs=16, fat=0.3),
    # vegetables
    "carrot": NutritionRecord(calories=25, protein=0.5, carbs=6, fat=0.1),
    "broccoli": NutritionRecord(calories=25, protein=3, carbs=5, fat=0.3),
    "tomato": NutritionRecord(calories=18, protein=0.9, carbs=3.9, fat=0.2),
    "lettuce": NutritionRecord(calories=10, protein=0.9, carbs=2, fat=0.1),
    # grains
    "bread": NutritionRecord(calories=70, protein=2.3, carbs=13, fat=1.2),
    "rice": NutritionRecord(calories=130, protein=2.7, carbs=28, fat=0.3),
    "pasta": NutritionRecord(calories=220, protein=8, carbs=44, fat=1.3),
    # protein
    "egg": NutritionRecord(calories=70, protein=6, carbs=0.6, fat=5),
    "chicken": NutritionRecord(calories=165, protein=31, carbs=0, fat=3.6),
    "beef": NutritionRecord(calories=250, protein=26, carbs=0, fat=15),
    "fish": NutritionRecord(calories=206, protein=22, carbs=0, fat=12),
    # dairy
    "milk": NutritionRecord(calories=42, protein=3.4, carbs=5, fat=1),
    "cheese": NutritionRecord(calories=113, protein=7, carbs=1, fat=9),
    "yogurt": NutritionRecord(calories=59, protein=10, carbs=3.6, fat=0.4),
    UNKNOWN_KEY: NutritionRecord(calories=50, protein=1, carbs=10, fat=1),
}


def _detection_name(detection: Any) -> Optional[str]:
    if isinstance(detection, Detection):
        return detection.name
    if isinstance(detection, Mapping):
        name = detection.get("name")
        return name if isinstance(name, str) else None
    return None


class NutritionAggregator:
    """Pure lookups over a read-only table; no I/O."""

    def __init__(self, table: Optional[Mapping[str, NutritionRecord]] = None) -> None:
        source = NUTRITION_TABLE if table is None else table
        self._table: Dict[str, NutritionRecord] = {k.lower(): v for k, v in source.items()}
        if UNKNOWN_KEY not in self._table:
            self._table[UNKNOWN_KEY] = NUTRITION_TABLE[UNKNOWN_KEY]

    def lookup(self, item_name: Optional[str]) -> NutritionRecord:
        key = (item_name or UNKNOWN_KEY).strip().lower()
        return self._table.get(key, self._table[UNKNOWN_KEY])

    def totals_for_detections(self, detections: Iterable[Any]) -> TotalNutrition:
        calories = protein = carbs = fat = 0.0
        count = 0
        for detection in detections:
            record = self.lookup(_detection_name(detection))
            calories += record.calories
            protein += record.protein
            carbs += record.carbs
            fat += record.fat
            count += 1
        return TotalNutrition(
            calories=round_to_int(calories),
            protein=round_half_up(protein, 1),
            carbs=round_half_up(carbs, 1),
            fat=round_half_up(fat, 1),
            item_count=count,
        )

    def aggregate(self, results: Iterable[BatchResult]) -> TotalNutrition:
        """Sum detections over successful results only; non-object entries are ignored."""
        detections = []
        for result in results:
            if not result.success or not isinstance(result.raw_response, Mapping):
                continue
            found = result.raw_response.get("detections")
            if isinstance(found, list):
                detections.extend(d for d in found if isinstance(d, (Detection, Mapping)))
        return self.totals_for_detections(detections)
