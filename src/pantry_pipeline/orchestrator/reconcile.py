"""Human-in-the-loop staging list between extraction and commit."""

from __future__ import annotations

import threading
from typing import Iterable, Iterator, List, Tuple

from ..domain.models import ExtractedItem
from ..domain.normalize import WEIGHT_CHOICES, is_weight_unit, normalize_unit, parse_quantity_text
from ..logging import get_logger

LOG = get_logger("reconcile")


class ReconciliationSession:
    """Ordered, editable list of ExtractedItems.

    Indices are positions in the current list, so they shift after
    `remove`. All mutation happens under one lock.
    """

    def __init__(self, items: Iterable[ExtractedItem] = ()) -> None:
        self._items: List[ExtractedItem] = list(items)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[ExtractedItem]:
        return iter(self.items)

    @property
    def items(self) -> List[ExtractedItem]:
        with self._lock:
            return list(self._items)

    def update_quantity(self, index: int, raw_text: str) -> ExtractedItem:
        with self._lock:
            item = self._items[index]
            item.quantity = parse_quantity_text(raw_text)
        LOG.debug(f"items[{index}] quantity -> {item.display_text}")
        return item

    def update_unit(self, index: int, unit: str) -> ExtractedItem:
        with self._lock:
            item = self._items[index]
            item.unit = normalize_unit(unit)
        LOG.debug(f"items[{index}] unit -> {item.display_text}")
        return item

    def unit_choices(self, index: int) -> Tuple[str, ...]:
        """Weight units offer a g/kg toggle; everything else is shown as-is."""
        with self._lock:
            unit = self._items[index].unit
        if is_weight_unit(unit):
            return WEIGHT_CHOICES
        return (unit,)

    def toggle_unit(self, index: int) -> ExtractedItem:
        with self._lock:
            item = self._items[index]
            if not is_weight_unit(item.unit):
                raise ValueError(f"Unit {item.unit!r} is not togglable")
            item.unit = "g" if item.unit == "kg" else "kg"
        LOG.debug(f"items[{index}] unit -> {item.display_text}")
        return item

    def remove(self, index: int) -> ExtractedItem:
        with self._lock:
            item = self._items.pop(index)
        LOG.info(f"Removed '{item.name}' from reconciliation ({len(self._items)} left)")
        return item

    def discard_items(self, done: Iterable[ExtractedItem]) -> int:
        """Drop the given item objects (matched by identity); returns how many were dropped."""
        ids = {id(i) for i in done}
        with self._lock:
            before = len(self._items)
            self._items = [i for i in self._items if id(i) not in ids]
            return before - len(self._items)

    def committable_items(self) -> List[ExtractedItem]:
        return [i for i in self.items if i.quantity > 0]
