"""Running daily macro totals fed by cooked recipes."""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, Mapping, Optional

from ..domain.models import MacroTotals
from ..domain.normalize import parse_leading_int
from ..logging import get_logger

LOG = get_logger("macros")

MACRO_KEYS = ("protein", "carbs", "fat")


class DailyMacroLedger:
    """Process-wide protein/carbs/fat totals.

    Persisting the totals is the caller's business; pass `on_change` to be
    told about every new value, or use `load`/`save` with a JSON file.
    """

    def __init__(
        self,
        totals: Optional[MacroTotals] = None,
        *,
        on_change: Optional[Callable[[MacroTotals], None]] = None,
    ) -> None:
        self.totals = totals or MacroTotals()
        self._on_change = on_change

    def add(self, macros: Mapping[str, Any]) -> MacroTotals:
        """Add a recipe's macros; values like '25g' count as 25, missing as 0."""
        self.totals = MacroTotals(
            protein=self.totals.protein + parse_leading_int(macros.get("protein")),
            carbs=self.totals.carbs + parse_leading_int(macros.get("carbs")),
            fat=self.totals.fat + parse_leading_int(macros.get("fat")),
        )
        LOG.info(f"Daily macros now P{self.totals.protein} C{self.totals.carbs} F{self.totals.fat}")
        if self._on_change is not None:
            self._on_change(self.totals)
        return self.totals

    def reset(self) -> None:
        self.totals = MacroTotals()
        if self._on_change is not None:
            self._on_change(self.totals)

    def as_dict(self) -> Dict[str, int]:
        return {k: getattr(self.totals, k) for k in MACRO_KEYS}

    @classmethod
    def load(cls, path: str, **kwargs: Any) -> "DailyMacroLedger":
        if not os.path.isfile(path):
            return cls(**kwargs)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            LOG.warning(f"Could not read daily macros from {path}: {e}")
            return cls(**kwargs)
        if not isinstance(data, dict):
            return cls(**kwargs)
        totals = MacroTotals(**{k: parse_leading_int(data.get(k)) for k in MACRO_KEYS})
        return cls(totals, **kwargs)

    def save(self, path: str) -> None:
        save_totals(path, self.totals)


def save_totals(path: str, totals: MacroTotals) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump({k: getattr(totals, k) for k in MACRO_KEYS}, f, indent=2)
    LOG.debug(f"Saved daily macros to {path}")
