"""Manual inventory CRUD against the remote ingredient store."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from ..backend.client import RawResponse, RemoteGateway
from ..domain.models import InventoryEntry
from ..domain.normalize import normalize_name
from ..errors import ShapeMismatch
from ..logging import get_logger

LOG = get_logger("inventory")


def _validated(name: str, quantity: Any, unit: Optional[str]) -> Dict[str, Any]:
    clean = normalize_name(name)
    if not clean:
        raise ValueError("Item name is required")
    try:
        qty = float(str(quantity).strip())
    except (TypeError, ValueError):
        raise ValueError("Valid quantity is required") from None
    if not math.isfinite(qty) or qty < 0:
        raise ValueError("Valid quantity is required")
    return {"name": clean, "quantity": qty, "unit": (unit or "").strip()}


class InventoryService:
    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    def list(self, user_id: str) -> List[InventoryEntry]:
        raw = self.gateway.get_json(f"/get_ingredients/{user_id}")
        body = raw.json if isinstance(raw.json, dict) else None
        if body is None or not isinstance(body.get("ingredients"), list):
            raise ShapeMismatch("inventory response is missing an 'ingredients' list")
        entries = [InventoryEntry.from_row(r) for r in body["ingredients"] if isinstance(r, dict)]
        LOG.info(f"Fetched {len(entries)} inventory item(s) for user {user_id}")
        return entries

    def add(self, user_id: str, name: str, quantity: Any, unit: Optional[str] = None) -> RawResponse:
        payload = _validated(name, quantity, unit)
        payload["user_id"] = user_id
        LOG.info(f"Adding '{payload['name']}' for user {user_id}")
        return self.gateway.submit_json("/add_ingredient/", payload)

    def update(self, item_id: Any, name: str, quantity: Any, unit: Optional[str] = None) -> RawResponse:
        payload = _validated(name, quantity, unit)
        LOG.info(f"Updating inventory item {item_id}")
        return self.gateway.submit_json(f"/update_ingredient/{item_id}", payload, method="PUT")

    def delete(self, item_id: Any) -> RawResponse:
        LOG.info(f"Deleting inventory item {item_id}")
        return self.gateway.submit_json(f"/delete_ingredient/{item_id}", method="DELETE")
