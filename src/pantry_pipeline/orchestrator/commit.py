from __future__ import annotations

import math
from typing import Iterable, Optional

from ..backend.client import RemoteGateway
from ..domain.models import CommitOutcome, ExtractedItem
from ..domain.normalize import DEFAULT_UNIT, round_to_int
from ..errors import GatewayUnavailable, MissingUserError, TransportFailure, UploadFailure
from ..logging import get_logger

LOG = get_logger("commit")

ADD_INGREDIENT_ENDPOINT = "/add_ingredient/"


class InventoryCommitter:
    """Writes reconciled items to the remote inventory, one request per item."""

    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    def commit(self, items: Iterable[ExtractedItem], user_id: Optional[str]) -> CommitOutcome:
        """Return success/error tallies; per-item failures never raise.

        Zero-quantity items are skipped without counting as errors. If every
        attempted write failed without any response, the backend is
        unreachable and GatewayUnavailable carries the outcome.
        """
        if not user_id:
            raise MissingUserError("User ID not found. Please log in again.")

        outcome = CommitOutcome()
        transport_failures = 0
        for item in items:
            if not math.isfinite(item.quantity) or item.quantity <= 0:
                outcome.skipped_count += 1
                LOG.debug(f"Skipping '{item.name}' (quantity {item.quantity})")
                continue

            payload = {
                "user_id": user_id,
                "name": item.name,
                "quantity": round_to_int(item.quantity),
                "unit": item.unit or DEFAULT_UNIT,
            }
            try:
                self.gateway.submit_json(ADD_INGREDIENT_ENDPOINT, payload)
            except UploadFailure as e:
                outcome.error_count += 1
                LOG.warning(f"Failed to add '{item.name}': HTTP {e.status}")
                continue
            except TransportFailure as e:
                outcome.error_count += 1
                transport_failures += 1
                LOG.warning(f"Failed to add '{item.name}': {e}")
                continue

            outcome.success_count += 1
            outcome.committed.append(item)
            LOG.info(f"Added '{item.name}' x{payload['quantity']} {payload['unit']}")

        if outcome.attempted and transport_failures == outcome.attempted:
            raise GatewayUnavailable(
                "Failed to add items to inventory: the backend could not be reached.",
                outcome=outcome,
            )
        LOG.info(outcome.summary())
        return outcome
