"""Recipe generation and the cook action that replaces the inventory."""

from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from ..backend.client import RawResponse, RemoteGateway
from ..domain.models import Recipe
from ..errors import (
    GatewayError,
    MissingInventoryPlan,
    MissingUserError,
    RecipeGenerationError,
    TransportFailure,
    UploadFailure,
)
from ..logging import get_logger
from .macros import DailyMacroLedger

LOG = get_logger("recipes")

MEAL_TYPES = ("breakfast", "lunch", "dinner")
UPDATE_INVENTORY_ENDPOINT = "/update-inventory/"


def _remote_message(body: Any, default: str) -> str:
    """`detail` verbatim if it is text, serialised if structured."""
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if detail is not None and not isinstance(detail, str):
            return json.dumps(detail)
    return default


class RecipeService:
    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway

    def generate(self, user_id: str, meal_type: str) -> Recipe:
        if not user_id:
            raise MissingUserError("User not authenticated")
        meal = (meal_type or "").strip().lower()
        if meal not in MEAL_TYPES:
            raise ValueError(f"Unknown meal type: {meal_type!r} ({' / '.join(MEAL_TYPES)})")

        try:
            raw = self.gateway.get_json(f"/generate-recipe/{user_id}", params={"meal_type": meal})
            data = raw.json if isinstance(raw.json, dict) else {}
        except UploadFailure as e:
            data = e.body if isinstance(e.body, dict) else {}
            raise RecipeGenerationError(
                str(data.get("error") or data.get("detail") or f"Failed to generate recipe (HTTP {e.status})")
            ) from e
        except TransportFailure as e:
            raise RecipeGenerationError(f"Failed to generate {meal} recipe: {e}") from e

        if data.get("error") or data.get("success") is not True or not isinstance(data.get("recipe"), dict):
            raise RecipeGenerationError(str(data.get("error") or data.get("detail") or "Failed to generate recipe"))

        recipe = Recipe.from_payload(data["recipe"], meal_type=meal)
        LOG.info(f"Generated {meal} recipe: {recipe.recipe_name}")
        return recipe


class RecipeBook:
    """Generated recipes keyed by meal type, kept in a JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._recipes: Dict[str, Recipe] = {}
        if os.path.isfile(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                LOG.warning(f"Ignoring unreadable recipe store {path}: {e}")
                data = {}
            if isinstance(data, dict):
                for meal, payload in data.items():
                    if isinstance(payload, dict):
                        self._recipes[meal] = Recipe.from_payload(payload, meal_type=meal)

    def get(self, meal_type: str) -> Optional[Recipe]:
        return self._recipes.get(meal_type)

    def put(self, recipe: Recipe) -> None:
        key = recipe.meal_type or "recipe"
        self._recipes[key] = recipe
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({k: r.to_dict() for k, r in self._recipes.items()}, f, ensure_ascii=False, indent=2)


@dataclass
class CookOutcome:
    success: bool
    error_message: Optional[str] = None
    response: Optional[Any] = None


class RecipeCookCommitter:
    """Applies a recipe's pre-computed inventory snapshot, at most once per call.

    The snapshot fully replaces the user's inventory on the backend. There is
    no rollback; the backend is the source of truth.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        ledger: Optional[DailyMacroLedger] = None,
        *,
        banner_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger if ledger is not None else DailyMacroLedger()
        self.banner_seconds = banner_seconds
        self._clock = clock
        self._banner_until: Optional[float] = None

    @property
    def show_success_banner(self) -> bool:
        return self._banner_until is not None and self._clock() < self._banner_until

    def cook(self, recipe: Union[Recipe, Dict[str, Any]], user_id: Optional[str]) -> CookOutcome:
        if isinstance(recipe, dict):
            recipe = Recipe.from_payload(recipe)
        if not user_id:
            raise MissingUserError("User not authenticated")
        plan = recipe.suggested_inventory_update
        if plan is None or plan == "":
            raise MissingInventoryPlan("No inventory update data available for this recipe")

        self._banner_until = None
        LOG.info(f"Cooking '{recipe.recipe_name}' for user {user_id}")
        try:
            raw: RawResponse = self.gateway.submit_json(
                UPDATE_INVENTORY_ENDPOINT,
                {"user_id": user_id, "updated_inventory": plan},
            )
        except UploadFailure as e:
            message = _remote_message(e.body, "Failed to update inventory")
            LOG.warning(f"Cook failed: {message}")
            return CookOutcome(False, message, e.body)
        except GatewayError as e:
            LOG.error(f"Error cooking recipe: {e}")
            return CookOutcome(False, "Failed to update inventory after cooking", None)

        body = raw.json
        if not isinstance(body, dict) or body.get("success") is not True:
            message = _remote_message(body, "Failed to update inventory")
            LOG.warning(f"Cook rejected: {message}")
            return CookOutcome(False, message, body)

        if recipe.macros:
            self.ledger.add(recipe.macros)
        self._banner_until = self._clock() + self.banner_seconds
        LOG.info("Inventory updated successfully")
        return CookOutcome(True, None, body)
