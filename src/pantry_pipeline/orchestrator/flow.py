"""Configuration and wiring of the pipeline services."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Optional

from ..backend.client import RemoteGateway
from ..config import (
    load_base_url as _cfg_load_base_url,
    load_throttle_seconds as _cfg_load_throttle,
    load_timeouts as _cfg_load_timeouts,
    load_user_id as _cfg_load_user_id,
)
from ..logging import get_logger
from ..paths import find_project_root, var_dir
from .batch import PhotoBatchProcessor
from .commit import InventoryCommitter
from .inventory import InventoryService
from .macros import DailyMacroLedger, save_totals
from .recipes import RecipeBook, RecipeCookCommitter, RecipeService
from .throttle import ThrottledQueue

LOG = get_logger("flow")


@dataclass
class PipelineConfig:
    base_url: str
    user_id: Optional[str]
    timeout: float
    health_timeout: float
    throttle_seconds: float
    state_dir: str


def build_pipeline_config(args, *, script_dir: str) -> PipelineConfig:
    """Merge CLI overrides over env/.env settings and log the result."""
    base_url = getattr(args, "base_url", None) or _cfg_load_base_url(script_dir)
    user_id = getattr(args, "user_id", None) or _cfg_load_user_id(script_dir)
    timeout, health_timeout = _cfg_load_timeouts(script_dir)
    if getattr(args, "timeout", None) is not None:
        timeout = float(args.timeout)
    throttle = getattr(args, "throttle", None)
    throttle_seconds = float(throttle) if throttle is not None else _cfg_load_throttle(script_dir)

    state_dir = var_dir(find_project_root(script_dir))

    LOG.info("Pipeline configuration prepared")
    LOG.info(f"Backend base URL   : {base_url}")
    LOG.info(f"User id            : {user_id or '(not set)'}")
    LOG.info(f"HTTP timeout       : {timeout}s (health {health_timeout}s)")
    LOG.info(f"Throttle delay     : {throttle_seconds}s")
    LOG.info(f"State directory    : {state_dir}")

    return PipelineConfig(
        base_url=base_url,
        user_id=user_id,
        timeout=timeout,
        health_timeout=health_timeout,
        throttle_seconds=throttle_seconds,
        state_dir=state_dir,
    )


class Pipeline:
    """Builds every service on one shared gateway."""

    def __init__(self, config: PipelineConfig, *, gateway: Optional[RemoteGateway] = None) -> None:
        self.config = config
        self.gateway = gateway or RemoteGateway(
            config.base_url,
            timeout=config.timeout,
            health_timeout=config.health_timeout,
        )
        self.processor = PhotoBatchProcessor(self.gateway, queue=ThrottledQueue(config.throttle_seconds))
        self.committer = InventoryCommitter(self.gateway)
        self.inventory = InventoryService(self.gateway)
        self.recipes = RecipeService(self.gateway)

    @property
    def macros_path(self) -> str:
        return os.path.join(self.config.state_dir, "daily_macros.json")

    @property
    def recipes_path(self) -> str:
        return os.path.join(self.config.state_dir, "recipes.json")

    def recipe_book(self) -> RecipeBook:
        return RecipeBook(self.recipes_path)

    def cook_committer(self) -> RecipeCookCommitter:
        path = self.macros_path
        ledger = DailyMacroLedger.load(path, on_change=lambda totals: save_totals(path, totals))
        return RecipeCookCommitter(self.gateway, ledger)


def log_environment_banner() -> None:
    LOG.info("Starting pantry pipeline")
    LOG.info(f"Working directory: {os.getcwd()}")
    LOG.info(f"Python executable: {sys.executable}")
