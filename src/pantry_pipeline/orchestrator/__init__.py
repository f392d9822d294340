"""High-level orchestration for photo ingestion, reconciliation and commits."""

from .throttle import ThrottledQueue
from .batch import BatchContext, BatchOutcome, PhotoBatchProcessor, format_detections
from .reconcile import ReconciliationSession
from .commit import InventoryCommitter
from .inventory import InventoryService
from .macros import DailyMacroLedger
from .recipes import CookOutcome, RecipeBook, RecipeCookCommitter, RecipeService
from .session import CaptureSession, SessionState
from .photos import collect_photos, photos_from_paths
from .flow import Pipeline, PipelineConfig, build_pipeline_config, log_environment_banner

__all__ = [
    "ThrottledQueue",
    "BatchContext",
    "BatchOutcome",
    "PhotoBatchProcessor",
    "format_detections",
    "ReconciliationSession",
    "InventoryCommitter",
    "InventoryService",
    "DailyMacroLedger",
    "CookOutcome",
    "RecipeBook",
    "RecipeCookCommitter",
    "RecipeService",
    "CaptureSession",
    "SessionState",
    "collect_photos",
    "photos_from_paths",
    "Pipeline",
    "PipelineConfig",
    "build_pipeline_config",
    "log_environment_banner",
]
