"""Explicit lifetime for one capture batch, from capture to commit or discard."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from ..domain.models import CapturedPhoto, CommitOutcome, ExtractionMode
from ..errors import SessionClosedError
from ..logging import get_logger
from .batch import BatchContext, BatchOutcome, PhotoBatchProcessor
from .commit import InventoryCommitter
from .reconcile import ReconciliationSession

LOG = get_logger("capture-session")


class SessionState(Enum):
    CAPTURED = "captured"
    EXTRACTED = "extracted"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class CaptureSession:
    """Owns the photos of one batch and the reconciliation built from them.

    Created when capture completes; closed after a commit that leaves no
    items behind, or by `discard()`. A closed session rejects every call.
    """

    def __init__(self, photos: Sequence[CapturedPhoto], mode: ExtractionMode) -> None:
        self.photos: List[CapturedPhoto] = list(photos)
        self.mode = mode
        self.state = SessionState.CAPTURED
        self.batch: Optional[BatchOutcome] = None
        self.reconciliation: Optional[ReconciliationSession] = None

    @property
    def closed(self) -> bool:
        return self.state in (SessionState.COMMITTED, SessionState.DISCARDED)

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"Capture session is {self.state.value}")

    def extract(self, processor: PhotoBatchProcessor, context: Optional[BatchContext] = None, on_progress=None) -> BatchOutcome:
        self._ensure_open()
        self.batch = processor.process_batch(self.photos, self.mode, context, on_progress=on_progress)
        self.reconciliation = ReconciliationSession(self.batch.items)
        self.state = SessionState.EXTRACTED
        return self.batch

    def commit(self, committer: InventoryCommitter, user_id: Optional[str]) -> CommitOutcome:
        """Commit the reconciled items; written items leave the list.

        Failed items stay so the caller can edit and retry.
        """
        self._ensure_open()
        if self.reconciliation is None:
            raise SessionClosedError("Nothing extracted yet; call extract() first")
        outcome = committer.commit(self.reconciliation.items, user_id)
        self.reconciliation.discard_items(outcome.committed)
        if not self.reconciliation.committable_items():
            self._close(SessionState.COMMITTED)
        return outcome

    def discard(self) -> None:
        self._ensure_open()
        self._close(SessionState.DISCARDED)

    def _close(self, state: SessionState) -> None:
        LOG.info(f"Capture session of {len(self.photos)} photo(s) closed: {state.value}")
        self.state = state
        self.photos = []
        self.reconciliation = None
