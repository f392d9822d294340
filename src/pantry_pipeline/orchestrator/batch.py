"""Sequential, throttled photo submission with per-photo failure capture."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..backend.client import RemoteGateway
from ..domain.models import BatchResult, CapturedPhoto, Detection, ExtractedItem, ExtractionMode
from ..errors import (
    BatchPreconditionError,
    GatewayError,
    GatewayUnavailable,
    MissingUserError,
    ShapeMismatch,
    TransportFailure,
    UploadFailure,
)
from ..logging import get_logger
from .extraction import extraction_summary, items_from_extraction, parse_extraction, response_succeeded
from .throttle import ProgressCallback, ThrottledQueue

LOG = get_logger("batch")

PREDICT_ENDPOINT = "/predict/"


@dataclass(frozen=True)
class BatchContext:
    user_id: Optional[str] = None


@dataclass
class BatchOutcome:
    results: List[BatchResult] = field(default_factory=list)
    items: List[ExtractedItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> List[BatchResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        return f"Successfully processed {self.succeeded} of {self.total} photo(s); {len(self.items)} item(s) extracted"


def _failure_message(exc: Exception) -> str:
    if isinstance(exc, TransportFailure):
        return f"network error: {exc.cause}"
    if isinstance(exc, UploadFailure):
        return f"HTTP error! status: {exc.status}"
    return str(exc)


def format_detections(raw_response: Any) -> List[Detection]:
    """Detections from a ``/predict/`` body; missing fields default to Unknown/0."""
    if not isinstance(raw_response, dict):
        return []
    found = raw_response.get("detections")
    if not isinstance(found, list):
        return []

    def _num(d: Dict[str, Any], key: str) -> float:
        v = d.get(key)
        return float(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else 0.0

    out: List[Detection] = []
    for d in found:
        if not isinstance(d, dict):
            continue
        cls = d.get("class")
        out.append(
            Detection(
                name=str(d.get("name") or "Unknown"),
                confidence=_num(d, "confidence"),
                xmin=_num(d, "xmin"),
                ymin=_num(d, "ymin"),
                xmax=_num(d, "xmax"),
                ymax=_num(d, "ymax"),
                class_id=int(cls) if isinstance(cls, (int, float)) and not isinstance(cls, bool) else 0,
            )
        )
    return out


class PhotoBatchProcessor:
    """Submits captured photos one by one and normalises what comes back.

    A batch never aborts on a single photo: transport errors, non-2xx
    answers and malformed bodies are recorded in that photo's BatchResult
    and the next photo is submitted. Only the up-front preconditions
    (no photos, no user for bill mode, backend down) raise.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        queue: Optional[ThrottledQueue] = None,
        check_health: bool = True,
    ) -> None:
        self.gateway = gateway
        self.queue = queue or ThrottledQueue()
        self.check_health = check_health

    def _preflight(self, photos: Sequence[CapturedPhoto]) -> None:
        if not photos:
            raise BatchPreconditionError("No photos available for processing")
        if self.check_health and not self.gateway.health():
            raise GatewayUnavailable(
                "The processing service is currently unavailable. Please check your connection and try again."
            )

    def process_batch(
        self,
        photos: Sequence[CapturedPhoto],
        mode: ExtractionMode,
        context: Optional[BatchContext] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        ctx = context or BatchContext()
        if mode is ExtractionMode.BILL and photos and not ctx.user_id:
            raise MissingUserError("User ID not found; bill extraction needs a user")
        self._preflight(photos)

        LOG.info(f"Starting {mode.value} batch of {len(photos)} photo(s) via {mode.endpoint}")
        extra = {"user_id": ctx.user_id} if mode is ExtractionMode.BILL else None
        outcome = BatchOutcome()

        def _task(position: int, photo: CapturedPhoto) -> Callable[[], BatchResult]:
            def run() -> BatchResult:
                LOG.info(f"Processing photo {position + 1}/{len(photos)}: {photo.uri}")
                try:
                    raw = self.gateway.submit_file(mode.endpoint, photo, extra)
                    parsed = parse_extraction(mode, raw.json)
                except (GatewayError, ShapeMismatch) as exc:
                    LOG.warning(f"Photo {position + 1} failed: {exc}")
                    body = exc.body if isinstance(exc, UploadFailure) else None
                    return BatchResult(position, photo.uri, False, body, _failure_message(exc))

                if not response_succeeded(parsed):
                    LOG.warning(f"Photo {position + 1}: backend reported success=false")
                    return BatchResult(position, photo.uri, False, raw.json, "extraction was not successful")

                items = items_from_extraction(parsed, position)
                outcome.items.extend(items)
                LOG.info(f"Photo {position + 1}: {extraction_summary(parsed)} -> {len(items)} item(s)")
                return BatchResult(position, photo.uri, True, raw.json, None)

            return run

        outcome.results = self.queue.run([_task(i, p) for i, p in enumerate(photos)], on_start=on_progress)
        LOG.info(outcome.summary())
        return outcome

    def scan_nutrition(
        self,
        photos: Sequence[CapturedPhoto],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BatchResult]:
        """Run photos through ``/predict/``; bodies keep their ``detections`` for aggregation."""
        self._preflight(photos)
        LOG.info(f"Starting detection scan of {len(photos)} photo(s)")

        def _task(position: int, photo: CapturedPhoto) -> Callable[[], BatchResult]:
            def run() -> BatchResult:
                try:
                    raw = self.gateway.submit_file(PREDICT_ENDPOINT, photo)
                except GatewayError as exc:
                    LOG.warning(f"Photo {position + 1} failed: {exc}")
                    body = exc.body if isinstance(exc, UploadFailure) else None
                    return BatchResult(position, photo.uri, False, body, _failure_message(exc))
                if not isinstance(raw.json, dict):
                    return BatchResult(position, photo.uri, False, raw.json, "response is not a JSON object")
                LOG.info(f"Photo {position + 1}: {len(format_detections(raw.json))} detection(s)")
                return BatchResult(position, photo.uri, True, raw.json, None)

            return run

        results = self.queue.run([_task(i, p) for i, p in enumerate(photos)], on_start=on_progress)
        LOG.info(f"Detection scan finished: {sum(1 for r in results if r.success)} of {len(results)} succeeded")
        return results
