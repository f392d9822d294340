"""Exception taxonomy for the ingestion and reconciliation pipeline.

Per-photo and per-item failures are normally captured into result records;
these exceptions surface only where a whole run cannot proceed, or inside
the gateway before the caller decides how to record them.
"""

from __future__ import annotations

from typing import Any, Optional


class PipelineError(Exception):
    pass


class GatewayError(PipelineError):
    """A call to the backend did not produce a usable 2xx response."""


class TransportFailure(GatewayError):
    """No response reached us (connection refused, timeout, unreadable photo)."""

    def __init__(self, cause: BaseException, *, endpoint: str = "") -> None:
        self.cause = cause
        self.endpoint = endpoint
        where = f" for {endpoint}" if endpoint else ""
        super().__init__(f"network error{where}: {cause}")


class UploadFailure(GatewayError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, body: Any = None, *, endpoint: str = "") -> None:
        self.status = int(status)
        self.body = body
        self.endpoint = endpoint
        where = f" for {endpoint}" if endpoint else ""
        super().__init__(f"HTTP error{where}! status: {self.status}")


HTTPFailure = UploadFailure


class ShapeMismatch(PipelineError):
    """A 2xx response body lacked the keys its endpoint promises."""


class MissingInventoryPlan(PipelineError):
    pass


class GatewayUnavailable(PipelineError):
    def __init__(self, message: str, *, outcome: Optional[Any] = None) -> None:
        self.outcome = outcome
        super().__init__(message)


class BatchPreconditionError(PipelineError):
    pass


class MissingUserError(BatchPreconditionError):
    pass


class SessionClosedError(PipelineError):
    pass


class RecipeGenerationError(PipelineError):
    pass


class AuthenticationError(PipelineError):
    pass
