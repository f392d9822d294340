from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..domain.models import CapturedPhoto
from ..errors import TransportFailure, UploadFailure
from ..logging import get_logger
from ..paths import uri_to_path

UPLOAD_MIME = "image/jpeg"


@dataclass(frozen=True)
class RawResponse:
    status_code: int
    json: Any
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class RemoteGateway:
    """Thin client for the nutrition backend with session, timeouts, and logging.

    Every call either returns a 2xx `RawResponse` or raises `TransportFailure`
    (nothing came back) / `UploadFailure` (non-2xx). `health()` is the one
    call that never raises.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30,
        health_timeout: float = 5,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.log = get_logger("gateway")
        self.s = session if session is not None else requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    # ---------- helpers ----------
    def _url(self, endpoint: str) -> str:
        return f"{self.base}/{endpoint.lstrip('/')}"

    @staticmethod
    def _decode(r: requests.Response) -> RawResponse:
        try:
            body = r.json()
        except ValueError:
            body = None
        return RawResponse(status_code=r.status_code, json=body, text=r.text or "")

    def _checked(self, r: requests.Response, endpoint: str) -> RawResponse:
        raw = self._decode(r)
        if not raw.ok:
            self.log.warning(f"{endpoint} answered {raw.status_code}: {raw.text[:200]}")
            raise UploadFailure(raw.status_code, raw.json if raw.json is not None else raw.text, endpoint=endpoint)
        return raw

    # ---------- health ----------
    def health(self) -> bool:
        try:
            r = self.s.get(self._url("/health/"), timeout=self.health_timeout)
        except requests.RequestException as e:
            self.log.error(f"API health check failed: {e}")
            return False
        healthy = 200 <= r.status_code < 300
        if not healthy:
            self.log.warning(f"API health check returned {r.status_code}")
        return healthy

    # ---------- uploads ----------
    def submit_file(
        self,
        endpoint: str,
        photo: CapturedPhoto,
        extra_fields: Optional[Dict[str, Any]] = None,
        *,
        filename: Optional[str] = None,
    ) -> RawResponse:
        """Multipart upload of one photo as field ``file`` plus scalar form fields."""
        path = uri_to_path(photo.uri)
        name = filename or photo.upload_filename
        data = {k: str(v) for k, v in (extra_fields or {}).items() if v is not None}

        self.log.info(f"POST {endpoint}: file={name}, fields={sorted(data)}")
        try:
            with open(path, "rb") as fh:
                files = {"file": (name, fh, UPLOAD_MIME)}
                r = self.s.post(self._url(endpoint), files=files, data=data, timeout=self.timeout)
        except OSError as e:
            # requests.RequestException is an OSError too; both mean nothing usable came back
            self.log.error(f"POST {endpoint} failed for {path}: {e}")
            raise TransportFailure(e, endpoint=endpoint) from e
        return self._checked(r, endpoint)

    # ---------- JSON ----------
    def submit_json(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        method: str = "POST",
    ) -> RawResponse:
        verb = method.upper()
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if payload is not None and verb in ("POST", "PUT", "PATCH"):
            kwargs["json"] = payload

        self.log.info(f"{verb} {endpoint}")
        try:
            r = self.s.request(verb, self._url(endpoint), **kwargs)
        except requests.RequestException as e:
            self.log.error(f"{verb} {endpoint} failed: {e}")
            raise TransportFailure(e, endpoint=endpoint) from e
        return self._checked(r, endpoint)

    def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> RawResponse:
        self.log.info(f"GET {endpoint}")
        try:
            r = self.s.get(self._url(endpoint), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            self.log.error(f"GET {endpoint} failed: {e}")
            raise TransportFailure(e, endpoint=endpoint) from e
        return self._checked(r, endpoint)
