import json
import os
import sys
from types import SimpleNamespace

import pytest

# Ensure the repository's src/ is importable
sys.path.insert(0, os.path.abspath("src"))

from pantry_pipeline.backend.client import RemoteGateway
from pantry_pipeline.orchestrator import ThrottledQueue, photos_from_paths

BASE_URL = "http://backend.test"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Stands in for requests.Session.

    Health checks answer from `health`; every other call pops the next
    scripted outcome (a FakeResponse, or an exception to raise). When the
    script runs dry, calls get an empty 200.
    """

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.health_calls = []
        self.health = FakeResponse(200, {"status": "ok"})
        self._script = []

    def script(self, *outcomes):
        self._script.extend(outcomes)
        return self

    def _next(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, **kwargs))
        outcome = self._script.pop(0) if self._script else FakeResponse(200, {})
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def get(self, url, **kwargs):
        if url.endswith("/health/"):
            self.health_calls.append(SimpleNamespace(url=url, **kwargs))
            if isinstance(self.health, BaseException):
                raise self.health
            return self.health
        return self._next("GET", url, json=None, **kwargs)

    def post(self, url, files=None, data=None, **kwargs):
        upload = None
        if files:
            filename, fh, mime = files["file"]
            upload = SimpleNamespace(filename=filename, mime=mime, content=fh.read())
        return self._next("POST", url, upload=upload, data=data, **kwargs)

    def request(self, method, url, **kwargs):
        kwargs.setdefault("json", None)
        return self._next(method, url, **kwargs)

    def posted(self):
        return [c for c in self.calls if c.method == "POST"]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def gateway(fake_session):
    return RemoteGateway(BASE_URL + "/", session=fake_session)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def queue(sleeps):
    return ThrottledQueue(0.5, sleep=sleeps.append)


@pytest.fixture
def make_photos(tmp_path):
    def _make(count):
        paths = []
        for i in range(count):
            p = tmp_path / f"capture_{i}.jpg"
            p.write_bytes(b"\xff\xd8jpeg-%d" % i)
            paths.append(str(p))
        return photos_from_paths(paths)

    return _make
