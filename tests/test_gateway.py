import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.abspath("src"))

from conftest import FakeResponse
from pantry_pipeline.domain.models import CapturedPhoto
from pantry_pipeline.errors import TransportFailure, UploadFailure


def test_health_uses_short_timeout_and_reports_ok(gateway, fake_session):
    assert gateway.health() is True
    call = fake_session.health_calls[0]
    assert call.url == "http://backend.test/health/"
    assert call.timeout == 5


def test_health_false_on_non_2xx(gateway, fake_session):
    fake_session.health = FakeResponse(503, {"detail": "down"})
    assert gateway.health() is False


def test_health_never_raises_on_transport_error(gateway, fake_session):
    fake_session.health = requests.ConnectionError("refused")
    assert gateway.health() is False


def test_session_asks_for_json(gateway, fake_session):
    assert fake_session.headers["Accept"] == "application/json"


def test_submit_file_sends_multipart_photo_and_fields(gateway, fake_session, make_photos):
    photo = make_photos(1)[0]
    fake_session.script(FakeResponse(200, {"success": True, "items": []}))

    raw = gateway.submit_file("/extract-bill-upload/", photo, {"user_id": "u1", "skip": None})

    call = fake_session.calls[0]
    assert call.url == "http://backend.test/extract-bill-upload/"
    assert call.upload.filename == "photo_0.jpg"
    assert call.upload.mime == "image/jpeg"
    assert call.upload.content == b"\xff\xd8jpeg-0"
    assert call.data == {"user_id": "u1"}
    assert call.timeout == 30
    assert raw.ok and raw.json == {"success": True, "items": []}


def test_submit_file_accepts_file_uri(gateway, fake_session, make_photos):
    photo = make_photos(1)[0]
    as_uri = CapturedPhoto(uri="file://" + photo.uri, local_index=7)

    gateway.submit_file("/detect-items/", as_uri)

    assert fake_session.calls[0].upload.filename == "photo_7.jpg"
    assert fake_session.calls[0].data == {}


def test_submit_file_non_2xx_raises_upload_failure(gateway, fake_session, make_photos):
    fake_session.script(FakeResponse(422, {"detail": "bad image"}))

    with pytest.raises(UploadFailure) as exc:
        gateway.submit_file("/detect-items/", make_photos(1)[0])

    assert exc.value.status == 422
    assert exc.value.body == {"detail": "bad image"}


def test_submit_file_transport_error_raises_transport_failure(gateway, fake_session, make_photos):
    cause = requests.ConnectionError("connection reset")
    fake_session.script(cause)

    with pytest.raises(TransportFailure) as exc:
        gateway.submit_file("/detect-items/", make_photos(1)[0])

    assert exc.value.cause is cause
    assert "network error" in str(exc.value)


def test_unreadable_photo_is_a_transport_failure(gateway, fake_session, tmp_path):
    missing = CapturedPhoto(uri=str(tmp_path / "gone.jpg"), local_index=0)

    with pytest.raises(TransportFailure):
        gateway.submit_file("/detect-items/", missing)
    assert fake_session.calls == []


def test_submit_json_methods(gateway, fake_session):
    gateway.submit_json("/update_ingredient/9", {"name": "milk"}, method="put")
    gateway.submit_json("/delete_ingredient/9", method="DELETE")

    put, delete = fake_session.calls
    assert (put.method, put.json, put.timeout) == ("PUT", {"name": "milk"}, 30)
    assert (delete.method, delete.json) == ("DELETE", None)


def test_non_json_body_keeps_text(gateway, fake_session):
    fake_session.script(FakeResponse(500, None, text="Internal Server Error"))

    with pytest.raises(UploadFailure) as exc:
        gateway.submit_json("/add_ingredient/", {"name": "x"})
    assert exc.value.body == "Internal Server Error"


def test_get_json_passes_params(gateway, fake_session):
    fake_session.script(FakeResponse(200, {"success": True}))

    raw = gateway.get_json("/generate-recipe/u1", params={"meal_type": "lunch"})

    assert fake_session.calls[0].params == {"meal_type": "lunch"}
    assert raw.json == {"success": True}
