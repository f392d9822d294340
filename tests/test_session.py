import os
import sys

import pytest

sys.path.insert(0, os.path.abspath("src"))

from conftest import FakeResponse
from pantry_pipeline.domain.models import ExtractionMode
from pantry_pipeline.errors import SessionClosedError
from pantry_pipeline.orchestrator import (
    CaptureSession,
    InventoryCommitter,
    PhotoBatchProcessor,
    SessionState,
)


def _extracted(gateway, fake_session, queue, make_photos):
    fake_session.script(FakeResponse(200, {"apple": 3, "egg": 2}))
    session = CaptureSession(make_photos(1), ExtractionMode.ITEM_PHOTO)
    session.extract(PhotoBatchProcessor(gateway, queue=queue))
    return session


def test_full_commit_closes_the_session(gateway, fake_session, queue, make_photos):
    session = _extracted(gateway, fake_session, queue, make_photos)
    assert session.state is SessionState.EXTRACTED
    assert len(session.reconciliation) == 2

    outcome = session.commit(InventoryCommitter(gateway), "u1")

    assert outcome.success_count == 2
    assert session.state is SessionState.COMMITTED
    assert session.closed and session.photos == []
    with pytest.raises(SessionClosedError):
        session.commit(InventoryCommitter(gateway), "u1")


def test_failed_items_stay_for_retry(gateway, fake_session, queue, make_photos):
    session = _extracted(gateway, fake_session, queue, make_photos)
    fake_session.script(FakeResponse(200, {}), FakeResponse(500, {}))

    outcome = session.commit(InventoryCommitter(gateway), "u1")

    assert (outcome.success_count, outcome.error_count) == (1, 1)
    assert not session.closed
    assert [i.name for i in session.reconciliation.items] == ["egg"]

    session.commit(InventoryCommitter(gateway), "u1")
    assert session.state is SessionState.COMMITTED


def test_zero_quantity_leftovers_do_not_keep_session_open(gateway, fake_session, queue, make_photos):
    session = _extracted(gateway, fake_session, queue, make_photos)
    session.reconciliation.update_quantity(1, "0")

    session.commit(InventoryCommitter(gateway), "u1")

    assert session.state is SessionState.COMMITTED


def test_commit_before_extract(gateway, make_photos):
    session = CaptureSession(make_photos(1), ExtractionMode.ITEM_PHOTO)
    with pytest.raises(SessionClosedError):
        session.commit(InventoryCommitter(gateway), "u1")


def test_discard(gateway, fake_session, queue, make_photos):
    session = _extracted(gateway, fake_session, queue, make_photos)

    session.discard()

    assert session.state is SessionState.DISCARDED
    assert session.reconciliation is None
    with pytest.raises(SessionClosedError):
        session.discard()
    with pytest.raises(SessionClosedError):
        session.extract(PhotoBatchProcessor(gateway, queue=queue))
