import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.abspath("src"))

from pantry_pipeline.domain.models import ExtractedItem
from pantry_pipeline.domain.normalize import format_quantity
from pantry_pipeline.orchestrator import ReconciliationSession


def _session():
    return ReconciliationSession(
        [
            ExtractedItem("milk", 2, "L"),
            ExtractedItem("flour", 500, "g"),
            ExtractedItem("apple", 3),
        ]
    )


@pytest.mark.parametrize("raw", ["abc", "", "-4", None, "nan"])
def test_invalid_quantity_text_clamps_to_zero(raw):
    session = _session()

    item = session.update_quantity(0, raw)

    assert item.quantity == 0
    assert item.display_text == "0 L"


def test_quantity_text_reads_leading_number():
    session = _session()
    assert session.update_quantity(1, "2.5kg").quantity == 2.5
    assert session.update_quantity(1, " 7 ").display_text == "7 g"


def test_display_text_tracks_every_edit():
    session = _session()
    for raw, unit in [("1.25", "kg"), ("3", "g"), ("x", "pack"), ("10", "")]:
        session.update_quantity(1, raw)
        item = session.items[1]
        assert item.display_text == f"{format_quantity(item.quantity)} {item.unit}"
        session.update_unit(1, unit)
        item = session.items[1]
        assert item.display_text == f"{format_quantity(item.quantity)} {item.unit}"
    assert session.items[1].display_text == "10 pcs"


def test_only_weight_units_toggle():
    session = _session()

    assert session.unit_choices(1) == ("g", "kg")
    assert session.unit_choices(0) == ("L",)
    assert session.toggle_unit(1).unit == "kg"
    assert session.toggle_unit(1).unit == "g"
    with pytest.raises(ValueError):
        session.toggle_unit(0)
    # read-only in the selector, still editable directly
    assert session.update_unit(0, "ml").unit == "ml"


def test_grams_toggles_to_kg():
    session = ReconciliationSession([ExtractedItem("rice", 250, "grams")])
    assert session.unit_choices(0) == ("g", "kg")
    assert session.toggle_unit(0).unit == "kg"


def test_remove_preserves_order_and_reindexes():
    session = _session()

    removed = session.remove(1)

    assert removed.name == "flour"
    assert [i.name for i in session.items] == ["milk", "apple"]
    assert session.update_quantity(1, "5").name == "apple"
    with pytest.raises(IndexError):
        session.remove(2)


def test_items_returns_a_copy():
    session = _session()
    session.items.clear()
    assert len(session) == 3


def test_committable_items_skip_zero_quantities():
    session = _session()
    session.update_quantity(2, "0")
    assert [i.name for i in session.committable_items()] == ["milk", "flour"]


def test_discard_items_matches_by_identity():
    twin_a = ExtractedItem("egg", 1)
    twin_b = ExtractedItem("egg", 1)
    session = ReconciliationSession([twin_a, twin_b])

    assert session.discard_items([twin_a]) == 1
    assert session.items == [twin_b]


@pytest.mark.parametrize("name", ["", "   ", None, 42])
def test_items_need_a_name(name):
    with pytest.raises(ValueError):
        ExtractedItem(name, 1)


def test_negative_quantity_is_rejected_at_materialization():
    with pytest.raises(ValueError):
        ExtractedItem("salt", -1)


@pytest.mark.parametrize("quantity", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_quantity_is_rejected_at_materialization(quantity):
    with pytest.raises(ValueError):
        ExtractedItem("salt", quantity)


def test_toggle_waits_for_a_concurrent_edit():
    session = _session()
    done = threading.Event()

    def toggle():
        session.toggle_unit(1)
        done.set()

    session._lock.acquire()
    worker = threading.Thread(target=toggle)
    worker.start()
    assert not done.wait(0.05)
    session._lock.release()
    worker.join(1)

    assert done.is_set()
    assert session.items[1].unit == "kg"
