import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath("src"))

from conftest import BASE_URL, FakeResponse
from pantry_pipeline.cli import main as cli_main
from pantry_pipeline.errors import UploadFailure
from pantry_pipeline.orchestrator import Pipeline


@pytest.fixture
def workspace(tmp_path, monkeypatch, gateway):
    for key in ("PANTRY_USER_ID", "PANTRY_BASE_URL", "PANTRY_THROTTLE_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    (tmp_path / ".env").write_text(f"PANTRY_BASE_URL={BASE_URL}\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_main, "Pipeline", lambda config: Pipeline(config, gateway=gateway))
    return tmp_path


def test_scan_edit_and_commit(workspace, fake_session, make_photos, capsys):
    photos = make_photos(2)
    fake_session.script(FakeResponse(200, {"apple": 3}), FakeResponse(200, {"egg": 2, "salt": 1}))

    code = cli_main.main(
        [
            "scan", "--mode", "items", "--throttle", "0", "--user-id", "u1",
            "--photo", photos[0].uri, "--photo", photos[1].uri,
            "--set-quantity", "1=5", "--set-unit", "1=dozen", "--remove", "0", "--remove", "2",
            "--commit",
        ]
    )

    assert code == 0
    commits = [c for c in fake_session.calls if c.url.endswith("/add_ingredient/")]
    assert [c.json for c in commits] == [{"user_id": "u1", "name": "egg", "quantity": 5, "unit": "dozen"}]
    out = capsys.readouterr().out
    assert "Successfully processed 2 of 2 photo(s)" in out
    assert "Successfully added 1 items to your inventory." in out


def test_scan_json_without_commit(workspace, fake_session, make_photos, capsys):
    photos = make_photos(1)
    fake_session.script(FakeResponse(200, {"apple": 3}))

    code = cli_main.main(["scan", "--mode", "items", "--throttle", "0", "--photo", photos[0].uri, "--json"])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["items"][0]["display_text"] == "3 pcs"
    assert len(fake_session.calls) == 1


def test_bill_scan_without_user_is_a_precondition_failure(workspace, fake_session, make_photos):
    photos = make_photos(1)
    code = cli_main.main(["scan", "--mode", "bill", "--photo", photos[0].uri])
    assert code == 2
    assert fake_session.calls == []


def test_health_command(workspace, fake_session):
    assert cli_main.main(["health"]) == 0
    fake_session.health = FakeResponse(503)
    assert cli_main.main(["health"]) == 1


def test_cook_needs_a_generated_recipe(workspace, fake_session):
    assert cli_main.main(["recipe", "cook", "--meal", "lunch", "--user-id", "u1"]) == 2
    assert fake_session.calls == []


def test_generate_then_cook(workspace, fake_session):
    recipe = {
        "recipe_name": "Toast",
        "macros": {"protein": "6g", "carbs": "30g", "fat": "2g"},
        "suggested_inventory_update": [{"Name": "bread", "Quantity": 1, "Units": "slices"}],
    }
    fake_session.script(FakeResponse(200, {"success": True, "recipe": recipe}), FakeResponse(200, {"success": True}))

    assert cli_main.main(["recipe", "generate", "--meal", "breakfast", "--user-id", "u1"]) == 0
    assert cli_main.main(["recipe", "cook", "--meal", "breakfast", "--user-id", "u1"]) == 0

    assert fake_session.calls[1].json["updated_inventory"] == recipe["suggested_inventory_update"]
    with open(workspace / "var" / "daily_macros.json", encoding="utf-8") as f:
        assert json.load(f) == {"protein": 6, "carbs": 30, "fat": 2}


def test_inventory_add_validation(workspace, fake_session):
    code = cli_main.main(["inventory", "add", "--user-id", "u1", "--name", "rice", "--quantity", "some"])
    assert code == 2
    assert fake_session.calls == []


def test_bad_edit_argument_is_a_usage_error(workspace):
    with pytest.raises(SystemExit):
        cli_main.main(["scan", "--mode", "items", "--photo", "x.jpg", "--set-quantity", "oops"])


def test_nutrition_totals(workspace, fake_session, make_photos, capsys):
    photos = make_photos(2)
    fake_session.script(
        FakeResponse(200, {"detections": [{"name": "Apple"}, {"name": "egg"}]}),
        FakeResponse(500, {"detail": "model crashed"}),
    )

    code = cli_main.main(
        ["nutrition", "--throttle", "0", "--photo", photos[0].uri, "--photo", photos[1].uri, "--json"]
    )

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["totals"] == {"calories": 150, "protein": 6.4, "carbs": 21.6, "fat": 5.3, "items": 2}
    assert [p["processed"] for p in report["photos"]] == [True, False]


def test_inventory_failure_reports_server_detail():
    assert cli_main._failure_detail(UploadFailure(404, {"detail": "Item not found"})) == "Item not found"
    assert cli_main._failure_detail(UploadFailure(400, {"error": "Duplicate item"})) == "Duplicate item"
    assert cli_main._failure_detail(UploadFailure(422, {"detail": [{"msg": "bad"}]})) == '[{"msg": "bad"}]'
    assert cli_main._failure_detail(UploadFailure(502, "Bad Gateway")) == "HTTP error! status: 502"


def test_inventory_add_rejects_infinite_quantity(workspace, fake_session):
    code = cli_main.main(["inventory", "add", "--user-id", "u1", "--name", "rice", "--quantity", "inf"])
    assert code == 2
    assert fake_session.calls == []
