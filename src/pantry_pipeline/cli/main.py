from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Optional, Sequence, Tuple

from ..backend.accounts import fetch_user, login
from ..domain.models import CapturedPhoto, ExtractionMode
from ..domain.nutrition import NutritionAggregator
from ..errors import (
    AuthenticationError,
    BatchPreconditionError,
    GatewayUnavailable,
    MissingInventoryPlan,
    PipelineError,
    RecipeGenerationError,
    UploadFailure,
)
from ..logging import get_logger
from ..orchestrator import (
    BatchContext,
    CaptureSession,
    Pipeline,
    ReconciliationSession,
    build_pipeline_config,
    collect_photos,
    format_detections,
    log_environment_banner,
    photos_from_paths,
)
from ..orchestrator.recipes import MEAL_TYPES

LOG = get_logger("cli-main")

EXIT_OK = 0
EXIT_REMOTE = 1
EXIT_PRECONDITION = 2


def _index_value(text: str) -> Tuple[int, str]:
    """Parse 'INDEX=VALUE' edit arguments."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"expected INDEX=VALUE, got {text!r}")
    idx, value = text.split("=", 1)
    try:
        return int(idx), value
    except ValueError:
        raise argparse.ArgumentTypeError(f"index must be an integer in {text!r}") from None


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base-url", help="Override backend base URL (defaults to env/.env)")
    p.add_argument("--user-id", help="User id (defaults to PANTRY_USER_ID)")
    p.add_argument("--timeout", type=float, help="HTTP timeout in seconds for backend requests")
    p.add_argument("--throttle", type=float, help="Pause in seconds between photo submissions")


def _add_photo_args(p: argparse.ArgumentParser) -> None:
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--photo", action="append", dest="photos", help="Photo file (repeatable, kept in order)")
    src.add_argument("--photo-dir", help="Use every image in this directory, sorted by name")


def _pipeline(ns: argparse.Namespace) -> Pipeline:
    config = build_pipeline_config(ns, script_dir=os.getcwd())
    return Pipeline(config)


def _photos(ns: argparse.Namespace) -> List[CapturedPhoto]:
    if ns.photo_dir:
        return collect_photos(ns.photo_dir)
    return photos_from_paths(ns.photos or [])


def _log_progress(index: int, total: int) -> None:
    LOG.info(f"Processing photo {index + 1} of {total}...")


def _apply_edits(session: ReconciliationSession, ns: argparse.Namespace) -> None:
    """Quantities and units first, then removals from the highest index down."""
    for idx, value in ns.set_quantity or []:
        session.update_quantity(idx, value)
    for idx, value in ns.set_unit or []:
        session.update_unit(idx, value)
    for idx in sorted(set(ns.remove or []), reverse=True):
        session.remove(idx)


def _handle_health(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    healthy = pipeline.gateway.health()
    print("healthy" if healthy else "unavailable")
    return EXIT_OK if healthy else EXIT_REMOTE


def _handle_scan(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    mode = ExtractionMode.parse(ns.mode)
    session = CaptureSession(_photos(ns), mode)

    try:
        batch = session.extract(
            pipeline.processor,
            BatchContext(user_id=pipeline.config.user_id),
            on_progress=_log_progress,
        )
    except (BatchPreconditionError, GatewayUnavailable) as e:
        LOG.error(str(e))
        return EXIT_PRECONDITION

    reconciliation = session.reconciliation
    try:
        _apply_edits(reconciliation, ns)
    except IndexError:
        LOG.error(f"Edit index out of range; {len(reconciliation)} item(s) were extracted")
        return EXIT_PRECONDITION

    if ns.json:
        print(json.dumps({
            "processed": batch.succeeded,
            "photos": batch.total,
            "failures": [{"photo_index": r.photo_index, "error": r.error_message} for r in batch.failed],
            "items": [item.to_dict() for item in reconciliation.items],
        }, ensure_ascii=False, indent=2))
    else:
        print(batch.summary())
        for i, item in enumerate(reconciliation.items):
            print(f"  [{i}] {item.name:<24} {item.display_text}  (photo {item.source_photo_index + 1})")

    if not ns.commit:
        session.discard()
        return EXIT_OK

    try:
        outcome = session.commit(pipeline.committer, pipeline.config.user_id)
    except BatchPreconditionError as e:
        LOG.error(str(e))
        return EXIT_PRECONDITION
    except GatewayUnavailable as e:
        LOG.error(str(e))
        return EXIT_REMOTE
    print(outcome.summary())
    return EXIT_OK if outcome.error_count == 0 else EXIT_REMOTE


def _handle_nutrition(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    try:
        results = pipeline.processor.scan_nutrition(_photos(ns), on_progress=_log_progress)
    except (BatchPreconditionError, GatewayUnavailable) as e:
        LOG.error(str(e))
        return EXIT_PRECONDITION

    aggregator = NutritionAggregator()
    totals = aggregator.aggregate(results)
    if ns.json:
        print(json.dumps({
            "photos": [
                {
                    "photo_index": r.photo_index,
                    "processed": r.success,
                    "error": r.error_message,
                    "detections": [d.name for d in format_detections(r.raw_response)] if r.success else [],
                }
                for r in results
            ],
            "totals": {
                "calories": totals.calories,
                "protein": totals.protein,
                "carbs": totals.carbs,
                "fat": totals.fat,
                "items": totals.item_count,
            },
        }, ensure_ascii=False, indent=2))
    else:
        ok = sum(1 for r in results if r.success)
        print(f"Successfully processed {ok} of {len(results)} photo(s)!")
        print(f"Total items detected: {totals.item_count}")
        print(f"Total calories: {totals.calories}")
        print(f"Protein {totals.protein}g  Carbs {totals.carbs}g  Fat {totals.fat}g")
    return EXIT_OK


def _failure_detail(exc: PipelineError) -> str:
    """Server `detail` or `error` when the backend sent one, else the exception text."""
    if isinstance(exc, UploadFailure) and isinstance(exc.body, dict):
        message = exc.body.get("detail") or exc.body.get("error")
        if message:
            return message if isinstance(message, str) else json.dumps(message)
    return str(exc)


def _require_user(pipeline: Pipeline) -> Optional[str]:
    if not pipeline.config.user_id:
        LOG.error("User not found. Provide --user-id or set PANTRY_USER_ID.")
    return pipeline.config.user_id


def _handle_inventory(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    svc = pipeline.inventory
    try:
        if ns.inventory_command == "list":
            user_id = _require_user(pipeline)
            if not user_id:
                return EXIT_PRECONDITION
            entries = svc.list(user_id)
            if not entries:
                print("Your inventory is empty.")
            for entry in entries:
                print(f"  {entry.id!s:>6}  {entry.name:<24} {entry.display_text}")
        elif ns.inventory_command == "add":
            user_id = _require_user(pipeline)
            if not user_id:
                return EXIT_PRECONDITION
            svc.add(user_id, ns.name, ns.quantity, ns.unit)
            print("Item added successfully")
        elif ns.inventory_command == "update":
            svc.update(ns.id, ns.name, ns.quantity, ns.unit)
            print("Item updated successfully")
        elif ns.inventory_command == "delete":
            svc.delete(ns.id)
            print("Item deleted successfully")
    except ValueError as e:
        LOG.error(str(e))
        return EXIT_PRECONDITION
    except PipelineError as e:
        LOG.error(f"Inventory request failed: {_failure_detail(e)}")
        return EXIT_REMOTE
    return EXIT_OK


def _handle_recipe(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    user_id = _require_user(pipeline)
    if not user_id:
        return EXIT_PRECONDITION
    book = pipeline.recipe_book()

    if ns.recipe_command == "generate":
        try:
            recipe = pipeline.recipes.generate(user_id, ns.meal)
        except RecipeGenerationError as e:
            LOG.error(str(e))
            return EXIT_REMOTE
        book.put(recipe)
        print(json.dumps(recipe.to_dict(), ensure_ascii=False, indent=2))
        return EXIT_OK

    recipe = book.get(ns.meal)
    if recipe is None:
        LOG.error(f"No recipe available for {ns.meal}; run 'recipe generate --meal {ns.meal}' first")
        return EXIT_PRECONDITION
    cooker = pipeline.cook_committer()
    try:
        outcome = cooker.cook(recipe, user_id)
    except MissingInventoryPlan as e:
        LOG.error(str(e))
        return EXIT_PRECONDITION
    if not outcome.success:
        print(outcome.error_message, file=sys.stderr)
        return EXIT_REMOTE
    print("Your inventory has been updated based on the ingredients used in this recipe.")
    print(json.dumps(cooker.ledger.as_dict()))
    return EXIT_OK


def _handle_login(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    try:
        result = login(pipeline.gateway, ns.email, ns.password)
    except AuthenticationError as e:
        LOG.error(str(e))
        return EXIT_REMOTE
    print(json.dumps({"user_id": result.user_id, "access_token": result.access_token}))
    return EXIT_OK


def _handle_whoami(ns: argparse.Namespace) -> int:
    pipeline = _pipeline(ns)
    user_id = _require_user(pipeline)
    if not user_id:
        return EXIT_PRECONDITION
    data = fetch_user(pipeline.gateway, user_id)
    if data is None:
        return EXIT_REMOTE
    print(json.dumps(data, ensure_ascii=False, indent=2))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pantry-pipeline",
        description="Photo ingestion, inventory reconciliation and recipe cooking against the nutrition backend.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    health = subparsers.add_parser("health", help="Check whether the backend is reachable.")
    _add_common_args(health)
    health.set_defaults(handler=_handle_health)

    scan = subparsers.add_parser("scan", help="Extract items from photos, review them, optionally commit.")
    _add_common_args(scan)
    _add_photo_args(scan)
    scan.add_argument("--mode", choices=[m.value for m in ExtractionMode], required=True)
    scan.add_argument("--set-quantity", type=_index_value, action="append", metavar="I=Q")
    scan.add_argument("--set-unit", type=_index_value, action="append", metavar="I=UNIT")
    scan.add_argument("--remove", type=int, action="append", metavar="I")
    scan.add_argument("--commit", action="store_true", help="Add the reviewed items to the inventory")
    scan.add_argument("--json", action="store_true")
    scan.set_defaults(handler=_handle_scan)

    nutrition = subparsers.add_parser("nutrition", help="Detect foods in photos and total their nutrition.")
    _add_common_args(nutrition)
    _add_photo_args(nutrition)
    nutrition.add_argument("--json", action="store_true")
    nutrition.set_defaults(handler=_handle_nutrition)

    inv = subparsers.add_parser("inventory", help="List or edit the remote inventory.")
    inv_sub = inv.add_subparsers(dest="inventory_command", required=True)
    inv_list = inv_sub.add_parser("list")
    _add_common_args(inv_list)
    inv_add = inv_sub.add_parser("add")
    _add_common_args(inv_add)
    inv_update = inv_sub.add_parser("update")
    _add_common_args(inv_update)
    inv_update.add_argument("--id", required=True)
    for p in (inv_add, inv_update):
        p.add_argument("--name", required=True)
        p.add_argument("--quantity", required=True)
        p.add_argument("--unit", default="")
    inv_delete = inv_sub.add_parser("delete")
    _add_common_args(inv_delete)
    inv_delete.add_argument("--id", required=True)
    for p in (inv_list, inv_add, inv_update, inv_delete):
        p.set_defaults(handler=_handle_inventory)

    recipe = subparsers.add_parser("recipe", help="Generate a recipe or cook a generated one.")
    recipe_sub = recipe.add_subparsers(dest="recipe_command", required=True)
    for name in ("generate", "cook"):
        p = recipe_sub.add_parser(name)
        _add_common_args(p)
        p.add_argument("--meal", choices=MEAL_TYPES, required=True)
        p.set_defaults(handler=_handle_recipe)

    login_cmd = subparsers.add_parser("login", help="Log in and print the access token.")
    _add_common_args(login_cmd)
    login_cmd.add_argument("--email", required=True)
    login_cmd.add_argument("--password", required=True)
    login_cmd.set_defaults(handler=_handle_login)

    whoami = subparsers.add_parser("whoami", help="Show the profile of the configured user.")
    _add_common_args(whoami)
    whoami.set_defaults(handler=_handle_whoami)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(provided)
    log_environment_banner()
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
