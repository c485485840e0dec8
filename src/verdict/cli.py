"""CLI entry point for Verdict."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import orjson
import uvicorn

from verdict.config import Settings, get_settings
from verdict.core.constants import RUN_SUMMARY_HISTORY_DEFAULT
from verdict.core.exceptions import VerdictError
from verdict.core.logging import get_logger, setup_logging
from verdict.providers.factory import create_search_client
from verdict.refresh.orchestrator import RefreshOrchestrator
from verdict.storage.catalog import PostgresCatalogStore
from verdict.storage.database import close_database, init_database

logger = get_logger(__name__)


def _print_json(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")


async def _with_orchestrator(
    settings: Settings,
    action: Callable[[RefreshOrchestrator], Awaitable[int]],
    need_search: bool = False,
) -> int:
    """Open the database (and search client if asked), run ``action``, clean up."""
    db = await init_database(
        settings.database_url,
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
    )
    client = None
    try:
        if need_search:
            if settings.search_configured:
                client = create_search_client(settings)
            else:
                logger.warning("DataForSEO credentials not set")
        orchestrator = RefreshOrchestrator(PostgresCatalogStore(db), client, settings)
        return await action(orchestrator)
    finally:
        if client:
            await client.close()
        await close_database()


async def _run(settings: Settings, limit: int | None, dry_run: bool) -> int:
    async def action(orchestrator: RefreshOrchestrator) -> int:
        report = await orchestrator.run(limit=limit, dry_run=dry_run)
        _print_json(report.as_dict())
        return 0 if report.ok else 1

    return await _with_orchestrator(settings, action, need_search=not dry_run)


async def _refresh_item(settings: Settings, item_id: UUID, force: bool) -> int:
    async def action(orchestrator: RefreshOrchestrator) -> int:
        result = await orchestrator.refresh_item(item_id, force=force)
        _print_json(result.as_dict())
        return 0 if result.outcome.success else 1

    return await _with_orchestrator(settings, action, need_search=True)


async def _assign_tiers(settings: Settings) -> int:
    async def action(orchestrator: RefreshOrchestrator) -> int:
        changed = await orchestrator.assign_tiers()
        distribution = await orchestrator.tier_distribution()
        labelled = {str(k) if k is not None else "none": v for k, v in distribution.items()}
        _print_json({"changed": changed, "distribution": labelled})
        return 0

    return await _with_orchestrator(settings, action)


async def _report(settings: Settings, days: int) -> int:
    async def action(orchestrator: RefreshOrchestrator) -> int:
        summaries = await orchestrator.run_history(days)
        _print_json([summary.model_dump(mode="json") for summary in summaries])
        return 0

    return await _with_orchestrator(settings, action)


async def _init_db(settings: Settings) -> int:
    db = await init_database(settings.database_url, min_size=1, max_size=1)
    try:
        await PostgresCatalogStore(db).apply_schema()
    finally:
        await close_database()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="verdict", description="Verdict rating refresh")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one rating refresh pass")
    run.add_argument("--limit", type=int, default=None, help="Max items to select")
    run.add_argument("--dry-run", action="store_true", help="Select and estimate only")
    run.add_argument("--test", action="store_true", help="Test mode (at most 10 items)")

    item = sub.add_parser("refresh-item", help="Refresh one item now, outside its cadence")
    item.add_argument("item_id", type=UUID, help="Catalog item id")
    item.add_argument("--force", action="store_true", help="Ignore today's attempt limit")

    sub.add_parser("init-db", help="Create the rating refresh tables and columns")
    sub.add_parser("assign-tiers", help="Recompute refresh tiers for the whole catalog")

    report = sub.add_parser("report", help="Show recent run summaries")
    report.add_argument(
        "--days", type=int, default=RUN_SUMMARY_HISTORY_DEFAULT, help="Number of runs to show"
    )

    serve = sub.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.add_argument("--host", default="0.0.0.0", help="Bind host")
    serve.add_argument("--port", type=int, default=8000, help="Bind port")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        uvicorn.run(
            "verdict.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
        )
        return

    settings = get_settings()
    if args.command == "run" and args.test:
        settings = settings.model_copy(update={"rating_update_test_mode": True})
    setup_logging(settings)

    try:
        if args.command == "run":
            code = asyncio.run(_run(settings, args.limit, args.dry_run))
        elif args.command == "refresh-item":
            code = asyncio.run(_refresh_item(settings, args.item_id, args.force))
        elif args.command == "init-db":
            code = asyncio.run(_init_db(settings))
        elif args.command == "assign-tiers":
            code = asyncio.run(_assign_tiers(settings))
        else:
            code = asyncio.run(_report(settings, args.days))
    except VerdictError as e:
        logger.error("Command failed", command=args.command, error=e.message)
        code = 1

    sys.exit(code)
