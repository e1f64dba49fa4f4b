"""
Kilnbook - Command Line Entry Point
===================================

Maintenance operations over the cache stack and studio data:

    python -m src.main init-db
    python -m src.main cache-report [--warm USER_ID]
    python -m src.main clear-cache [--user USER_ID]
    python -m src.main export-metrics --user USER_ID [--rounds N]
    python -m src.main export-data --user USER_ID [--format json|csv] [--output PATH]
    python -m src.main import-data --user USER_ID PATH

Lifecycle
---------
1. Validate configuration
2. Initialize infrastructure (database, Redis for the redis backend)
3. Run the command
4. Shut down gracefully
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from src.core.config.config import Config
from src.core.exceptions import KilnbookInfrastructureException, get_error_severity
from src.core.infra.application_context import StudioContext
from src.core.logging.logger import LogContext, get_logger, shutdown_logging
from src.modules.shared.exceptions import KilnbookDomainException
from src.modules.studio.export import export_to_csv, export_to_json

logger = get_logger(__name__)


# ============================================================================
# Commands
# ============================================================================


async def _cache_report(context: StudioContext, args: argparse.Namespace) -> int:
    # Hit rates only mean something once this process has read through the cache
    if args.warm:
        await context.warm_caches(args.warm)
    report = await context.cache_report(include_performance=bool(args.warm))
    print(json.dumps(report, indent=2))
    return 0


async def _clear_cache(context: StudioContext, args: argparse.Namespace) -> int:
    if args.user:
        await context.clear_user_caches(args.user)
        print(f"Cleared cached data for {args.user}")
    else:
        status = await context.clear_all_caches()
        print(f"Cleared all caches ({status.value})")
    return 0


async def _export_metrics(context: StudioContext, args: argparse.Namespace) -> int:
    await context.warm_caches(args.user, rounds=args.rounds)
    print(context.export_metrics())
    return 0


async def _export_data(context: StudioContext, args: argparse.Namespace) -> int:
    document = await context.data_access.export_data(args.user)

    if args.format == "json":
        outputs = {".json": export_to_json(document)}
    else:
        documents = export_to_csv(document)
        outputs = {
            "-glaze-recipes.csv": documents["glaze_recipes"],
            "-firing-logs.csv": documents["firing_logs"],
        }

    if args.output is None:
        for content in outputs.values():
            print(content)
        return 0

    base = Path(args.output)
    stem = base.with_suffix("")
    for suffix, content in outputs.items():
        target = base if args.format == "json" else Path(f"{stem}{suffix}")
        target.write_text(content, encoding="utf-8")
        print(f"Wrote {target}")
    return 0


async def _import_data(context: StudioContext, args: argparse.Namespace) -> int:
    payload = Path(args.path).read_text(encoding="utf-8")
    counts = await context.data_access.import_data(args.user, payload)
    print(json.dumps(counts, indent=2))
    return 0


async def _init_db(context: StudioContext, args: argparse.Namespace) -> int:
    print("Database schema created")
    return 0


COMMANDS = {
    "init-db": _init_db,
    "cache-report": _cache_report,
    "clear-cache": _clear_cache,
    "export-metrics": _export_metrics,
    "export-data": _export_data,
    "import-data": _import_data,
}


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kilnbook",
        description="Kilnbook cache and studio data maintenance",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the studio tables")
    report = sub.add_parser("cache-report", help="Show cache size and metadata")
    report.add_argument(
        "--warm",
        metavar="USER_ID",
        help="Read every collection for this user first and include hit rates",
    )

    clear = sub.add_parser("clear-cache", help="Invalidate cached collections")
    clear.add_argument("--user", help="Only this user's cached data")

    metrics = sub.add_parser(
        "export-metrics", help="Read every collection for a user and print the metrics as JSON"
    )
    metrics.add_argument("--user", required=True)
    metrics.add_argument(
        "--rounds", type=_positive_int, default=2, help="Passes over the readers (default 2)"
    )

    export = sub.add_parser("export-data", help="Export a user's studio records")
    export.add_argument("--user", required=True)
    export.add_argument("--format", choices=("json", "csv"), default="json")
    export.add_argument("--output", help="File path; CSV writes two files beside it")

    importer = sub.add_parser("import-data", help="Import an export document")
    importer.add_argument("--user", required=True)
    importer.add_argument("path")

    return parser


# ============================================================================
# Application Entrypoint
# ============================================================================


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    Config.validate()
    context = StudioContext()

    try:
        await context.initialize(create_schema=args.command == "init-db")
        with LogContext(operation=args.command, user_id=getattr(args, "user", None)):
            return await COMMANDS[args.command](context, args)

    except KilnbookDomainException as exc:
        logger.warning(
            "Command rejected",
            extra={"command": args.command, "error": exc.to_dict()},
        )
        print(str(exc), file=sys.stderr)
        return 2

    finally:
        await context.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    try:
        return asyncio.run(run(argv))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except KilnbookInfrastructureException as exc:
        logger.critical(
            f"Infrastructure failure: {exc}",
            extra={"severity": get_error_severity(exc).value, "error": exc.to_dict()},
        )
        return 1
    except Exception as exc:
        logger.critical(f"Fatal error: {exc}", exc_info=True)
        return 1
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
