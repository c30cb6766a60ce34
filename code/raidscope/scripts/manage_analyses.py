"""CLI to list, inspect and summarise saved raid analyses."""

import argparse
import asyncio
import logging
from pathlib import Path

from raidscope.config import get_settings
from raidscope.db.engine import create_db_engine, create_session_factory, init_db
from raidscope.db.repository import AnalysisStore, StorageError
from raidscope.pipeline.bosses import compute_boss_stats
from raidscope.pipeline.formatting import (
    format_analysis_list,
    format_averages,
    format_boss_stats,
    format_insights,
    format_roster,
    format_storage_stats,
    format_timeline,
)
from raidscope.pipeline.insights import extract_insights
from raidscope.pipeline.progression import compare_saved_analyses, filter_progressions
from raidscope.pipeline.roster import build_roster

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage saved raid analyses")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List saved analyses, newest first")
    search = sub.add_parser("search", help="Search by name or zone")
    search.add_argument("query")
    zone = sub.add_parser("zone", help="List analyses for one zone")
    zone.add_argument("zone")
    show = sub.add_parser("show", help="Print one analysis")
    show.add_argument("id")
    rename = sub.add_parser("rename", help="Rename an analysis")
    rename.add_argument("id")
    rename.add_argument("name")
    remove = sub.add_parser("delete", help="Delete an analysis")
    remove.add_argument("id")
    export = sub.add_parser("export", help="Export every analysis as JSON")
    export.add_argument("path")
    load = sub.add_parser("import", help="Import analyses from an export file")
    load.add_argument("path")
    sub.add_parser("stats", help="Storage statistics")
    sub.add_parser("roster", help="Roster across all analyses")
    sub.add_parser("bosses", help="Kill/wipe statistics per boss")
    compare = sub.add_parser("compare", help="Progression across saved analyses")
    compare.add_argument("ids", nargs="*", help="Analysis ids (default: all)")
    compare.add_argument(
        "--trend", choices=["improving", "declining", "stable", "inconsistent", "new"],
        help="Only show players with this trend",
    )
    compare.add_argument(
        "--min-change", type=int, default=0,
        help="Only show players whose total average moved at least this much",
    )
    return parser.parse_args(argv)


async def dispatch(store: AnalysisStore, args: argparse.Namespace) -> int:
    command = args.command

    if command == "list":
        print(format_analysis_list(await store.list()))
    elif command == "search":
        print(format_analysis_list(await store.search(args.query)))
    elif command == "zone":
        print(format_analysis_list(await store.get_by_zone(args.zone)))
    elif command == "show":
        analysis = await store.load(args.id)
        if analysis is None:
            logger.error("No analysis with id %s", args.id)
            return 1
        print(f"{analysis.name} ({analysis.metadata.zone})")
        print(format_averages(analysis.players))
        if analysis.timeline_analysis:
            print()
            print(format_timeline(analysis.timeline_analysis))
    elif command == "rename":
        await store.update(args.id, name=args.name)
        logger.info("Renamed %s to %s", args.id, args.name)
    elif command == "delete":
        await store.delete(args.id)
        logger.info("Deleted %s", args.id)
    elif command == "export":
        Path(args.path).write_text(await store.export_json(), encoding="utf-8")
        logger.info("Exported analyses to %s", args.path)
    elif command == "import":
        count = await store.import_json(Path(args.path).read_text(encoding="utf-8"))
        logger.info("Imported %d analyses", count)
    elif command == "stats":
        print(format_storage_stats(await store.stats()))
    elif command == "roster":
        print(format_roster(build_roster(await store.load_all())))
    elif command == "bosses":
        print(format_boss_stats(compute_boss_stats(await store.load_all())))
    elif command == "compare":
        analyses = await store.load_all()
        if args.ids:
            wanted = set(args.ids)
            analyses = [a for a in analyses if a.id in wanted]
        timeline = compare_saved_analyses(analyses)
        if timeline is None:
            print("Select at least two analyses to compare.")
        else:
            print(format_timeline(timeline, filter_progressions(
                timeline.player_progressions, args.trend, args.min_change,
            )))
            print()
            print(format_insights(extract_insights(timeline)))
    return 0


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    engine = create_db_engine(settings)
    try:
        await init_db(engine)
        store = AnalysisStore(create_session_factory(engine))
        return await dispatch(store, args)
    except StorageError as exc:
        logger.error("%s (%s)", exc, exc.code)
        return 1
    finally:
        await engine.dispose()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=get_settings().log_level)
    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
