"""Fetch WCL reports and print player averages, comparisons and progression."""

import argparse
import asyncio
import logging

from raidscope.config import Settings, get_settings
from raidscope.db.engine import create_db_engine, create_session_factory, init_db
from raidscope.db.repository import AnalysisStore
from raidscope.models import AnalysisSettings, NormalizedReport
from raidscope.pipeline.averages import compute_merged_averages
from raidscope.pipeline.comparison import compare_reports, filter_comparisons
from raidscope.pipeline.formatting import (
    format_averages,
    format_comparison,
    format_insights,
    format_timeline,
)
from raidscope.pipeline.ingest import fetch_reports
from raidscope.pipeline.insights import extract_insights
from raidscope.pipeline.progression import analyze_timeline, filter_progressions
from raidscope.pipeline.scores import load_score_file
from raidscope.pipeline.snapshots import build_saved_analysis, generate_analysis_name
from raidscope.wcl.client import WCLClient

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze WCL raid reports")
    parser.add_argument(
        "--report-code", action="append", required=True, dest="report_codes",
        help="WCL report code (repeat for several reports)",
    )
    parser.add_argument("--zone", help="Zone to analyze (default: from settings)")
    parser.add_argument("--scores", help="CSV file of playerName,wipefestScore rows")
    parser.add_argument(
        "--compare", nargs=2, metavar=("BASELINE", "CURRENT"),
        help="Compare two of the loaded report codes",
    )
    parser.add_argument(
        "--timeline", action="store_true",
        help="Show progression across the loaded reports",
    )
    parser.add_argument(
        "--status", choices=["improved", "decreased", "stable", "new", "missing"],
        help="Only show comparison rows with this status",
    )
    parser.add_argument(
        "--trend", choices=["improving", "declining", "stable", "inconsistent"],
        help="Only show timeline players with this trend",
    )
    parser.add_argument(
        "--min-change", type=int, default=0,
        help="Only show players whose total average moved at least this much",
    )
    parser.add_argument(
        "--save", nargs="?", const="", metavar="NAME",
        help="Save the analysis (name generated when omitted)",
    )
    return parser.parse_args(argv)


async def save_analysis(
    settings: Settings,
    reports: dict[str, NormalizedReport],
    name: str,
    zone: str,
    scores: dict[str, int],
) -> str:
    report_list = list(reports.values())
    analysis = build_saved_analysis(
        name or generate_analysis_name(report_list, zone),
        report_list,
        compute_merged_averages(report_list, scores),
        zone,
        timeline=analyze_timeline(report_list, scores),
        settings=AnalysisSettings(target_zone=zone, wipefest_enabled=bool(scores)),
    )
    engine = create_db_engine(settings)
    try:
        await init_db(engine)
        store = AnalysisStore(create_session_factory(engine))
        return await store.save(analysis)
    finally:
        await engine.dispose()


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    zone = args.zone or settings.analysis.target_zone
    scores = load_score_file(args.scores) if args.scores else {}

    async with WCLClient(
        settings.wcl.token.get_secret_value(),
        api_url=settings.wcl.api_url,
        timeout=settings.wcl.timeout,
    ) as wcl:
        reports = await fetch_reports(wcl, args.report_codes, zone)

    failed = [r for r in reports.values() if r.error]
    for report in failed:
        logger.error("Report %s failed: %s", report.report_code, report.error)

    print(format_averages(compute_merged_averages(reports, scores)))

    if args.compare:
        baseline, current = args.compare
        comparison = compare_reports(reports, baseline, current, scores)
        if comparison is None:
            logger.error("Both --compare codes must be among the loaded reports")
        else:
            print()
            print(f"{comparison.baseline_title} -> {comparison.compare_title}")
            print(format_comparison(filter_comparisons(
                comparison.player_comparisons, args.status, args.min_change,
            )))

    if args.timeline:
        timeline = analyze_timeline(reports, scores)
        print()
        if timeline is None:
            print("Timeline needs at least two reports with a start time.")
        else:
            print(format_timeline(timeline, filter_progressions(
                timeline.player_progressions, args.trend, args.min_change,
            )))
            print()
            print(format_insights(extract_insights(timeline)))

    if args.save is not None:
        analysis_id = await save_analysis(settings, reports, args.save, zone, scores)
        logger.info("Saved analysis %s", analysis_id)

    return 1 if failed and len(failed) == len(reports) else 0


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=get_settings().log_level)
    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
