"""Fetch reports from WCL and normalize them, one report at a time."""

import logging
from collections.abc import Iterable

from raidscope.models import AttendanceData, NormalizedReport
from raidscope.pipeline.normalize import build_attendance, normalize_report
from raidscope.wcl.client import WCLAPIError
from raidscope.wcl.queries import ATTENDANCE_QUERY, REPORT_QUERY

logger = logging.getLogger(__name__)


async def fetch_attendance(wcl, report_code: str) -> AttendanceData | None:
    """Roster-based attendance, or None so callers fall back to parse-based counts."""
    try:
        data = await wcl.query(ATTENDANCE_QUERY, variables={"code": report_code})
        report = data["reportData"]["report"]
        if not report:
            raise WCLAPIError("No report data found")
        return build_attendance(report)
    except Exception:
        logger.exception("Error fetching attendance data for %s", report_code)
        return None


async def fetch_report(wcl, report_code: str, target_zone: str) -> NormalizedReport:
    """Fetch and normalize one report.

    Any failure yields an error sentinel report (no players, no fights, error
    message set) instead of raising, so one bad code never sinks a batch.
    """
    try:
        data = await wcl.query(REPORT_QUERY, variables={"code": report_code})
        payload = data["reportData"]["report"]
        if not payload:
            raise WCLAPIError("No report data found")
        attendance = await fetch_attendance(wcl, report_code)
        report = normalize_report(report_code, payload, target_zone, attendance)
    except Exception as exc:
        logger.exception("Error fetching report %s", report_code)
        return NormalizedReport.failed(report_code, str(exc))

    logger.info(
        "Fetched report %s (%s): %d bosses",
        report_code, report.report_title, len(report.fight_parses),
    )
    return report


async def fetch_reports(
    wcl, report_codes: Iterable[str], target_zone: str,
) -> dict[str, NormalizedReport]:
    """Fetch reports sequentially, keyed by code in request order.

    Requests are deliberately not concurrent to stay clear of rate limits.
    Blank codes are skipped.
    """
    reports: dict[str, NormalizedReport] = {}
    for code in report_codes:
        code = code.strip()
        if not code:
            continue
        reports[code] = await fetch_report(wcl, code, target_zone)
    return reports
