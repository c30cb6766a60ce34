"""External (Wipefest) score import from pasted or exported CSV text."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _is_header(line: str) -> bool:
    lowered = line.lower()
    return "player" in lowered and "parse" in lowered


def parse_score_csv(text: str) -> dict[str, int]:
    """Parse ``playerName,score`` rows into a name -> score map.

    The first line is dropped when it looks like a header (mentions both
    "player" and "parse"). Rows with an empty name or a non-integer score are
    skipped without complaint. A repeated name keeps its last score.
    """
    lines = text.splitlines()
    if lines and _is_header(lines[0]):
        lines = lines[1:]

    scores: dict[str, int] = {}
    skipped = 0
    for line in lines:
        if not line.strip():
            continue
        name, _, raw_score = line.partition(",")
        name = name.strip()
        raw_score = raw_score.strip()
        try:
            score = int(raw_score)
        except ValueError:
            skipped += 1
            continue
        if not name:
            skipped += 1
            continue
        scores[name] = score

    if skipped:
        logger.debug("Skipped %d malformed score rows", skipped)
    return scores


def load_score_file(path: str | Path) -> dict[str, int]:
    return parse_score_csv(Path(path).read_text(encoding="utf-8"))
