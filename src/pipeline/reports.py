from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from logger import get_logger
from pipeline.artifacts import resolve_glob
from pipeline.errors import ArchiveError, ReportParseError
from pipeline.model import CoverageSummary, ReportSummary

log = get_logger("pipewright.reports")

_OUTCOME_TAGS = ("failure", "error", "skipped")


def _load_root(path: Path) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ReportParseError(f"{path.name}: malformed XML ({e})", path=str(path)) from e
    except OSError as e:
        raise ReportParseError(f"{path}: unreadable ({e})", path=str(path)) from e


# ------------------------------------------------------------
# JUnit
# ------------------------------------------------------------


def parse_report(path: str | Path) -> ReportSummary:
    """
    Count test cases in a JUnit XML file.

    Counts come from <testcase> elements, not the suite attributes, so
    nested and aggregated suites are handled the same way.
    """
    path = Path(path)
    root = _load_root(path)

    if root.tag not in ("testsuite", "testsuites"):
        raise ReportParseError(
            f"{path.name}: expected <testsuite> or <testsuites>, got <{root.tag}>",
            path=str(path),
        )

    passed = failed = errored = skipped = 0
    for case in root.iter("testcase"):
        outcome = next(
            (child.tag for child in case if child.tag in _OUTCOME_TAGS), None
        )
        if outcome == "failure":
            failed += 1
        elif outcome == "error":
            errored += 1
        elif outcome == "skipped":
            skipped += 1
        else:
            passed += 1

    return ReportSummary(passed=passed, failed=failed, errored=errored, skipped=skipped)


def collect_reports(pattern: str, workspace: str | Path) -> Optional[ReportSummary]:
    """
    Sum every JUnit file matching `pattern`.

    Returns None when nothing matched or nothing could be parsed.
    """
    ws = Path(workspace).resolve()
    try:
        files = resolve_glob(pattern, ws)
    except ArchiveError as e:
        log.warning(f"Test report pattern rejected: {e}")
        return None

    if not files:
        log.warning(f"No test reports matched: {pattern}")
        return None

    total: Optional[ReportSummary] = None
    for rel in files:
        try:
            summary = parse_report(ws / rel)
        except ReportParseError as e:
            log.warning(f"Skipping test report: {e}")
            continue
        total = summary if total is None else total + summary

    if total is None:
        log.warning("No test summary available")
    return total


# ------------------------------------------------------------
# Cobertura
# ------------------------------------------------------------


def _opt_float(value: str | None) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _opt_int(value: str | None) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_coverage(path: str | Path) -> CoverageSummary:
    path = Path(path)
    root = _load_root(path)

    if root.tag != "coverage":
        raise ReportParseError(
            f"{path.name}: expected <coverage>, got <{root.tag}>", path=str(path)
        )

    line_rate = _opt_float(root.get("line-rate"))
    if line_rate is None:
        raise ReportParseError(f"{path.name}: missing line-rate", path=str(path))

    return CoverageSummary(
        line_rate=line_rate,
        branch_rate=_opt_float(root.get("branch-rate")),
        lines_covered=_opt_int(root.get("lines-covered")),
        lines_valid=_opt_int(root.get("lines-valid")),
    )
