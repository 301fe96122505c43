"""
Cross-process error-summary aggregation

Each worker process appends its outcomes as JSON lines to its own partial
report file. A final pass merges every partial file into one summary. Merging
is commutative: the summary does not depend on file or line order.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as ModelValidationError

from graph_harness.models.outcome import (
    UNTAGGED,
    ErrorEntry,
    GroupSummary,
    ReportSummary,
    TestOutcome,
)

logger = logging.getLogger(__name__)

PARTIAL_PREFIX = "outcomes"
SUMMARY_FILE = "summary.json"


def partial_report_path(report_dir: Union[str, Path], run_id: str, worker_id: str) -> Path:
    return Path(report_dir) / f"{PARTIAL_PREFIX}-{run_id}-{worker_id}.jsonl"


class OutcomeRecorder:
    """Append-only writer for one worker's partial report"""

    def __init__(self, report_dir: Union[str, Path], run_id: str, worker_id: str = "main"):
        self.worker_id = worker_id
        self.path = partial_report_path(report_dir, run_id, worker_id)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0

    def record(self, outcome: TestOutcome) -> None:
        """Append one outcome; each line is flushed as it is written"""
        line = outcome.model_dump_json(by_alias=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())
        self.count += 1


def load_partial_report(path: Union[str, Path]) -> List[TestOutcome]:
    """Read one partial file, skipping lines that are not valid outcomes"""
    outcomes = []
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                outcomes.append(TestOutcome.model_validate_json(line))
            except ModelValidationError as e:
                # A worker killed mid-write leaves a truncated last line
                logger.warning(f"Skipping malformed outcome at {path}:{line_number}: {e.error_count()} errors")
    return outcomes


def find_partial_reports(report_dir: Union[str, Path], run_id: Optional[str] = None) -> List[Path]:
    pattern = f"{PARTIAL_PREFIX}-{run_id}-*.jsonl" if run_id else f"{PARTIAL_PREFIX}-*.jsonl"
    return sorted(Path(report_dir).glob(pattern))


def merge_outcomes(groups: Iterable[Iterable[TestOutcome]]) -> List[TestOutcome]:
    """Union of outcomes from several workers with exact duplicates removed"""
    unique: Dict[tuple, TestOutcome] = {}
    for outcomes in groups:
        for outcome in outcomes:
            unique.setdefault(outcome.dedup_key(), outcome)
    return sorted(unique.values(), key=lambda o: (o.test_id, o.status, o.error_detail or ""))


def _group(groups: Dict[str, GroupSummary], key: str, outcome: TestOutcome) -> None:
    summary = groups.setdefault(key, GroupSummary())
    summary.counts.add(outcome.status)
    if outcome.status != "pass" and outcome.test_id not in summary.failures:
        summary.failures.append(outcome.test_id)


def summarize(outcomes: Iterable[TestOutcome]) -> ReportSummary:
    """
    Build the consolidated summary.

    Outcomes count under every tag they carry (multi-suite membership) and
    under their suite. Identical error messages collapse into one entry that
    lists every affected test.
    """
    summary = ReportSummary()
    errors: Dict[tuple, ErrorEntry] = {}
    workers = set()

    for outcome in sorted(outcomes, key=lambda o: (o.test_id, o.status, o.error_detail or "")):
        workers.add(outcome.worker_id)
        summary.total.add(outcome.status)

        for tag in outcome.tags or [outcome.tag or UNTAGGED]:
            _group(summary.by_tag, tag, outcome)
        _group(summary.by_suite, outcome.suite, outcome)

        if outcome.status == "pass" or not outcome.error_detail:
            continue
        message = outcome.error_detail.strip()
        entry = errors.get((message, outcome.status))
        if entry is None:
            entry = ErrorEntry(errorDetail=message, status=outcome.status)
            errors[(message, outcome.status)] = entry
        entry.occurrences += 1
        if outcome.test_id not in entry.tests:
            entry.tests.append(outcome.test_id)
        for tag in outcome.tags or [outcome.tag or UNTAGGED]:
            if tag not in entry.tags:
                entry.tags.append(tag)
        if outcome.suite not in entry.suites:
            entry.suites.append(outcome.suite)

    for entry in errors.values():
        entry.tags.sort()
        entry.suites.sort()
    summary.errors = sorted(errors.values(), key=lambda e: (-e.occurrences, e.error_detail))
    summary.by_tag = dict(sorted(summary.by_tag.items()))
    summary.by_suite = dict(sorted(summary.by_suite.items()))
    summary.workers = sorted(workers)
    return summary


def merge_report_dir(report_dir: Union[str, Path], run_id: Optional[str] = None) -> ReportSummary:
    """Merge every partial report in `report_dir` (optionally one run only)"""
    paths = find_partial_reports(report_dir, run_id)
    logger.debug(f"Merging {len(paths)} partial reports from {report_dir}")
    return summarize(merge_outcomes(load_partial_report(p) for p in paths))


def write_summary(summary: ReportSummary, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.model_dump(by_alias=True), indent=2), encoding="utf-8")
    return path


def format_summary(summary: ReportSummary) -> List[str]:
    """Human-readable summary lines for terminal output"""
    lines = []
    for tag, group in summary.by_tag.items():
        c = group.counts
        status = "✅" if c.failed == 0 and c.error == 0 else "❌"
        lines.append(f"{status} @{tag}: {c.passed} passed, {c.failed} failed, {c.error} errors")
    if summary.errors:
        lines.append(f"🔍 {len(summary.errors)} distinct errors:")
        for entry in summary.errors:
            first_line = entry.error_detail.splitlines()[0] if entry.error_detail else ""
            lines.append(f"   [{entry.status}] x{entry.occurrences} {first_line[:160]}")
    total = summary.total
    lines.append(f"📈 OVERALL: {total.passed}/{total.total} passed across {len(summary.workers)} worker(s)")
    return lines
