"""
pytest integration for the graph API harness

- classifies every collected test by lifecycle tag
- records one outcome per test into a per-worker partial report
- merges partial reports at the end of the run (controller or single process)
- provides client, node and ledger fixtures

Activate explicitly with `-p graph_harness.pytest_plugin` or
`pytest_plugins = ["graph_harness.pytest_plugin"]` in a top-level conftest.
Tests without exactly one lifecycle tag are rejected unless
`--allow-untagged` is given or `harness_require_tags = false` is set.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Dict, Optional

import pytest
import pytest_asyncio

from graph_harness.config.settings import get_config
from graph_harness.core.entity_node import EntityNode
from graph_harness.core.graph_client import GraphClient
from graph_harness.core.ledger import EntityLedger
from graph_harness.models.outcome import UNTAGGED, ReportSummary, TestOutcome
from graph_harness.reporting.aggregator import (
    SUMMARY_FILE,
    OutcomeRecorder,
    format_summary,
    merge_report_dir,
    write_summary,
)
from graph_harness.reporting.tags import Tag, TestTag, classify, declared_name_of
from graph_harness.utils.error_handling import ClassificationError

logger = logging.getLogger(__name__)

TAG_KEY = pytest.StashKey[TestTag]()
MARKER_PREFIX = "tag_"
WORKER_OUTPUT_KEY = "harness_classification_errors"


def pytest_addoption(parser):
    """Add harness command line options"""
    group = parser.getgroup("graph-harness")
    group.addoption(
        "--allow-untagged",
        action="store_true",
        default=False,
        help="Run tests that fail lifecycle tag classification instead of rejecting them"
    )
    group.addoption(
        "--strict-tags",
        action="store_true",
        default=False,
        help="Abort collection on the first tag classification error"
    )
    group.addoption(
        "--harness-report-dir",
        default=None,
        help="Directory for per-worker outcome files and the merged summary"
    )
    parser.addini("harness_require_tags", type="bool", default=True, help="Reject tests without exactly one lifecycle tag (default true)")
    parser.addini("harness_report_dir", default="", help="Same as --harness-report-dir")


def pytest_configure(config):
    config.addinivalue_line("markers", "tag(*tags, secondary=()): lifecycle tag (release, development, flaky)")
    for tag in Tag:
        config.addinivalue_line("markers", f"{MARKER_PREFIX}{tag.value}: test carries the @{tag.value} tag")
    config.pluginmanager.register(HarnessSession(config), "graph-harness-session")


def _is_worker(config) -> bool:
    return hasattr(config, "workerinput")


def _is_controller(config) -> bool:
    return not _is_worker(config) and bool(getattr(config.option, "numprocesses", None))


def _error_detail(report) -> str:
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        return crash.message
    text = str(report.longrepr or "").strip()
    return text.splitlines()[-1] if text else report.outcome


class HarnessSession:
    """Per-process plugin state"""

    def __init__(self, config):
        self.config = config
        self.require_tags = config.getini("harness_require_tags") and not config.getoption("allow_untagged")
        self.strict_tags = config.getoption("strict_tags")
        self.report_dir = (
            config.getoption("harness_report_dir")
            or config.getini("harness_report_dir")
            or os.getenv("HARNESS_REPORT_DIR")
            or None
        )
        if _is_worker(config):
            self.worker_id = config.workerinput.get("workerid", "gw")
            self.run_id = config.workerinput.get("harness_run_id") or os.getenv("HARNESS_RUN_ID") or uuid.uuid4().hex[:12]
        else:
            self.worker_id = os.getenv("PYTEST_XDIST_WORKER", "main")
            self.run_id = os.getenv("HARNESS_RUN_ID") or uuid.uuid4().hex[:12]

        self.recorder: Optional[OutcomeRecorder] = None
        if self.report_dir and not _is_controller(config):
            self.recorder = OutcomeRecorder(self.report_dir, self.run_id, self.worker_id)
            logger.debug(f"Recording outcomes to {self.recorder.path}")

        self.tags: Dict[str, TestTag] = {}
        self.classification_errors: Dict[str, str] = {}
        self.summary: Optional[ReportSummary] = None
        self._phases: Dict[str, dict] = {}

    # === XDIST ===

    @pytest.hookimpl(optionalhook=True)
    def pytest_configure_node(self, node):
        """Share the run id so every worker writes into the same run"""
        node.workerinput["harness_run_id"] = self.run_id

    @pytest.hookimpl(optionalhook=True)
    def pytest_testnodedown(self, node, error):
        output = getattr(node, "workeroutput", None) or {}
        self.classification_errors.update(output.get(WORKER_OUTPUT_KEY, {}))

    # === COLLECTION ===

    @pytest.hookimpl(tryfirst=True)
    def pytest_collection_modifyitems(self, session, config, items):
        """Classify tests by lifecycle tag and add selection markers"""
        kept, rejected = [], []

        for item in items:
            try:
                test_tag = classify(item.iter_markers("tag"), declared_name_of(getattr(item, "function", None)))
            except ClassificationError as e:
                if self.require_tags:
                    rejected.append((item, e))
                else:
                    kept.append(item)
                continue

            self.tags[item.nodeid] = test_tag
            item.stash[TAG_KEY] = test_tag
            for tag in test_tag.all:
                item.add_marker(f"{MARKER_PREFIX}{tag.value}")
            item.user_properties.append(("tag", test_tag.display))
            kept.append(item)

        if not rejected:
            return

        if self.strict_tags:
            details = "\n".join(f"  {item.nodeid}: {e}" for item, e in rejected)
            raise pytest.UsageError(f"Lifecycle tag classification failed:\n{details}")

        items[:] = kept
        config.hook.pytest_deselected(items=[item for item, _ in rejected])
        for item, e in rejected:
            self.classification_errors[item.nodeid] = str(e)
            self._record(TestOutcome(
                testId=item.nodeid,
                suite=item.nodeid.split("::")[0],
                status="error",
                errorDetail=f"ClassificationError: {e}",
                workerId=self.worker_id,
            ))

    # === OUTCOMES ===

    def _record(self, outcome: TestOutcome) -> None:
        if self.recorder is not None:
            self.recorder.record(outcome)

    def pytest_runtest_logreport(self, report):
        if self.recorder is None:
            return
        self._phases.setdefault(report.nodeid, {})[report.when] = report

    def pytest_runtest_logfinish(self, nodeid, location):
        phases = self._phases.pop(nodeid, None)
        if not phases or self.recorder is None:
            return

        setup, call, teardown = phases.get("setup"), phases.get("call"), phases.get("teardown")
        status, detail = None, None
        if setup is not None and setup.failed:
            status, detail = "error", _error_detail(setup)
        elif call is not None and call.failed:
            # The assertion failure outranks a teardown error that follows it
            status, detail = "fail", _error_detail(call)
        elif teardown is not None and teardown.failed:
            status, detail = "error", _error_detail(teardown)
        elif call is not None and call.passed:
            status = "pass"

        # Skips and expected failures are not outcomes
        if status is None:
            return

        test_tag = self.tags.get(nodeid)
        self._record(TestOutcome(
            testId=nodeid,
            tag=test_tag.primary.value if test_tag else UNTAGGED,
            tags=[t.value for t in test_tag.all] if test_tag else [],
            suite=nodeid.split("::")[0],
            status=status,
            errorDetail=detail,
            workerId=self.worker_id,
        ))

    # === SESSION ===

    def pytest_sessionfinish(self, session, exitstatus):
        if _is_worker(self.config):
            self.config.workeroutput[WORKER_OUTPUT_KEY] = dict(self.classification_errors)
            return

        if self.classification_errors and session.exitstatus == pytest.ExitCode.OK:
            session.exitstatus = pytest.ExitCode.TESTS_FAILED

        if self.report_dir:
            self.summary = merge_report_dir(self.report_dir, self.run_id)
            write_summary(self.summary, Path(self.report_dir) / SUMMARY_FILE)

    def pytest_terminal_summary(self, terminalreporter):
        if self.classification_errors:
            terminalreporter.section("lifecycle tag errors")
            for nodeid, message in sorted(self.classification_errors.items()):
                terminalreporter.write_line(f"❌ {nodeid}: {message}")

        if self.summary is not None:
            terminalreporter.section("graph harness summary")
            for line in format_summary(self.summary):
                terminalreporter.write_line(line)


# === FIXTURES ===

@pytest.fixture(scope="session")
def harness_config():
    """Validated harness configuration"""
    return get_config()


@pytest.fixture(scope="session")
def graph_client(harness_config) -> GraphClient:
    """Shared graph API client"""
    return GraphClient(harness_config)


@pytest.fixture
def make_node(graph_client):
    """Factory binding descriptors to the shared client"""
    def factory(descriptor) -> EntityNode:
        return EntityNode(descriptor, graph_client)
    return factory


@pytest_asyncio.fixture
async def entity_ledger():
    """Per-test ledger; everything tracked is released after the test"""
    async with EntityLedger() as ledger:
        yield ledger
