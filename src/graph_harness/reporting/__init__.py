from graph_harness.reporting.aggregator import OutcomeRecorder, merge_report_dir, summarize
from graph_harness.reporting.tags import Tag, TestTag, classify

__all__ = ["OutcomeRecorder", "merge_report_dir", "summarize", "Tag", "TestTag", "classify"]
