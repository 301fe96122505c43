from graph_harness.models.outcome import ErrorEntry, GroupSummary, ReportSummary, StatusCounts, TestOutcome
from graph_harness.models.selector import FilterExpression, Selector, merge_selectors, where

__all__ = [
    "ErrorEntry",
    "GroupSummary",
    "ReportSummary",
    "StatusCounts",
    "TestOutcome",
    "FilterExpression",
    "Selector",
    "merge_selectors",
    "where",
]
