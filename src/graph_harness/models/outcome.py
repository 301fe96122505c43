"""
Test outcome and report summary models

Field names in the serialized form (testId, tag, suite, status, errorDetail,
byTag, bySuite) are the contract with external report renderers.
"""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Status = Literal["pass", "fail", "error"]
STATUSES = ("pass", "fail", "error")
UNTAGGED = "untagged"


class TestOutcome(BaseModel):
    """One executed (or rejected) test"""
    __test__ = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    test_id: str = Field(alias="testId")
    tag: str = UNTAGGED
    tags: List[str] = Field(default_factory=list)
    suite: str
    status: Status
    error_detail: Optional[str] = Field(default=None, alias="errorDetail")
    worker_id: str = Field(default="main", alias="workerId")

    def dedup_key(self) -> tuple:
        return (self.test_id, self.status, self.error_detail)


class StatusCounts(BaseModel):
    """pass/fail/error counters"""
    model_config = ConfigDict(populate_by_name=True)

    passed: int = Field(default=0, alias="pass")
    failed: int = Field(default=0, alias="fail")
    error: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.error

    def add(self, status: str) -> None:
        if status == "pass":
            self.passed += 1
        elif status == "fail":
            self.failed += 1
        else:
            self.error += 1


class GroupSummary(BaseModel):
    """Counts and failing tests for one tag or suite"""
    model_config = ConfigDict(populate_by_name=True)

    counts: StatusCounts = Field(default_factory=StatusCounts)
    failures: List[str] = Field(default_factory=list)


class ErrorEntry(BaseModel):
    """One distinct error message and every test that produced it"""
    model_config = ConfigDict(populate_by_name=True)

    error_detail: str = Field(alias="errorDetail")
    status: Status
    occurrences: int = 0
    tests: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    suites: List[str] = Field(default_factory=list)


class ReportSummary(BaseModel):
    """Consolidated summary across all workers and shards"""
    model_config = ConfigDict(populate_by_name=True)

    total: StatusCounts = Field(default_factory=StatusCounts)
    by_tag: Dict[str, GroupSummary] = Field(default_factory=dict, alias="byTag")
    by_suite: Dict[str, GroupSummary] = Field(default_factory=dict, alias="bySuite")
    errors: List[ErrorEntry] = Field(default_factory=list)
    workers: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.total.failed == 0 and self.total.error == 0
