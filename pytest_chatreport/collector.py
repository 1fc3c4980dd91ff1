import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Sequence, Tuple

from pytest_chatreport.types import TestStatus

if TYPE_CHECKING:
    from _pytest.reports import TestReport  # pragma: no cover

MAX_ERROR_LENGTH = 150
UNKNOWN_ERROR = "Unknown error"

_PATH_SEPARATORS = re.compile(r"[\\/]")


@dataclass
class TestCase:
    __test__ = False

    title: str
    file: str


@dataclass
class TestResult:
    __test__ = False

    status: TestStatus
    duration: float = 0.0  # milliseconds
    retry: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class RunStats:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    flaky: int = 0
    duration: float = 0.0


@dataclass(frozen=True)
class FailureRecord:
    title: str
    file: str
    error: str


def file_name(path: str) -> str:
    return _PATH_SEPARATORS.split(path)[-1] or path


def truncate_error(message: str, max_length: int = MAX_ERROR_LENGTH) -> str:
    if len(message) > max_length:
        return message[:max_length] + "..."
    return message


def extract_error_message(result: TestResult) -> str:
    if not result.errors:
        return UNKNOWN_ERROR
    return truncate_error(result.errors[0] or "")


class ResultCollector:
    """Accumulates per-test outcomes in the order they are recorded.

    Calls must be serialized by the caller; pytest (and the xdist controller)
    already delivers reports one at a time.
    """

    def __init__(self) -> None:
        self.stats = RunStats()
        self.failures: List[FailureRecord] = []
        self.timed_out = 0

    def record_result(self, test: TestCase, result: TestResult) -> None:
        stats = self.stats
        stats.total += 1
        stats.duration += result.duration

        if result.status == "passed":
            stats.passed += 1
            # passed on a retry
            if result.retry > 0:
                stats.flaky += 1
        elif result.status in ("failed", "timedOut"):
            stats.failed += 1
            if result.status == "timedOut":
                self.timed_out += 1
            self.failures.append(
                FailureRecord(
                    title=test.title,
                    file=file_name(test.file),
                    error=extract_error_message(result),
                )
            )
        elif result.status == "skipped":
            stats.skipped += 1


def _report_error_message(report: "TestReport") -> str:
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None and crash.message:
        return crash.message
    return report.longreprtext


def _is_timeout(message: str) -> bool:
    # pytest-timeout fails the test with "Failed: Timeout >Ns"
    return message.startswith("Failed: Timeout")


def from_pytest_reports(
    nodeid: str, reports: Sequence["TestReport"]
) -> Tuple[TestCase, TestResult]:
    """Merge the setup/call/teardown reports of one test into a single result."""
    parts = nodeid.split("::")
    test = TestCase(title=parts[-1], file=parts[0])

    errors = [_report_error_message(r) for r in reports if r.failed]
    if errors:
        status = "timedOut" if any(_is_timeout(e) for e in errors) else "failed"
    elif any(r.skipped for r in reports):
        status = "skipped"
    else:
        status = "passed"

    result = TestResult(
        status=status,
        duration=sum(r.duration for r in reports) * 1000,
        retry=max((getattr(r, "rerun", 0) for r in reports), default=0),
        errors=errors,
    )
    return test, result
