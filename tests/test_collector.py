from types import SimpleNamespace

from hypothesis import given
from hypothesis import strategies as st

from pytest_chatreport.collector import (
    FailureRecord,
    ResultCollector,
    TestCase,
    TestResult,
    file_name,
    from_pytest_reports,
    truncate_error,
)

STATUS = st.sampled_from(["passed", "failed", "timedOut", "skipped"])
RESULT = st.builds(
    TestResult,
    status=STATUS,
    duration=st.floats(min_value=0, max_value=1e6),
    retry=st.integers(min_value=0, max_value=3),
    errors=st.lists(st.text(), max_size=2),
)


@given(results=st.lists(RESULT))
def test_record_result__any_sequence__counters_consistent(results):
    # arrange
    collector = ResultCollector()

    # act
    for result in results:
        collector.record_result(TestCase(title="t", file="tests/a.py"), result)

    # assert
    stats = collector.stats
    assert stats.total == len(results)
    assert stats.total == stats.passed + stats.failed + stats.skipped
    assert len(collector.failures) == stats.failed
    assert stats.flaky <= stats.passed


def test_record_result__mixed_statuses__expected_stats():
    # arrange
    collector = ResultCollector()
    test = TestCase(title="test_login", file="/repo/tests/auth/test_login.py")

    # act
    collector.record_result(test, TestResult(status="passed", duration=100))
    collector.record_result(test, TestResult(status="passed", duration=200, retry=1))
    collector.record_result(
        test, TestResult(status="failed", duration=300, errors=["assert 1 == 2"])
    )
    collector.record_result(test, TestResult(status="timedOut", duration=400))
    collector.record_result(test, TestResult(status="skipped", duration=0))

    # assert
    stats = collector.stats
    assert (stats.total, stats.passed, stats.failed, stats.skipped, stats.flaky) == (
        5,
        2,
        2,
        1,
        1,
    )
    assert stats.duration == 1000
    assert collector.timed_out == 1
    assert collector.failures == [
        FailureRecord(title="test_login", file="test_login.py", error="assert 1 == 2"),
        FailureRecord(title="test_login", file="test_login.py", error="Unknown error"),
    ]


def test_file_name__windows_and_posix_paths__last_segment():
    assert file_name("tests/e2e/test_cart.py") == "test_cart.py"
    assert file_name("C:\\repo\\tests\\test_cart.py") == "test_cart.py"
    assert file_name("test_cart.py") == "test_cart.py"


def test_truncate_error__long_message__truncated_with_ellipsis():
    message = "x" * 151

    truncated = truncate_error(message)

    assert truncated == "x" * 150 + "..."


def test_truncate_error__short_message__untouched():
    message = "y" * 150

    assert truncate_error(message) == message


def _report(when, outcome, duration=0.1, message="", rerun=None):
    report = SimpleNamespace(
        when=when,
        outcome=outcome,
        passed=outcome == "passed",
        failed=outcome == "failed",
        skipped=outcome == "skipped",
        duration=duration,
        longrepr=SimpleNamespace(reprcrash=SimpleNamespace(message=message)),
        longreprtext=message,
    )
    if rerun is not None:
        report.rerun = rerun
    return report


def test_from_pytest_reports__class_test_failed__test_name_and_crash_message():
    # arrange
    reports = [
        _report("setup", "passed"),
        _report("call", "failed", message="AssertionError: assert 1 == 2"),
        _report("teardown", "passed"),
    ]

    # act
    test, result = from_pytest_reports("tests/test_a.py::TestSuite::test_x", reports)

    # assert
    assert test == TestCase(title="test_x", file="tests/test_a.py")
    assert result.status == "failed"
    assert result.errors == ["AssertionError: assert 1 == 2"]
    assert round(result.duration) == 300


def test_from_pytest_reports__setup_skipped__skipped():
    reports = [_report("setup", "skipped"), _report("teardown", "passed")]

    _, result = from_pytest_reports("test_a.py::test_y", reports)

    assert result.status == "skipped"
    assert result.errors == []


def test_from_pytest_reports__pytest_timeout__timed_out():
    reports = [
        _report("setup", "passed"),
        _report("call", "failed", message="Failed: Timeout >1.0s"),
        _report("teardown", "passed"),
    ]

    _, result = from_pytest_reports("test_a.py::test_slow", reports)

    assert result.status == "timedOut"


def test_from_pytest_reports__assertion_mentions_timeout__failed():
    reports = [
        _report("setup", "passed"),
        _report("call", "failed", message="AssertionError: Timeout was not raised"),
        _report("teardown", "passed"),
    ]

    _, result = from_pytest_reports("test_a.py::test_raises", reports)

    assert result.status == "failed"


def test_from_pytest_reports__passed_on_rerun__retry_count():
    reports = [
        _report("setup", "passed", rerun=2),
        _report("call", "passed", rerun=2),
        _report("teardown", "passed", rerun=2),
    ]

    _, result = from_pytest_reports("test_a.py::test_flaky", reports)

    assert result.status == "passed"
    assert result.retry == 2


def test_from_pytest_reports__teardown_error__failed():
    reports = [
        _report("setup", "passed"),
        _report("call", "passed"),
        _report("teardown", "failed", message="RuntimeError: cleanup"),
    ]

    _, result = from_pytest_reports("test_a.py::test_z", reports)

    assert result.status == "failed"
    assert result.errors == ["RuntimeError: cleanup"]
