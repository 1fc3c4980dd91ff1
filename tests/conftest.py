from typing import Callable, List

import pytest

from pytest_chatreport.collector import FailureRecord, RunStats

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def no_chat_env(monkeypatch) -> None:
    for name in (
        "DISCORD_WEBHOOK_URL",
        "DISCORD_TASK_WEBHOOK_URL",
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_CHAT_ID",
        "BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def bot_token() -> str:
    return "123456:ABCDEF"


@pytest.fixture
def chat_id() -> str:
    return "-100200300"


@pytest.fixture
def failures_factory() -> Callable[..., List[FailureRecord]]:
    def make(**counts_by_file: int) -> List[FailureRecord]:
        return [
            FailureRecord(title=f"{file} case {n}", file=f"{file}.py", error="boom")
            for file, count in counts_by_file.items()
            for n in range(1, count + 1)
        ]

    return make


@pytest.fixture
def stats() -> RunStats:
    return RunStats(total=25, passed=23, failed=2, skipped=0, flaky=1, duration=1000)


@pytest.fixture
def testmodules(pytester) -> None:
    pytester.makepyfile(
        test_login="""
    import pytest


    def test_valid_credentials():
        pass


    def test_wrong_password():
        assert 1 == 2, "expected <error> & fail"


    @pytest.mark.skip("not ready")
    def test_sso():
        pass
    """,
        test_cart="""
    import pytest


    @pytest.fixture
    def broken_fixture():
        raise RuntimeError("db is down")


    def test_add_item():
        pass


    def test_checkout(broken_fixture):
        pass
    """,
    )


@pytest.fixture
def passing_module(pytester) -> None:
    pytester.makepyfile(
        test_ok="""
    def test_ok():
        pass
    """
    )
