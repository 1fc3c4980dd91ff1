import os
from typing import TYPE_CHECKING, Dict, List, Set

import pytest
from _pytest.config.exceptions import UsageError
from pydantic import ValidationError

from pytest_chatreport.collector import from_pytest_reports
from pytest_chatreport.config import (
    DEFAULT_MAX_FAILED_TESTS_TO_SHOW,
    DiscordConfig,
    ReportOptions,
    TelegramConfig,
)
from pytest_chatreport.reporters import ChatReporter, DiscordReporter, TelegramReporter
from pytest_chatreport.types import DeliveryStats, RunStatus

if TYPE_CHECKING:
    from _pytest.config import Config, PytestPluginManager  # pragma: no cover
    from _pytest.config.argparsing import Parser  # pragma: no cover
    from _pytest.reports import TestReport  # pragma: no cover
    from _pytest.terminal import TerminalReporter  # pragma: no cover
    from pytest import Session  # pragma: no cover


def pytest_addoption(parser: "Parser", pluginmanager: "PytestPluginManager") -> None:
    group = parser.getgroup("chatreport", "chat notifications for test runs")
    group.addoption(
        "--discord-report",
        dest="discordreport",
        action="store_true",
        help="send a run summary to a Discord webhook",
    )
    group.addoption(
        "--discord-webhook-url",
        dest="discordwebhookurl",
        default=os.environ.get("DISCORD_WEBHOOK_URL", ""),
        help="Discord webhook url (default: $DISCORD_WEBHOOK_URL)",
    )
    group.addoption(
        "--telegram-report",
        dest="telegramreport",
        action="store_true",
        help="send a run summary through a Telegram bot",
    )
    group.addoption(
        "--telegram-bot-token",
        dest="telegrambottoken",
        default=os.environ.get("TELEGRAM_BOT_TOKEN", ""),
        help="Telegram bot token (default: $TELEGRAM_BOT_TOKEN)",
    )
    group.addoption(
        "--telegram-chat-id",
        dest="telegramchatid",
        default=os.environ.get("TELEGRAM_CHAT_ID", ""),
        help="Telegram chat id (default: $TELEGRAM_CHAT_ID)",
    )
    group.addoption(
        "--telegram-api-url",
        dest="telegramapiurl",
        default="https://api.telegram.org",
        help="Telegram bot API base url",
    )
    group.addoption(
        "--chatreport-no-failed-tests",
        dest="chatreportfailedtests",
        action="store_false",
        help="leave failed test names out of the summary",
    )
    group.addoption(
        "--chatreport-max-failed-tests",
        dest="chatreportmaxfailed",
        type=int,
        default=DEFAULT_MAX_FAILED_TESTS_TO_SHOW,
        help="number of failed tests listed in the summary",
    )
    group.addoption(
        "--chatreport-project",
        dest="chatreportproject",
        default="",
        help="project name shown in the summary (default: rootdir name)",
    )
    group.addoption(
        "--chatreport-environment",
        dest="chatreportenvironment",
        default=os.environ.get("BASE_URL", ""),
        help="environment shown in the summary (default: $BASE_URL)",
    )


def pytest_configure(config: "Config") -> None:
    if not (config.option.discordreport or config.option.telegramreport):
        return

    reporters = get_chat_reporters(config)

    # Only the main node sees the whole run
    if not hasattr(config, "workerinput"):
        chat_report_plugin = ChatReportPlugin(config=config, reporters=reporters)
        config.pluginmanager.register(chat_report_plugin, "chat_report_plugin")
        config.pluginmanager.register(ReportSummaryPlugin(), "chat_summary_plugin")


def get_report_options(config: "Config") -> ReportOptions:
    try:
        return ReportOptions(
            enabled=True,
            include_failed_tests=config.option.chatreportfailedtests,
            max_failed_tests_to_show=config.option.chatreportmaxfailed,
        )
    except ValidationError:
        raise UsageError("--chatreport-max-failed-tests should not be negative")


def get_chat_reporters(config: "Config") -> List[ChatReporter]:
    options = get_report_options(config)
    reporters: List[ChatReporter] = []
    if config.option.discordreport:
        reporters.append(
            DiscordReporter(
                options=options,
                config=DiscordConfig(webhook_url=config.option.discordwebhookurl),
            )
        )
    if config.option.telegramreport:
        reporters.append(
            TelegramReporter(
                options=options,
                config=TelegramConfig(
                    bot_token=config.option.telegrambottoken,
                    chat_id=config.option.telegramchatid,
                    api_base_url=config.option.telegramapiurl,
                ),
            )
        )
    return reporters


def get_run_status(exitstatus: int, timed_out: bool) -> RunStatus:
    if exitstatus in (pytest.ExitCode.OK, pytest.ExitCode.NO_TESTS_COLLECTED):
        return "passed"
    if exitstatus == pytest.ExitCode.TESTS_FAILED:
        return "timedout" if timed_out else "failed"
    if exitstatus == pytest.ExitCode.INTERRUPTED:
        return "interrupted"
    return "unknown"


class ChatReportPlugin:
    def __init__(self, config: "Config", reporters: List[ChatReporter]) -> None:
        self.config = config
        self.reporters = reporters
        self.pending: Dict[str, List["TestReport"]] = {}
        self.rerun_pending: Set[str] = set()
        self.delivery_stats: List[DeliveryStats] = []

    def store_stats(self) -> None:
        self.config.chat_report_stats = self.delivery_stats

    def pytest_sessionstart(self, session: "Session") -> None:
        config = session.config
        project = config.option.chatreportproject or config.rootpath.name
        for reporter in self.reporters:
            reporter.on_begin(
                project=project, environment=config.option.chatreportenvironment
            )

    def record_test(self, node_id: str) -> None:
        test, result = from_pytest_reports(node_id, self.pending.pop(node_id))
        for reporter in self.reporters:
            reporter.on_test_end(test, result)

    def pytest_runtest_logreport(self, report: "TestReport") -> None:
        node_id = report.nodeid
        if report.when == "setup":
            self.rerun_pending.discard(node_id)
            self.pending[node_id] = []

        # pytest-rerunfailures: the attempt is retried, wait for the final one
        if report.outcome == "rerun":
            self.pending.pop(node_id, None)
            self.rerun_pending.add(node_id)
            return
        if node_id in self.rerun_pending:
            return

        self.pending.setdefault(node_id, []).append(report)

        if report.when == "teardown":
            self.record_test(node_id)
        elif report.when not in ("setup", "call") and report.failed:
            # pytest-xdist reports a crashed worker's test once, with when="???"
            self.record_test(node_id)

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(self, session: "Session", exitstatus: int) -> None:
        timed_out = any(r.collector.timed_out for r in self.reporters)
        run_status = get_run_status(exitstatus, timed_out)
        for reporter in self.reporters:
            stat = reporter.on_end(run_status)
            if stat is not None:
                self.delivery_stats.append(stat)
        self.store_stats()


class ReportSummaryPlugin:
    def pytest_terminal_summary(self, terminalreporter: "TerminalReporter") -> None:
        stats: List[DeliveryStats] = getattr(
            terminalreporter.config, "chat_report_stats", []
        )
        terminalreporter.write_sep("=", "chat report summary")
        for stat in stats:
            terminalreporter.write_line(
                "{timestamp}\t{notifier}\t{outcome}".format(**stat)
            )
        sent = sum(1 for s in stats if s["outcome"] == "sent")
        terminalreporter.write_line(f"Notifications sent: {sent}/{len(stats)}")
