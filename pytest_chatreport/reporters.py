import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from pytest_chatreport.api import DiscordWebhookClient, TelegramBotClient
from pytest_chatreport.collector import (
    FailureRecord,
    ResultCollector,
    RunStats,
    TestCase,
    TestResult,
)
from pytest_chatreport.config import DiscordConfig, ReportOptions, TelegramConfig
from pytest_chatreport.formatting import (
    RunContext,
    build_discord_payload,
    build_telegram_text,
)
from pytest_chatreport.types import (
    DeliveryOutcome,
    DeliveryStats,
    Notifier,
    RunStatus,
)

logger = logging.getLogger(__name__)


class DiscordNotifier:
    name = "discord"

    def __init__(self, options: ReportOptions, config: DiscordConfig) -> None:
        self.options = options
        self.config = config
        self.client = DiscordWebhookClient(config)

    def is_configured(self) -> bool:
        if not self.client.is_configured():
            logger.warning(
                "[Discord Reporter] Skipped - missing DISCORD_WEBHOOK_URL"
            )
            return False
        return True

    def notify(
        self,
        run_status: str,
        stats: RunStats,
        failures: List[FailureRecord],
        context: RunContext,
    ) -> bool:
        payload = build_discord_payload(
            run_status,
            stats,
            failures,
            context,
            self.options,
            field_char_limit=self.config.field_char_limit,
        )
        return self.client.send(payload)


class TelegramNotifier:
    name = "telegram"

    def __init__(self, options: ReportOptions, config: TelegramConfig) -> None:
        self.options = options
        self.config = config
        self.client = TelegramBotClient(config)

    def is_configured(self) -> bool:
        if not self.client.is_configured():
            logger.warning(
                "[Telegram Reporter] Skipped - missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID"
            )
            return False
        return True

    def notify(
        self,
        run_status: str,
        stats: RunStats,
        failures: List[FailureRecord],
        context: RunContext,
    ) -> bool:
        text = build_telegram_text(
            run_status,
            stats,
            failures,
            context,
            self.options,
            field_char_limit=self.config.field_char_limit,
        )
        return self.client.send(text)


class ChatReporter:
    """Run observer that hands one summary per run to its notifier.

    Methods defined in order of execution.
    """

    def __init__(self, options: ReportOptions, notifier: Notifier) -> None:
        self.options = options
        self.notifier = notifier
        self.collector = ResultCollector()
        self.project = ""
        self.environment = ""
        self._start: Optional[float] = None

    @property
    def name(self) -> str:
        return self.notifier.name

    def on_begin(self, project: str, environment: str = "") -> None:
        self._start = time.monotonic()
        self.project = project
        self.environment = environment

    def on_test_end(self, test: TestCase, result: TestResult) -> None:
        self.collector.record_result(test, result)

    def on_end(self, run_status: RunStatus) -> Optional[DeliveryStats]:
        if not self.options.enabled:
            return None

        if not self.notifier.is_configured():
            return self._delivery_stat("skipped")

        sent = self.notifier.notify(
            run_status,
            self.collector.stats,
            self.collector.failures,
            self.run_context(),
        )
        return self._delivery_stat("sent" if sent else "failed")

    def run_context(self) -> RunContext:
        elapsed = 0.0
        if self._start is not None:
            elapsed = (time.monotonic() - self._start) * 1000
        return RunContext(
            project=self.project,
            environment=self.environment,
            duration_ms=elapsed,
        )

    def _delivery_stat(self, outcome: DeliveryOutcome) -> DeliveryStats:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "notifier": self.name,
            "outcome": outcome,
        }


class DiscordReporter(ChatReporter):
    def __init__(self, options: ReportOptions, config: DiscordConfig) -> None:
        super().__init__(options, DiscordNotifier(options, config))


class TelegramReporter(ChatReporter):
    def __init__(self, options: ReportOptions, config: TelegramConfig) -> None:
        super().__init__(options, TelegramNotifier(options, config))
