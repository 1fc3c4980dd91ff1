from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from pytest_chatreport.api import (
    DiscordEmbed,
    DiscordEmbedField,
    DiscordEmbedFooter,
    DiscordWebhookPayload,
)
from pytest_chatreport.collector import FailureRecord, RunStats
from pytest_chatreport.config import ReportOptions

DISCORD_FOOTER = "pytest chat reporter"


class StatusDisplay(NamedTuple):
    label: str
    color: int
    symbol: str


STATUS_DISPLAY: Dict[str, StatusDisplay] = {
    "passed": StatusDisplay("PASSED", 0x2ECC71, "✅"),
    "failed": StatusDisplay("FAILED", 0xE74C3C, "❌"),
    "timedout": StatusDisplay("TIMED OUT", 0xF39C12, "⏱️"),
    "interrupted": StatusDisplay("INTERRUPTED", 0x9B59B6, "⚠️"),
}
UNKNOWN_STATUS = StatusDisplay("UNKNOWN", 0x95A5A6, "❓")


def status_display(run_status: str) -> StatusDisplay:
    return STATUS_DISPLAY.get(run_status, UNKNOWN_STATUS)


@dataclass
class RunContext:
    project: str
    environment: str = ""
    duration_ms: float = 0.0
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def pass_rate(stats: RunStats) -> str:
    if stats.total == 0:
        return "0%"
    return f"{stats.passed / stats.total * 100:.1f}%"


def format_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes, remaining_seconds = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{seconds}s"


def format_long_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes, remaining_seconds = divmod(seconds, 60)
    hours, remaining_minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {remaining_minutes}m {remaining_seconds}s"
    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{seconds}s"


def escape_html(text: str) -> str:
    # Telegram's HTML parse mode only needs these three escaped
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def truncate_field(text: str, limit: Optional[int]) -> str:
    if limit is None or len(text) <= limit:
        return text
    return text[: limit - 4] + "..."


def truncate_lines(lines: Sequence[str], limit: Optional[int]) -> str:
    """Like truncate_field, but only cuts between whole lines.

    Each line carries its own closed markup, so the result stays valid HTML.
    """
    text = "".join(lines)
    if limit is None or len(text) <= limit:
        return text
    kept = ""
    for line in lines:
        if len(kept) + len(line) > limit - 4:
            break
        kept += line
    return kept + "..."


def group_failures(failures: Sequence[FailureRecord]) -> "OrderedDict[str, List[str]]":
    grouped: "OrderedDict[str, List[str]]" = OrderedDict()
    for failure in failures:
        grouped.setdefault(failure.file, []).append(failure.title)
    return grouped


def select_failures(
    failures: Sequence[FailureRecord], max_shown: int
) -> Tuple["OrderedDict[str, List[str]]", int]:
    """Pick at most ``max_shown`` titles across all files, in first-seen order.

    Returns the shown titles grouped by file and the number left out.
    """
    shown: "OrderedDict[str, List[str]]" = OrderedDict()
    count = 0
    for file, titles in group_failures(failures).items():
        if count >= max_shown:
            break
        shown[file] = titles[: max_shown - count]
        count += len(shown[file])
    return shown, max(len(failures) - max_shown, 0)


def render_discord_failures(
    failures: Sequence[FailureRecord], max_shown: int, limit: Optional[int]
) -> str:
    shown, remaining = select_failures(failures, max_shown)
    value = ""
    for file, titles in shown.items():
        value += f"📄 **{file}**\n"
        for title in titles:
            value += f"• {title}\n"
        value += "\n"
    if remaining:
        value += f"_... and {remaining} more failed tests_"
    return truncate_field(value, limit).strip()


def render_telegram_failures(
    failures: Sequence[FailureRecord], max_shown: int, limit: Optional[int]
) -> str:
    shown, remaining = select_failures(failures, max_shown)
    lines: List[str] = []
    for file, titles in shown.items():
        lines += ["\n", f"📄 <b>{escape_html(file)}</b>\n"]
        lines += [f"• {escape_html(title)}\n" for title in titles]
    if remaining:
        lines.append(f"\n<i>... and {remaining} more failed tests</i>")
    return truncate_lines(lines, limit)


def _show_failures(failures: Sequence[FailureRecord], options: ReportOptions) -> bool:
    return options.include_failed_tests and len(failures) > 0


def build_discord_payload(
    run_status: str,
    stats: RunStats,
    failures: Sequence[FailureRecord],
    context: RunContext,
    options: ReportOptions,
    field_char_limit: Optional[int] = None,
) -> DiscordWebhookPayload:
    display = status_display(run_status)
    results = [
        f"**Total:** {stats.total}",
        f"**Passed:** {stats.passed} ✅",
        f"**Failed:** {stats.failed} ❌",
        f"**Skipped:** {stats.skipped} ⏭️",
    ]
    if stats.flaky > 0:
        results.append(f"**Flaky:** {stats.flaky} 🔄")
    results.append(f"**Pass Rate:** {pass_rate(stats)}")

    fields = [
        DiscordEmbedField(name="📦 Project", value=context.project, inline=True),
        DiscordEmbedField(
            name="🌐 Environment", value=context.environment or "N/A", inline=True
        ),
        DiscordEmbedField(
            name="⏱️ Duration", value=format_duration(context.duration_ms), inline=True
        ),
        DiscordEmbedField(name="📊 Results", value="\n".join(results), inline=False),
    ]

    if _show_failures(failures, options):
        fields.append(
            DiscordEmbedField(
                name="❌ Failed Tests",
                value=render_discord_failures(
                    failures, options.max_failed_tests_to_show, field_char_limit
                ),
                inline=False,
            )
        )

    embed = DiscordEmbed(
        title=f"{display.symbol} Test Execution: {display.label}",
        color=display.color,
        fields=fields,
        footer=DiscordEmbedFooter(text=DISCORD_FOOTER),
        timestamp=context.finished_at.astimezone(timezone.utc).isoformat(),
    )
    return DiscordWebhookPayload(embeds=[embed])


def _short_timestamp(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    hour = moment.hour % 12 or 12
    return (
        f"{moment.month}/{moment.day}/{moment:%y}, "
        f"{hour}:{moment:%M} {moment:%p}"
    )


def build_telegram_text(
    run_status: str,
    stats: RunStats,
    failures: Sequence[FailureRecord],
    context: RunContext,
    options: ReportOptions,
    field_char_limit: Optional[int] = None,
) -> str:
    display = status_display(run_status)

    message = f"<b>Test Execution: {display.label}</b>\n\n"
    message += f"<b>Project:</b> {escape_html(context.project)}\n"
    message += f"<b>Environment:</b> {escape_html(context.environment)}\n"
    message += f"<b>Time:</b> {escape_html(_short_timestamp(context.finished_at))} UTC\n"
    message += f"<b>Duration:</b> {format_duration(context.duration_ms)}\n\n"

    message += "<b>Results:</b>\n"
    message += f"Total: {stats.total}\n"
    message += f"Passed: {stats.passed}\n"
    message += f"Failed: {stats.failed}\n"
    message += f"Skipped: {stats.skipped}\n"
    if stats.flaky > 0:
        message += f"Flaky: {stats.flaky}\n"
    message += f"Pass Rate: {pass_rate(stats)}\n"

    if _show_failures(failures, options):
        message += "\n<b>Failed Tests:</b>\n"
        message += render_telegram_failures(
            failures, options.max_failed_tests_to_show, field_char_limit
        )

    return message
