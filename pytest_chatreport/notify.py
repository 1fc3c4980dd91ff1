from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pytest_chatreport.api import (
    DiscordEmbed,
    DiscordEmbedField,
    DiscordEmbedFooter,
    DiscordWebhookClient,
    DiscordWebhookPayload,
)
from pytest_chatreport.formatting import StatusDisplay, format_long_duration
from pytest_chatreport.types import TaskStatus

TASK_FOOTER = "Task Notification"
DEFAULT_COLOR = 0x3498DB
MAX_FILES_TO_SHOW = 10
MAX_ERRORS_TO_SHOW = 5


TASK_STATUS_DISPLAY: Dict[str, StatusDisplay] = {
    "completed": StatusDisplay("Task completed successfully", 0x2ECC71, "✅"),
    "failed": StatusDisplay("Task failed", 0xE74C3C, "❌"),
    "in_progress": StatusDisplay("Task in progress", DEFAULT_COLOR, "🔄"),
    "cancelled": StatusDisplay("Task cancelled", 0xF39C12, "⚠️"),
}
UNKNOWN_TASK_STATUS = StatusDisplay("Task status unknown", 0x95A5A6, "❓")


@dataclass
class TaskNotification:
    task_name: str
    status: TaskStatus = "completed"
    duration_ms: Optional[float] = None
    details: Optional[str] = None
    files_created: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _more(items: List[str], shown: int, noun: str) -> str:
    if len(items) > shown:
        return f"\n_... and {len(items) - shown} more {noun}_"
    return ""


def build_task_payload(notification: TaskNotification) -> DiscordWebhookPayload:
    display = TASK_STATUS_DISPLAY.get(notification.status, UNKNOWN_TASK_STATUS)
    fields: List[DiscordEmbedField] = []

    if notification.duration_ms:
        fields.append(
            DiscordEmbedField(
                name="⏱️ Duration",
                value=format_long_duration(notification.duration_ms),
                inline=True,
            )
        )

    if notification.details:
        fields.append(
            DiscordEmbedField(name="📝 Details", value=notification.details, inline=False)
        )

    files = notification.files_created
    if files:
        value = "\n".join(f"• `{f}`" for f in files[:MAX_FILES_TO_SHOW])
        fields.append(
            DiscordEmbedField(
                name=f"📁 Files Created ({len(files)})",
                value=value + _more(files, MAX_FILES_TO_SHOW, "files"),
                inline=False,
            )
        )

    errors = notification.errors
    if errors:
        value = "\n".join(
            f"{i}. {error}" for i, error in enumerate(errors[:MAX_ERRORS_TO_SHOW], 1)
        )
        fields.append(
            DiscordEmbedField(
                name=f"❌ Errors ({len(errors)})",
                value=value + _more(errors, MAX_ERRORS_TO_SHOW, "errors"),
                inline=False,
            )
        )

    return build_notification_payload(
        title=f"{display.symbol} Task: {notification.task_name}",
        description=display.label,
        fields=fields,
        color=display.color,
    )


def build_notification_payload(
    title: str,
    description: Optional[str] = None,
    fields: Optional[List[DiscordEmbedField]] = None,
    color: int = DEFAULT_COLOR,
    footer: str = TASK_FOOTER,
    timestamp: Optional[datetime] = None,
) -> DiscordWebhookPayload:
    moment = timestamp or datetime.now(timezone.utc)
    embed = DiscordEmbed(
        title=title,
        description=description,
        color=color,
        fields=fields or [],
        footer=DiscordEmbedFooter(text=footer),
        timestamp=moment.astimezone(timezone.utc).isoformat(),
    )
    return DiscordWebhookPayload(embeds=[embed])


class TaskNotifier:
    def __init__(self, client: DiscordWebhookClient) -> None:
        self.client = client

    def send_notification(
        self,
        title: str,
        description: Optional[str] = None,
        fields: Optional[List[DiscordEmbedField]] = None,
        color: int = DEFAULT_COLOR,
        footer: str = TASK_FOOTER,
        webhook_url: Optional[str] = None,
    ) -> bool:
        payload = build_notification_payload(
            title, description=description, fields=fields, color=color, footer=footer
        )
        return self.client.send(payload, webhook_url=webhook_url)

    def notify_task_completion(
        self, notification: TaskNotification, webhook_url: Optional[str] = None
    ) -> bool:
        return self.client.send(
            build_task_payload(notification), webhook_url=webhook_url
        )

    def notify_success(
        self,
        task_name: str,
        message: Optional[str] = None,
        webhook_url: Optional[str] = None,
    ) -> bool:
        return self.notify_task_completion(
            TaskNotification(task_name=task_name, status="completed", details=message),
            webhook_url=webhook_url,
        )

    def notify_failure(
        self, task_name: str, error: str, webhook_url: Optional[str] = None
    ) -> bool:
        return self.notify_task_completion(
            TaskNotification(task_name=task_name, status="failed", errors=[error]),
            webhook_url=webhook_url,
        )
