import argparse
import logging
import os
import sys
from typing import Optional, Sequence, get_args

from pytest_chatreport.api import DiscordWebhookClient
from pytest_chatreport.config import DiscordConfig
from pytest_chatreport.notify import TaskNotification, TaskNotifier
from pytest_chatreport.types import TaskStatus

TASK_STATUSES = get_args(TaskStatus)


def resolve_webhook_url(explicit: Optional[str] = None) -> str:
    """Pick the webhook: flag, then the task webhook, then the general one."""
    return (
        explicit
        or os.environ.get("DISCORD_TASK_WEBHOOK_URL")
        or os.environ.get("DISCORD_WEBHOOK_URL")
        or ""
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat-notify", description="Send a task notification to Discord"
    )
    parser.add_argument("task_name", help="Name of the task")
    parser.add_argument(
        "-s", "--status", choices=TASK_STATUSES, default="completed", help="Task status"
    )
    parser.add_argument(
        "-d", "--duration", type=int, help="Task duration in milliseconds"
    )
    parser.add_argument("--details", help="Free-form details")
    parser.add_argument(
        "-f",
        "--file",
        dest="files",
        action="append",
        default=[],
        help="File created by the task (repeatable)",
    )
    parser.add_argument(
        "-e",
        "--error",
        dest="errors",
        action="append",
        default=[],
        help="Error raised by the task (repeatable)",
    )
    parser.add_argument(
        "--webhook-url",
        help="Discord webhook url (default: $DISCORD_TASK_WEBHOOK_URL or $DISCORD_WEBHOOK_URL)",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Send the notification and return the exit code."""
    client = DiscordWebhookClient(
        DiscordConfig(webhook_url=resolve_webhook_url(args.webhook_url)),
        log_prefix="Discord Notification",
    )
    notification = TaskNotification(
        task_name=args.task_name,
        status=args.status,
        duration_ms=args.duration,
        details=args.details,
        files_created=args.files,
        errors=args.errors,
    )
    success = TaskNotifier(client).notify_task_completion(notification)
    return 0 if success else 1


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    sys.exit(run(args))


if __name__ == "__main__":  # pragma: no cover
    main()
