from typing import TYPE_CHECKING, List, Literal, Protocol, TypedDict

if TYPE_CHECKING:
    from pytest_chatreport.collector import FailureRecord, RunStats  # pragma: no cover
    from pytest_chatreport.formatting import RunContext  # pragma: no cover

TestStatus = Literal["passed", "failed", "timedOut", "skipped"]
RunStatus = Literal["passed", "failed", "timedout", "interrupted", "unknown"]
TaskStatus = Literal["completed", "failed", "in_progress", "cancelled"]

DeliveryOutcome = Literal["sent", "failed", "skipped"]


class Notifier(Protocol):
    """Formats a finished run and sends it to one chat service."""

    name: str

    def is_configured(self) -> bool:
        pass  # pragma: no cover

    def notify(
        self,
        run_status: str,
        stats: "RunStats",
        failures: List["FailureRecord"],
        context: "RunContext",
    ) -> bool:
        pass  # pragma: no cover


class DeliveryStats(TypedDict):
    timestamp: str
    notifier: str
    outcome: DeliveryOutcome
