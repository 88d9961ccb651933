"""Usage tap: non-blocking token accounting for both response paths.

Reports are handed to a ``UsageReporter`` on a detached task so the caller
never waits on the usage store. Reporter failures are logged and dropped.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, Set, runtime_checkable

from claude_gateway.core.database import Database
from claude_gateway.core.exceptions import ReportError
from claude_gateway.core.logging import get_logger
from claude_gateway.core.metrics import TOKEN_USAGE, USAGE_REPORT_FAILURES
from claude_gateway.models.messages import NormalizedResponse, StreamEvent, UsageReport

logger = get_logger()


@runtime_checkable
class UsageReporter(Protocol):
    """Destination for usage reports. Must tolerate concurrent calls."""

    async def report(self, usage: UsageReport) -> None:
        """Record one usage report, raising ReportError on failure"""
        ...


class NoopUsageReporter:
    """Default reporter when no usage store is configured"""

    async def report(self, usage: UsageReport) -> None:
        return None


class DatabaseUsageReporter:
    """Persists (model, input_tokens, output_tokens) rows to the usage store"""

    def __init__(self, db: Database):
        self._db = db

    async def report(self, usage: UsageReport) -> None:
        try:
            await self._db.insert_usage(
                usage.model, usage.input_tokens, usage.output_tokens
            )
        except Exception as e:
            raise ReportError(f"Failed to store usage for {usage.model}: {e}") from e


class UsageTap:
    """Dispatches usage reports fire-and-forget"""

    def __init__(self, reporter: Optional[UsageReporter] = None, provider: str = "unknown"):
        self.reporter = reporter or NoopUsageReporter()
        self.provider = provider
        # Strong references so pending reports are not garbage collected
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, usage: UsageReport) -> None:
        """Schedule the report and return immediately"""
        self._record_metrics(usage)
        task = asyncio.create_task(self._report(usage))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def observe_response(self, model: str, response: NormalizedResponse) -> Optional[UsageReport]:
        """Dispatch a report for a successful non-streaming response"""
        usage = response.usage
        if usage is None:
            logger.warning(f"Backend response for model={model} carried no usage")
            return None
        report = UsageReport(
            model=model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )
        self.dispatch(report)
        return report

    def stream_tracker(self, model: str) -> "StreamUsageTracker":
        return StreamUsageTracker(tap=self, model=model)

    async def drain(self) -> None:
        """Wait for every pending report to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _report(self, usage: UsageReport) -> None:
        try:
            await self.reporter.report(usage)
        except ReportError as e:
            USAGE_REPORT_FAILURES.labels(model=usage.model).inc()
            logger.warning(f"Usage report dropped: {e}")
        except Exception:
            USAGE_REPORT_FAILURES.labels(model=usage.model).inc()
            logger.exception(f"Unexpected error reporting usage for model={usage.model}")

    def _record_metrics(self, usage: UsageReport) -> None:
        TOKEN_USAGE.labels(
            model=usage.model, provider=self.provider, token_type="prompt"
        ).inc(usage.input_tokens)
        TOKEN_USAGE.labels(
            model=usage.model, provider=self.provider, token_type="completion"
        ).inc(usage.output_tokens)
        TOKEN_USAGE.labels(
            model=usage.model, provider=self.provider, token_type="total"
        ).inc(usage.input_tokens + usage.output_tokens)


@dataclass
class StreamUsageTracker:
    """Collects usage while a stream passes through and reports it once.

    Input tokens arrive with ``message_start``; the terminal ``message_delta``
    carries the output count and triggers the report.
    """

    tap: UsageTap
    model: str
    input_tokens: int = 0
    reported: bool = False

    def observe(self, event: StreamEvent) -> None:
        if self.reported:
            return
        if event.type == "message_start":
            message = event.data.get("message") or {}
            usage = message.get("usage") or {}
            self.input_tokens = usage.get("input_tokens") or 0
        elif event.type == "message_delta":
            usage = event.data.get("usage")
            if not usage:
                return
            self.reported = True
            self.tap.dispatch(
                UsageReport(
                    model=self.model,
                    input_tokens=usage.get("input_tokens") or self.input_tokens,
                    output_tokens=usage.get("output_tokens") or 0,
                )
            )
