"""Dry run: predict broadcast outcomes without calling chat.postMessage."""

import math

import structlog

from broadcaster.config import settings
from broadcaster.output.base import MAX_MESSAGE_LENGTH, DeliveryStatus, DryRunResult, precheck_channel
from broadcaster.slack.client import ResolvedChannel


def estimate_duration(channel_count: int, pacing_delay: float) -> str:
    """Delivery time range for ``channel_count`` sends.

    Each send costs at least one pacing delay; the upper bound allows as
    much again for the request itself.
    """
    if channel_count <= 0:
        return "0 seconds"

    low = channel_count * pacing_delay
    high = channel_count * pacing_delay * 2

    if high < 60:
        return f"{math.ceil(low)}-{math.ceil(high)} seconds"
    if high < 3600:
        return f"{math.ceil(low / 60)}-{math.ceil(high / 60)} minutes"
    return f"{math.ceil(low / 3600)}-{math.ceil(high / 3600)} hours"


def message_problem(text: str) -> str | None:
    """Why Slack would reject ``text`` for every channel, or None."""
    if not text.strip():
        return "Message is empty"
    if len(text) > MAX_MESSAGE_LENGTH:
        return f"Message exceeds Slack maximum length ({len(text)} characters)"
    return None


class DryRunSimulator:
    def __init__(self, pacing_delay: float | None = None, logger=None):
        self.pacing_delay = settings.BROADCAST_PACING_SECONDS if pacing_delay is None else pacing_delay
        self._log = logger or structlog.get_logger().bind(component="dry_run")

    def simulate(
        self,
        channels: list[ResolvedChannel],
        text: str,
        target_list_name: str = "unknown",
    ) -> DryRunResult:
        result = DryRunResult(target_list_name=target_list_name, channels=list(channels), message=text)

        problem = message_problem(text)
        if problem:
            result.warnings.append(problem)
            result.would_fail = len(channels)
        else:
            for channel in channels:
                verdict = precheck_channel(channel)
                if verdict is None:
                    result.would_succeed += 1
                elif verdict[0] is DeliveryStatus.SKIPPED:
                    result.warnings.append(f"Bot is not a member of #{channel.name} (private channel)")
                    result.would_skip += 1
                else:
                    result.warnings.append(f"Cannot send to archived channel #{channel.name}")
                    result.would_fail += 1

        result.estimated_duration = estimate_duration(result.would_succeed, self.pacing_delay)
        self._log.info(
            "dry_run.done",
            list_name=target_list_name,
            would_succeed=result.would_succeed,
            would_fail=result.would_fail,
            would_skip=result.would_skip,
        )
        return result
