from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from broadcaster.slack.client import ResolvedChannel

MAX_MESSAGE_LENGTH = 40_000


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class OverallStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ErrorType:
    IS_ARCHIVED = "is_archived"
    NOT_IN_CHANNEL = "not_in_channel"
    INVALID_ARGUMENTS = "invalid_arguments"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "ratelimited"
    UNKNOWN = "unknown"


@dataclass
class DeliveryError:
    type: str
    message: str
    details: dict | None = None
    retry_after: int | None = None


@dataclass
class ChannelDeliveryResult:
    channel: ResolvedChannel
    status: DeliveryStatus
    message_id: str | None = None
    error: DeliveryError | None = None
    delivered_at: datetime | None = None

    def __post_init__(self):
        if self.status is DeliveryStatus.SUCCESS:
            if not self.message_id or self.delivered_at is None:
                raise ValueError("successful delivery needs message_id and delivered_at")
        elif self.error is None:
            raise ValueError(f"{self.status.value} delivery needs an error")


@dataclass
class BroadcastResult:
    target_list_name: str
    delivery_results: list[ChannelDeliveryResult]
    completed_at: datetime
    overall_status: OverallStatus = field(init=False)

    def __post_init__(self):
        self.overall_status = aggregate_status(self.delivery_results)

    @property
    def total_channels(self) -> int:
        return len(self.delivery_results)

    def count(self, status: DeliveryStatus) -> int:
        return sum(1 for r in self.delivery_results if r.status is status)


@dataclass
class DryRunResult:
    target_list_name: str
    channels: list[ResolvedChannel]
    message: str
    would_succeed: int = 0
    would_fail: int = 0
    would_skip: int = 0
    warnings: list[str] = field(default_factory=list)
    estimated_duration: str = "0 seconds"


def aggregate_status(results: list[ChannelDeliveryResult]) -> OverallStatus:
    succeeded = sum(1 for r in results if r.status is DeliveryStatus.SUCCESS)
    if results and succeeded == len(results):
        return OverallStatus.SUCCESS
    if succeeded == 0:
        return OverallStatus.FAILED
    return OverallStatus.PARTIAL


def precheck_channel(channel: ResolvedChannel) -> tuple[DeliveryStatus, DeliveryError] | None:
    """Classify a channel before any send is attempted.

    Shared by live delivery and dry runs so both reach the same verdict for
    the same directory snapshot. None means the channel is sendable.
    """
    if channel.is_archived:
        return DeliveryStatus.FAILED, DeliveryError(
            type=ErrorType.IS_ARCHIVED,
            message="Cannot send messages to archived channels",
        )
    if channel.is_private and not channel.is_member:
        return DeliveryStatus.SKIPPED, DeliveryError(
            type=ErrorType.NOT_IN_CHANNEL,
            message="Bot is not a member of this private channel",
        )
    return None
