"""
Delivery orchestrator: send one message to a list of resolved channels.

Channels are handled one at a time, in order. Each gets its own result;
nothing that happens on one channel stops or alters delivery to the next,
and the returned BroadcastResult always covers every input channel.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import structlog

from broadcaster.config import settings
from broadcaster.output.base import (
    BroadcastResult,
    ChannelDeliveryResult,
    DeliveryError,
    DeliveryStatus,
    ErrorType,
    precheck_channel,
)
from broadcaster.slack.client import PostMessageResult, ResolvedChannel, SenderIdentity, SlackClient

INVALID_ARGUMENTS_GUIDANCE = (
    "Ensure the message text is not empty and stays within Slack's "
    "40,000 character limit, then retry."
)


def build_send_error(result: PostMessageResult) -> DeliveryError:
    """Turn a non-ok chat.postMessage answer into a DeliveryError."""
    code = result.error_code or ErrorType.UNKNOWN

    if code == ErrorType.INVALID_ARGUMENTS:
        slack_messages = [str(m) for m in result.detail.get("messages", []) if m]
        message = "Slack rejected the request"
        if slack_messages:
            message = f"{message}: {'; '.join(slack_messages)}"
        return DeliveryError(
            type=code,
            message=message,
            details={"guidance": INVALID_ARGUMENTS_GUIDANCE, "slack_messages": slack_messages},
        )

    return DeliveryError(
        type=code,
        message=code.replace("_", " "),
        details=result.detail or None,
        retry_after=result.retry_after,
    )


class DeliveryOrchestrator:
    def __init__(
        self,
        client: SlackClient,
        pacing_delay: float | None = None,
        logger=None,
    ):
        self._client = client
        self.pacing_delay = settings.BROADCAST_PACING_SECONDS if pacing_delay is None else pacing_delay
        self._log = logger or structlog.get_logger().bind(component="broadcast")

    async def deliver(
        self,
        channels: list[ResolvedChannel],
        text: str,
        target_list_name: str = "unknown",
        identity: SenderIdentity | None = None,
    ) -> BroadcastResult:
        log = self._log.bind(list_name=target_list_name)
        log.info("broadcast.start", channels=len(channels))

        results = []
        for channel in channels:
            verdict = precheck_channel(channel)
            if verdict is not None:
                status, error = verdict
                log.warning("broadcast.channel_rejected", channel=channel.name, status=status.value, error=error.type)
                results.append(ChannelDeliveryResult(channel=channel, status=status, error=error))
                continue

            results.append(await self._send(channel, text, identity, log))
            await asyncio.sleep(self.pacing_delay)

        result = BroadcastResult(
            target_list_name=target_list_name,
            delivery_results=results,
            completed_at=datetime.now(timezone.utc),
        )
        log.info(
            "broadcast.done",
            status=result.overall_status.value,
            succeeded=result.count(DeliveryStatus.SUCCESS),
            failed=result.count(DeliveryStatus.FAILED),
            skipped=result.count(DeliveryStatus.SKIPPED),
        )
        return result

    async def _send(
        self,
        channel: ResolvedChannel,
        text: str,
        identity: SenderIdentity | None,
        log,
    ) -> ChannelDeliveryResult:
        try:
            sent = await self._client.post_message(channel.id, text, identity)
        except (httpx.TransportError, httpx.HTTPStatusError) as e:
            # Unreachable host, timeout, or an HTTP error page from a proxy/gateway.
            log.warning("broadcast.channel_network_error", channel=channel.name, error=repr(e))
            return ChannelDeliveryResult(
                channel=channel,
                status=DeliveryStatus.FAILED,
                error=DeliveryError(type=ErrorType.NETWORK_ERROR, message=str(e) or type(e).__name__),
            )
        except Exception as e:
            log.exception("broadcast.channel_send_crashed", channel=channel.name)
            return ChannelDeliveryResult(
                channel=channel,
                status=DeliveryStatus.FAILED,
                error=DeliveryError(type=ErrorType.UNKNOWN, message=str(e) or type(e).__name__),
            )

        if sent.ok and sent.message_id:
            log.info("broadcast.channel_sent", channel=channel.name, ts=sent.message_id)
            return ChannelDeliveryResult(
                channel=channel,
                status=DeliveryStatus.SUCCESS,
                message_id=sent.message_id,
                delivered_at=datetime.now(timezone.utc),
            )

        if sent.ok:
            # Acknowledged without a ts: nothing to point the user at.
            sent = PostMessageResult(ok=False, error_code=ErrorType.UNKNOWN)

        error = build_send_error(sent)
        log.warning("broadcast.channel_failed", channel=channel.name, error=error.type)
        return ChannelDeliveryResult(channel=channel, status=DeliveryStatus.FAILED, error=error)
