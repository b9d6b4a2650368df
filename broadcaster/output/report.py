"""Plain-text report lines for broadcast and dry-run results."""

from broadcaster.output.base import (
    BroadcastResult,
    DeliveryStatus,
    DryRunResult,
    ErrorType,
    OverallStatus,
    precheck_channel,
)
from broadcaster.output.dry_run import message_problem
from broadcaster.output.exit_codes import is_validation_error
from broadcaster.schemas.channel_config import ChannelConfiguration
from broadcaster.slack.client import ResolvedChannel

PREVIEW_LENGTH = 100


def _plural(count: int, noun: str = "channel") -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def broadcast_lines(result: BroadcastResult) -> list[str]:
    lines = []
    for delivery in result.delivery_results:
        name = delivery.channel.name or delivery.channel.id
        if delivery.status is DeliveryStatus.SUCCESS:
            lines.append(f"✓ #{name}: Message sent (ts: {delivery.message_id})")
        elif delivery.status is DeliveryStatus.FAILED:
            lines.append(f"✗ #{name}: Failed - {delivery.error.message}")
            details = delivery.error.details or {}
            if isinstance(details.get("guidance"), str):
                lines.append(f"    ↳ {details['guidance']}")
            for message in details.get("slack_messages") or []:
                lines.append(f"    • {message}")
        else:
            lines.append(f"⚠ #{name}: Skipped - {delivery.error.message}")
    lines.append("")

    succeeded = result.count(DeliveryStatus.SUCCESS)
    failed = result.count(DeliveryStatus.FAILED)
    skipped = result.count(DeliveryStatus.SKIPPED)

    if result.overall_status == OverallStatus.FAILED:
        lines.append("Broadcast failed: No messages delivered")
        if failed:
            lines.append(f"{_plural(failed)} failed")
        if skipped:
            lines.append(f"{_plural(skipped)} skipped")
    else:
        lines.append(f"Broadcast completed: {succeeded}/{result.total_channels} channels successful")
        if failed:
            lines.append(f"{_plural(failed)} failed - see details above")
        if skipped:
            lines.append(f"{_plural(skipped)} skipped - see details above")

    validation_failures = sum(
        1 for r in result.delivery_results
        if r.status is DeliveryStatus.FAILED and is_validation_error(r.error.type)
    )
    if validation_failures:
        lines.append(
            f"Validation issues detected in {_plural(validation_failures)}: "
            "adjust the message content or channel targets and retry."
        )
    return lines


def _dry_run_marker(channel: ResolvedChannel, invalid_message: bool) -> str:
    if invalid_message:
        return "✗ (invalid message)"
    verdict = precheck_channel(channel)
    if verdict is None:
        return "✓"
    status, error = verdict
    reason = "archived" if error.type == ErrorType.IS_ARCHIVED else "not a member"
    symbol = "⚠" if status is DeliveryStatus.SKIPPED else "✗"
    return f"{symbol} ({reason})"


def dry_run_lines(result: DryRunResult) -> list[str]:
    lines = [f'Dry run for "{result.target_list_name}" ({len(result.channels)} channels):', ""]

    invalid_message = message_problem(result.message) is not None
    for channel in result.channels:
        lines.append(f"→ #{channel.name} ({channel.id}) {_dry_run_marker(channel, invalid_message)}")
    lines.append("")

    lines.append("Message preview:")
    if len(result.message) > PREVIEW_LENGTH:
        lines.append(f'"{result.message[:PREVIEW_LENGTH]}..."')
    else:
        lines.append(f'"{result.message}"')
    lines.append("")

    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"⚠ {warning}" for warning in result.warnings)
        lines.append("")

    if result.would_succeed:
        lines.append(f"Would deliver to {_plural(result.would_succeed)}")
    if result.would_skip:
        lines.append(f"Would skip {_plural(result.would_skip)} (access issues)")
    if result.would_fail:
        lines.append(f"Would fail on {_plural(result.would_fail)}")
    lines.append(f"Delivery estimate: {result.estimated_duration}")
    lines.append("")
    lines.append("No messages sent (dry run mode)")
    return lines


def channel_list_lines(config: ChannelConfiguration) -> list[str]:
    lines = [f"Channel lists in {config.file_path}:", ""]
    for channel_list in config.channel_lists:
        lines.append(f"{channel_list.name} ({_plural(len(channel_list.channels))}):")
        lines.extend(f"  - {ident}" for ident in channel_list.channels)
        lines.append("")
    if config.mentions:
        lines.append(f"Mentions configured: {', '.join(sorted(config.mentions))}")
    return lines
