"""
Broadcast runner: the end-to-end flow behind ``broadcast`` and ``send``.

Flow:
1. Pick the target identifiers (named list or explicit channel)
2. Resolve the sender identity
3. Check the token (auth.test)
4. Fetch the channel directory and resolve identifiers
5. Resolve @mentions in the message (failures are not fatal)
6. Dry run: simulate. Live: deliver and derive the exit code

Steps 1-4 may abort with a BroadcasterError before any channel is touched.
"""

from dataclasses import dataclass, field

import structlog

from broadcaster.core.errors import DirectoryFetchError, InputError, ListNotFoundError
from broadcaster.core.identity import IdentityOverrides, resolve_identity
from broadcaster.mentions.resolver import ResolutionSummary, format_summary, resolve_mentions
from broadcaster.output.base import BroadcastResult, DryRunResult
from broadcaster.output.dry_run import DryRunSimulator
from broadcaster.output.exit_codes import resolve_exit_code
from broadcaster.output.report import broadcast_lines, dry_run_lines
from broadcaster.output.router import DeliveryOrchestrator
from broadcaster.schemas.channel_config import ChannelConfiguration
from broadcaster.slack.client import SlackClient
from broadcaster.slack.directory import ChannelDirectory

DIRECT_LIST_NAME = "direct"


@dataclass
class BroadcastRequest:
    message: str
    list_name: str = DIRECT_LIST_NAME
    identifiers: list[str] | None = None  # overrides the named list when set
    dry_run: bool = False
    overrides: IdentityOverrides | None = None
    allow_default_identity: bool = False


@dataclass
class BroadcastOutcome:
    exit_code: int
    lines: list[str] = field(default_factory=list)
    broadcast_result: BroadcastResult | None = None
    dry_run_result: DryRunResult | None = None
    mention_summary: ResolutionSummary | None = None


class BroadcastRunner:
    def __init__(
        self,
        client: SlackClient,
        config: ChannelConfiguration | None = None,
        directory: ChannelDirectory | None = None,
        orchestrator: DeliveryOrchestrator | None = None,
        simulator: DryRunSimulator | None = None,
        logger=None,
    ):
        self._client = client
        self._config = config
        self._log = logger or structlog.get_logger().bind(component="runner")
        self._directory = directory or ChannelDirectory(client, logger=self._log)
        self._orchestrator = orchestrator or DeliveryOrchestrator(client, logger=self._log)
        self._simulator = simulator or DryRunSimulator(
            pacing_delay=self._orchestrator.pacing_delay, logger=self._log
        )

    def _target_identifiers(self, request: BroadcastRequest) -> list[str]:
        if request.identifiers is not None:
            return list(request.identifiers)
        channel_list = self._config.get_list(request.list_name) if self._config else None
        if channel_list is None:
            available = ", ".join(lst.name for lst in self._config.channel_lists) if self._config else ""
            hint = f" Available lists: {available}" if available else ""
            raise ListNotFoundError(f'Channel list "{request.list_name}" not found.{hint}')
        return list(channel_list.channels)

    def _apply_mentions(self, text: str, log) -> tuple[str, ResolutionSummary | None]:
        mapping = self._config.mentions if self._config else {}
        try:
            resolution = resolve_mentions(text, mapping)
        except Exception:
            # Never block a broadcast on mention handling; send the text as typed.
            log.warning("runner.mention_resolution_failed", exc_info=True)
            return text, None

        summary = resolution.summary
        if summary.had_placeholders:
            log.debug(
                "runner.mentions_resolved",
                replacements=summary.replacements,
                total=summary.total_replacements,
                unresolved=summary.unresolved,
            )
        return resolution.text, summary

    async def run(self, request: BroadcastRequest) -> BroadcastOutcome:
        log = self._log.bind(list_name=request.list_name, dry_run=request.dry_run)
        lines: list[str] = []

        identifiers = self._target_identifiers(request)

        identity_resolution = resolve_identity(
            self._config.sender_identity if self._config else None,
            request.overrides,
            allow_default=request.allow_default_identity,
            config_path=self._config.file_path if self._config else None,
        )
        lines.extend(f"⚠️ {warning}" for warning in identity_resolution.warnings)

        if not request.dry_run and not request.message.strip():
            raise InputError("Message cannot be empty")

        auth = await self._client.auth_test()
        log.info("runner.authenticated", bot_id=auth.bot_id, team_id=auth.team_id)

        snapshot = await self._directory.fetch_snapshot()
        channels, failures = self._directory.resolve_with_failures(identifiers, snapshot)
        for failure in failures:
            lines.append(f"⚠ Could not resolve {failure.identifier} ({failure.error})")
        log.info("runner.channels_resolved", resolved=len(channels), requested=len(identifiers))
        if not channels:
            raise DirectoryFetchError("No channels could be resolved from the list")

        text, summary = self._apply_mentions(request.message, log)
        summary_lines = format_summary(summary) if summary is not None and summary.had_placeholders else []

        if request.dry_run:
            dry_run = self._simulator.simulate(channels, text, request.list_name)
            lines.extend(dry_run_lines(dry_run))
            if summary_lines:
                lines.append("")
                lines.extend(summary_lines)
            return BroadcastOutcome(exit_code=0, lines=lines, dry_run_result=dry_run, mention_summary=summary)

        lines.append(f'Broadcasting to "{request.list_name}" ({len(channels)} channels)...')
        lines.append("")
        result = await self._orchestrator.deliver(
            channels, text, request.list_name, identity_resolution.identity
        )
        lines.extend(broadcast_lines(result))
        if summary_lines:
            lines.append("")
            lines.extend(summary_lines)

        return BroadcastOutcome(
            exit_code=resolve_exit_code(result),
            lines=lines,
            broadcast_result=result,
            mention_summary=summary,
        )
