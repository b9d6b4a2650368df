"""
Channel directory: map configured identifiers onto real channels.

The snapshot is the full conversations.list listing, fetched fresh for every
run. It is a point-in-time view; channels archived or renamed after the
fetch are not noticed until the next run.
"""

import re
from dataclasses import dataclass

import httpx
import structlog

from broadcaster.core.errors import DirectoryFetchError, SlackApiError
from broadcaster.slack.client import ResolvedChannel, SlackClient

CHANNEL_ID_RE = re.compile(r"^C[A-Z0-9]{10}$", re.IGNORECASE)
MAX_PAGES = 1000


@dataclass(frozen=True)
class ResolutionFailure:
    identifier: str
    error: str  # "channel_not_found" | "invalid_format"


class ChannelDirectory:
    def __init__(self, client: SlackClient | None = None, logger=None):
        self._client = client
        self._log = logger or structlog.get_logger().bind(component="directory")

    async def fetch_snapshot(self) -> list[ResolvedChannel]:
        """Walk every conversations.list page and return all channels."""
        if self._client is None:
            raise DirectoryFetchError("No Slack client configured for the channel directory")

        channels: list[ResolvedChannel] = []
        cursor = None
        for page_no in range(1, MAX_PAGES + 1):
            try:
                page = await self._client.list_channels(cursor=cursor)
            except (SlackApiError, httpx.HTTPError) as e:
                self._log.error("directory.fetch_failed", page=page_no, error=str(e))
                raise DirectoryFetchError(f"Failed to list channels: {e}") from e

            channels.extend(page.channels)
            self._log.debug("directory.page_fetched", page=page_no, count=len(page.channels))
            if not page.next_cursor:
                break
            cursor = page.next_cursor
        else:
            raise DirectoryFetchError(f"Channel listing did not finish after {MAX_PAGES} pages")

        self._log.info("directory.snapshot", channels=len(channels))
        return channels

    def resolve_with_failures(
        self,
        identifiers: list[str],
        snapshot: list[ResolvedChannel],
    ) -> tuple[list[ResolvedChannel], list[ResolutionFailure]]:
        by_id = {ch.id: ch for ch in snapshot}
        by_name = {ch.name: ch for ch in snapshot}

        resolved: list[ResolvedChannel] = []
        failures: list[ResolutionFailure] = []
        seen: set[str] = set()

        for identifier in identifiers:
            ident = identifier.strip()
            if ident.startswith("#"):
                channel = by_name.get(ident[1:])
            elif CHANNEL_ID_RE.match(ident):
                channel = by_id.get(ident.upper())
            else:
                self._log.warning("directory.invalid_identifier", identifier=identifier)
                failures.append(ResolutionFailure(identifier, "invalid_format"))
                continue

            if channel is None:
                self._log.warning("directory.unresolved_identifier", identifier=identifier)
                failures.append(ResolutionFailure(identifier, "channel_not_found"))
                continue

            if channel.id in seen:
                self._log.debug("directory.duplicate", identifier=identifier, channel_id=channel.id)
                continue
            seen.add(channel.id)
            resolved.append(channel)

        return resolved, failures

    def resolve(self, identifiers: list[str], snapshot: list[ResolvedChannel]) -> list[ResolvedChannel]:
        """Resolve identifiers in order, dropping unknown ones and duplicates."""
        resolved, _ = self.resolve_with_failures(identifiers, snapshot)
        return resolved
