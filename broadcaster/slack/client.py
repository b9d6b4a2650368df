"""
Slack Web API client.

Handles:
- auth.test: pre-flight token check
- conversations.list: one page of the channel directory
- chat.postMessage: send text, optionally with a custom sender identity

Slack answers most failures with HTTP 200 and ``{"ok": false, "error": ...}``;
those come back as values. Transport problems (timeouts, refused
connections) propagate as ``httpx.TransportError``, and non-JSON error pages
(e.g. a gateway 502) as ``httpx.HTTPStatusError``, for the caller to classify.
"""

from dataclasses import dataclass, field

import httpx
import structlog

from broadcaster.config import settings
from broadcaster.core.errors import AuthenticationError, SlackApiError

CHANNEL_TYPES = "public_channel,private_channel"


@dataclass(frozen=True)
class ResolvedChannel:
    id: str
    name: str
    is_private: bool = False
    is_member: bool = False
    is_archived: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "ResolvedChannel":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            is_private=bool(data.get("is_private", False)),
            is_member=bool(data.get("is_member", False)),
            is_archived=bool(data.get("is_archived", False)),
        )


@dataclass
class SenderIdentity:
    name: str | None = None
    icon_emoji: str | None = None
    icon_url: str | None = None
    source: str = "config"  # "config" | "cli"

    @property
    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.icon_emoji or self.icon_url)


@dataclass
class PostMessageResult:
    ok: bool
    message_id: str | None = None
    error_code: str | None = None
    detail: dict = field(default_factory=dict)
    retry_after: int | None = None


@dataclass
class ChannelPage:
    channels: list[ResolvedChannel]
    next_cursor: str | None = None


@dataclass
class AuthInfo:
    bot_id: str | None = None
    team_id: str | None = None
    user: str | None = None


class SlackClient:
    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger=None,
    ):
        self._token = token if token is not None else settings.SLACK_BOT_TOKEN
        self._base_url = (base_url or settings.SLACK_API_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.SLACK_REQUEST_TIMEOUT
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._log = logger or structlog.get_logger().bind(component="slack")

    async def initialize(self):
        """Create the httpx client."""
        if not self._token:
            raise AuthenticationError("SLACK_BOT_TOKEN is not set (use --token or the environment)")
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._token}"},
        )
        self._log.debug("slack.initialized", base_url=self._base_url)

    async def shutdown(self):
        """Close httpx client."""
        if self._http:
            await self._http.aclose()
            self._http = None
        self._log.debug("slack.shutdown")

    async def __aenter__(self) -> "SlackClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info):
        await self.shutdown()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _call(self, method: str, http_method: str = "POST", **kwargs) -> tuple[dict, httpx.Response]:
        """Call a Web API method and return (body, response)."""
        if self._http is None:
            raise RuntimeError("SlackClient used before initialize()")
        resp = await self._http.request(http_method, f"/{method}", **kwargs)
        self._log.debug("slack.request", method=method, status=resp.status_code)

        if resp.status_code == 429:
            # Rate limited responses may not carry a JSON body.
            return {"ok": False, "error": "ratelimited"}, resp

        try:
            data = resp.json()
        except ValueError:
            resp.raise_for_status()
            return {"ok": False, "error": "invalid_response"}, resp
        return data, resp

    # ------------------------------------------------------------------
    # API methods
    # ------------------------------------------------------------------

    async def auth_test(self) -> AuthInfo:
        data, _ = await self._call("auth.test")
        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            self._log.error("slack.auth_failed", error=error)
            raise AuthenticationError(f"Authentication failed: {error}")
        return AuthInfo(
            bot_id=data.get("bot_id"),
            team_id=data.get("team_id"),
            user=data.get("user"),
        )

    async def list_channels(self, cursor: str | None = None, limit: int | None = None) -> ChannelPage:
        """Fetch one page of conversations visible to the token.

        Archived channels are included so callers can report on them.
        """
        params = {
            "types": CHANNEL_TYPES,
            "exclude_archived": "false",
            "limit": limit or settings.CHANNEL_LIST_PAGE_SIZE,
        }
        if cursor:
            params["cursor"] = cursor

        data, _ = await self._call("conversations.list", http_method="GET", params=params)
        if not data.get("ok"):
            raise SlackApiError("conversations.list", data.get("error", "unknown_error"))

        channels = [ResolvedChannel.from_api(c) for c in data.get("channels", [])]
        next_cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
        return ChannelPage(channels=channels, next_cursor=next_cursor)

    async def post_message(
        self,
        channel_id: str,
        text: str,
        identity: SenderIdentity | None = None,
    ) -> PostMessageResult:
        payload = {
            "channel": channel_id,
            "text": text,
            "unfurl_links": False,
            "unfurl_media": False,
        }
        if identity is not None:
            if identity.name:
                payload["username"] = identity.name
            if identity.icon_emoji:
                payload["icon_emoji"] = identity.icon_emoji
            elif identity.icon_url:
                payload["icon_url"] = identity.icon_url

        data, resp = await self._call("chat.postMessage", json=payload)
        if data.get("ok"):
            return PostMessageResult(ok=True, message_id=data.get("ts"))

        retry_after = None
        if resp.status_code == 429:
            try:
                retry_after = int(resp.headers.get("Retry-After", ""))
            except ValueError:
                retry_after = None

        return PostMessageResult(
            ok=False,
            error_code=data.get("error", "unknown_error"),
            detail=data.get("response_metadata") or {},
            retry_after=retry_after,
        )
