import re

from pydantic import BaseModel, Field, field_validator, model_validator

CHANNEL_NAME_RE = re.compile(r"^[a-z0-9_-]{1,80}$")
CHANNEL_ID_RE = re.compile(r"^C[A-Z0-9]{10}$", re.IGNORECASE)
MAX_CHANNELS_PER_LIST = 100


def normalize_channel_identifier(raw: str) -> str:
    """Validate a ``#name`` or ``C0123456789`` identifier; ids come back upper-cased."""
    ident = raw.strip()
    if not ident:
        raise ValueError("empty channel identifier")
    if ident.startswith("#"):
        if not CHANNEL_NAME_RE.match(ident[1:]):
            raise ValueError(
                f'invalid channel name "{ident}": use lowercase letters, numbers, '
                "hyphens and underscores (max 80 characters)"
            )
        return ident
    if CHANNEL_ID_RE.match(ident):
        return ident.upper()
    raise ValueError(
        f'invalid channel identifier "{ident}": expected #channel-name or an id like C1234567890'
    )


class NamedChannelList(BaseModel):
    name: str = Field(min_length=1)
    channels: list[str] = Field(min_length=1, max_length=MAX_CHANNELS_PER_LIST)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("channel list name cannot be blank")
        return v

    @field_validator("channels")
    @classmethod
    def _valid_channels(cls, v: list[str]) -> list[str]:
        normalized = [normalize_channel_identifier(c) for c in v]
        seen = set()
        for ident in normalized:
            if ident in seen:
                raise ValueError(f'duplicate channel "{ident}"')
            seen.add(ident)
        return normalized


class SenderIdentityConfig(BaseModel):
    name: str | None = None
    icon_emoji: str | None = None
    icon_url: str | None = None
    allow_default_identity: bool = False


class ChannelConfiguration(BaseModel):
    channel_lists: list[NamedChannelList] = Field(min_length=1)
    # Raw values: either a bare id string or {id, type}. Normalized by the
    # mention resolver, not here.
    mentions: dict[str, str | dict | None] = Field(default_factory=dict)
    sender_identity: SenderIdentityConfig | None = None
    file_path: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lists_from_mapping(cls, data):
        # Also accept ``channel_lists: {name: [channels]}``.
        if isinstance(data, dict) and isinstance(data.get("channel_lists"), dict):
            data = dict(data)
            data["channel_lists"] = [
                {"name": name, "channels": channels}
                for name, channels in data["channel_lists"].items()
            ]
        if isinstance(data, dict) and data.get("mentions") is None:
            data = dict(data)
            data["mentions"] = {}
        return data

    @field_validator("channel_lists")
    @classmethod
    def _unique_list_names(cls, v: list[NamedChannelList]) -> list[NamedChannelList]:
        seen = set()
        for channel_list in v:
            if channel_list.name in seen:
                raise ValueError(f'duplicate channel list name "{channel_list.name}"')
            seen.add(channel_list.name)
        return v

    def get_list(self, name: str) -> NamedChannelList | None:
        return next((lst for lst in self.channel_lists if lst.name == name), None)
