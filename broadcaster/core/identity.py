"""
Sender identity: the display name and icon a broadcast is posted under.

The config file's ``sender_identity`` is merged with command line overrides.
An identity is only used when complete (a name plus an emoji or URL icon);
otherwise the run needs explicit permission to post as the default app
identity.
"""

from dataclasses import dataclass, field

from broadcaster.core.errors import SenderIdentityError
from broadcaster.schemas.channel_config import SenderIdentityConfig
from broadcaster.slack.client import SenderIdentity


@dataclass
class IdentityOverrides:
    name: str | None = None
    icon_emoji: str | None = None
    icon_url: str | None = None

    @property
    def provided(self) -> bool:
        return any(v is not None for v in (self.name, self.icon_emoji, self.icon_url))


@dataclass
class IdentityResolution:
    identity: SenderIdentity | None = None
    warnings: list[str] = field(default_factory=list)


def _clean(value: str | None) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def merge_identity(
    config: SenderIdentityConfig | None,
    overrides: IdentityOverrides | None = None,
) -> SenderIdentity | None:
    """Merge config and overrides; None when neither names a name or icon."""
    merged = {
        "name": _clean(config.name) if config else None,
        "icon_emoji": _clean(config.icon_emoji) if config else None,
        "icon_url": _clean(config.icon_url) if config else None,
    }
    source = "config"

    if overrides is not None:
        name = _clean(overrides.name)
        emoji = _clean(overrides.icon_emoji)
        url = _clean(overrides.icon_url)
        if name:
            merged["name"] = name
        # One icon kind replaces the other.
        if emoji:
            merged["icon_emoji"], merged["icon_url"] = emoji, None
        if url:
            merged["icon_url"], merged["icon_emoji"] = url, None
        if name or emoji or url:
            source = "cli"

    if not any(merged.values()):
        return None
    return SenderIdentity(source=source, **merged)


def resolve_identity(
    config: SenderIdentityConfig | None,
    overrides: IdentityOverrides | None = None,
    allow_default: bool = False,
    config_path: str | None = None,
) -> IdentityResolution:
    """Pick the identity for a run.

    Raises:
        SenderIdentityError: no complete identity and the default identity
            is not allowed by flag or config.
    """
    resolution = IdentityResolution()
    identity = merge_identity(config, overrides)
    where = config_path or "the configuration"

    if identity is not None and not identity.is_complete:
        label = "CLI overrides" if identity.source == "cli" else "Sender identity"
        resolution.warnings.append(f"{label} is missing a name or icon. Using default Slack identity.")
        identity = None

    if identity is None and overrides is not None and overrides.provided:
        resolution.warnings.append(
            "Sender identity overrides require --sender-name and either "
            "--sender-icon-emoji or --sender-icon-url."
        )

    if identity is None:
        allowed_by_config = bool(config and config.allow_default_identity)
        if not (allow_default or allowed_by_config):
            raise SenderIdentityError(
                f"Sender identity not configured in {where}. "
                "Use --allow-default-identity to proceed with the default Slack identity."
            )
        if allowed_by_config and not allow_default:
            resolution.warnings.append(
                f"Sender identity is not configured, but {where} allows using the default Slack identity."
            )

    resolution.identity = identity
    return resolution
