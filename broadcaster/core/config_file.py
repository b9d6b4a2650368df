"""
Load the channel configuration YAML.

The file is read once per command; nothing is cached between runs.
"""

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from broadcaster.core.errors import ConfigurationError
from broadcaster.schemas.channel_config import ChannelConfiguration

logger = structlog.get_logger()


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


def load_channel_config(path: str | Path) -> ChannelConfiguration:
    """Read and validate a channel configuration file.

    Raises:
        ConfigurationError: file missing, unreadable, not YAML, or invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    if config_path.is_dir():
        raise ConfigurationError(f"Configuration path is a directory, not a file: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file must contain a YAML mapping: {config_path}")
    if "channel_lists" not in raw:
        raise ConfigurationError(f'Configuration file must contain a "channel_lists" section: {config_path}')

    try:
        config = ChannelConfiguration.model_validate({**raw, "file_path": str(config_path)})
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {_format_validation_error(e)}"
        ) from e

    logger.debug(
        "config.loaded",
        path=str(config_path),
        lists=len(config.channel_lists),
        mentions=len(config.mentions),
    )
    return config
