import asyncio
import logging
import sys
from pathlib import Path

import structlog
import typer

from broadcaster.config import settings
from broadcaster.core.broadcast import BroadcastOutcome, BroadcastRequest, BroadcastRunner
from broadcaster.core.config_file import load_channel_config
from broadcaster.core.errors import BroadcasterError
from broadcaster.core.identity import IdentityOverrides
from broadcaster.core.message import read_message
from broadcaster.output.report import channel_list_lines
from broadcaster.slack.client import SlackClient

UNEXPECTED_ERROR_EXIT_CODE = 99

logger = structlog.get_logger()

app = typer.Typer(
    help="Send a message to named lists of Slack channels, with @mention resolution.",
    no_args_is_help=True,
)


def configure_logging(verbose: bool = False):
    level_name = "DEBUG" if verbose else settings.LOG_LEVEL.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.dev.ConsoleRenderer()
                if settings.APP_ENV == "development"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stdout carries the report; logs go to stderr.
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def handle_cli_error(exc: Exception) -> int:
    """Report an error that ended a command and return its exit code."""
    if isinstance(exc, BroadcasterError):
        logger.error("cli.command_failed", error=str(exc), exit_code=exc.exit_code)
        typer.echo(f"Error: {exc}", err=True)
        return exc.exit_code
    logger.exception("cli.unexpected_error")
    typer.echo(f"Error: {exc}", err=True)
    return UNEXPECTED_ERROR_EXIT_CODE


def _echo_outcome(outcome: BroadcastOutcome):
    for line in outcome.lines:
        typer.echo(line)


async def _run_broadcast(config, request: BroadcastRequest, token: str | None) -> BroadcastOutcome:
    async with SlackClient(token=token) as client:
        runner = BroadcastRunner(client, config)
        return await runner.run(request)


def _execute(config, request: BroadcastRequest, token: str | None):
    try:
        outcome = asyncio.run(_run_broadcast(config, request, token))
    except Exception as e:
        raise typer.Exit(code=handle_cli_error(e))
    _echo_outcome(outcome)
    raise typer.Exit(code=outcome.exit_code)


@app.command("broadcast")
def broadcast(
    list_name: str = typer.Argument(..., help="Channel list name from the config file"),
    message: str | None = typer.Option(None, "--message", "-m", help="Message text"),
    message_file: Path | None = typer.Option(None, "--message-file", "-f", help="Read the message from a UTF-8 file"),
    config_path: Path = typer.Option(
        Path(settings.CHANNEL_CONFIG_PATH), "--config", "-c", help="Channel configuration YAML"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview outcomes without sending"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
    allow_default_identity: bool = typer.Option(
        False, "--allow-default-identity", help="Post as the default app identity if none is configured"
    ),
    sender_name: str | None = typer.Option(None, "--sender-name"),
    sender_icon_emoji: str | None = typer.Option(None, "--sender-icon-emoji"),
    sender_icon_url: str | None = typer.Option(None, "--sender-icon-url"),
    token: str | None = typer.Option(None, "--token", help="Slack bot token (overrides SLACK_BOT_TOKEN)"),
) -> None:
    """Broadcast a message to every channel in a named list."""
    configure_logging(verbose)
    try:
        text = read_message(message, message_file)
        config = load_channel_config(config_path)
    except BroadcasterError as e:
        raise typer.Exit(code=handle_cli_error(e))

    request = BroadcastRequest(
        message=text,
        list_name=list_name,
        dry_run=dry_run,
        overrides=IdentityOverrides(sender_name, sender_icon_emoji, sender_icon_url),
        allow_default_identity=allow_default_identity,
    )
    _execute(config, request, token)


@app.command("send")
def send(
    channel: str = typer.Argument(..., help="Channel id (C0123456789) or #channel-name"),
    message: str | None = typer.Option(None, "--message", "-m", help="Message text"),
    message_file: Path | None = typer.Option(None, "--message-file", "-f", help="Read the message from a UTF-8 file"),
    config_path: Path = typer.Option(
        Path(settings.CHANNEL_CONFIG_PATH), "--config", "-c", help="Config file for mentions and sender identity"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview the outcome without sending"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
    allow_default_identity: bool = typer.Option(False, "--allow-default-identity"),
    sender_name: str | None = typer.Option(None, "--sender-name"),
    sender_icon_emoji: str | None = typer.Option(None, "--sender-icon-emoji"),
    sender_icon_url: str | None = typer.Option(None, "--sender-icon-url"),
    token: str | None = typer.Option(None, "--token", help="Slack bot token (overrides SLACK_BOT_TOKEN)"),
) -> None:
    """Send a message to a single channel."""
    configure_logging(verbose)
    try:
        text = read_message(message, message_file)
        # The config file is optional here: without it there are no mentions
        # and the default identity is used.
        config = load_channel_config(config_path) if config_path.exists() else None
    except BroadcasterError as e:
        raise typer.Exit(code=handle_cli_error(e))

    request = BroadcastRequest(
        message=text,
        identifiers=[channel],
        dry_run=dry_run,
        overrides=IdentityOverrides(sender_name, sender_icon_emoji, sender_icon_url),
        allow_default_identity=allow_default_identity or config is None,
    )
    _execute(config, request, token)


@app.command("list-channels")
def list_channels(
    config_path: Path = typer.Option(
        Path(settings.CHANNEL_CONFIG_PATH), "--config", "-c", help="Channel configuration YAML"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show the channel lists defined in the config file."""
    configure_logging(verbose)
    try:
        config = load_channel_config(config_path)
    except BroadcasterError as e:
        raise typer.Exit(code=handle_cli_error(e))
    for line in channel_list_lines(config):
        typer.echo(line)


def main():
    app()


if __name__ == "__main__":
    main()
