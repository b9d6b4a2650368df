"""
Pre-flight errors. Each one aborts a run before any channel is attempted
and carries the process exit code the CLI reports for it.

Per-channel delivery failures are not exceptions; they are recorded on
ChannelDeliveryResult by the orchestrator.
"""


class BroadcasterError(Exception):
    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InputError(BroadcasterError):
    """Bad command line input or unreadable message file."""


class ListNotFoundError(BroadcasterError):
    """The requested channel list is not in the configuration."""


class SenderIdentityError(BroadcasterError):
    """No usable sender identity and the default identity is not allowed."""


class AuthenticationError(BroadcasterError):
    exit_code = 2


class SlackApiError(BroadcasterError):
    """Non-ok Slack response on a pre-flight call."""

    exit_code = 2

    def __init__(self, method: str, error_code: str):
        super().__init__(f"Slack API {method} failed: {error_code}")
        self.method = method
        self.error_code = error_code


class ConfigurationError(BroadcasterError):
    exit_code = 3


class DirectoryFetchError(BroadcasterError):
    exit_code = 4


class MentionMappingError(ValueError):
    """Mention mapping has the wrong shape. Callers treat this as non-fatal."""
