from pathlib import Path

from broadcaster.core.errors import InputError

MAX_FILE_MESSAGE_LENGTH = 2000


def load_message_file(path: str | Path) -> str:
    """Read a message file as UTF-8, dropping trailing whitespace."""
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise InputError(f"Message file not found: {path}") from e
    except PermissionError as e:
        raise InputError(f"Cannot read message file (permission denied): {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read message file: {path} ({e})") from e

    content = raw.rstrip()
    if not content:
        raise InputError("Message cannot be empty after trimming trailing whitespace")
    if len(content) > MAX_FILE_MESSAGE_LENGTH:
        raise InputError(f"Message from file cannot exceed {MAX_FILE_MESSAGE_LENGTH} characters")
    return content


def read_message(message: str | None, message_file: str | Path | None) -> str:
    """Return the message text from exactly one of inline text or a file."""
    if message is not None and message_file is not None:
        raise InputError("Use either --message or --message-file, not both")
    if message_file is not None:
        return load_message_file(message_file)
    if message is None:
        raise InputError("A message is required (--message or --message-file)")
    return message
