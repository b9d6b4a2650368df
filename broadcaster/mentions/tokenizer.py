"""
Placeholder tokenizer.

Finds ``@name`` and ``@{name}`` placeholders in message text in one forward
pass. The pass carries a ScanState that decides which parts of the text are
excluded from detection:

- fenced code: toggled by a line starting with ```; whole lines skipped
- inline code: toggled by an unescaped backtick outside fenced code
- block quote: a line whose first non-space character is ``>``

Line-level transitions live in ``enter_line`` and character-level ones in
``after_char`` so they can be exercised without any substitution logic.
"""

import unicodedata
from dataclasses import dataclass
from enum import Enum

FENCE = "```"
ESCAPE = "\\"
# "@" directly after "<" is already Slack syntax (<@U123>), not a placeholder.
RENDERED_PREFIX = "<"


class ScanState(Enum):
    NORMAL = "normal"
    FENCED_CODE = "fenced_code"
    INLINE_CODE = "inline_code"
    BLOCK_QUOTE = "block_quote"


class TokenForm(str, Enum):
    BRACE = "brace"
    NOBRACE = "nobrace"


@dataclass(frozen=True)
class PlaceholderToken:
    original: str
    name: str
    form: TokenForm
    start: int
    end: int  # exclusive


def enter_line(state: ScanState, line: str) -> tuple[ScanState, bool]:
    """Decide the state for a new line and whether the whole line is excluded.

    Returns:
        (state, excluded)
    """
    if line.startswith(FENCE):
        # A fence line toggles fenced mode and clears inline code.
        if state is ScanState.FENCED_CODE:
            return ScanState.NORMAL, True
        return ScanState.FENCED_CODE, True

    if state is ScanState.FENCED_CODE:
        return state, True

    if state is ScanState.BLOCK_QUOTE:
        state = ScanState.NORMAL

    if state is ScanState.NORMAL and line.lstrip(" ").startswith(">"):
        return ScanState.BLOCK_QUOTE, True

    return state, False


def after_char(state: ScanState, ch: str, prev: str = "") -> ScanState:
    """State after reading ``ch`` (preceded by ``prev``) inside a non-excluded line."""
    if ch != "`" or prev == ESCAPE:
        return state
    if state is ScanState.INLINE_CODE:
        return ScanState.NORMAL
    if state is ScanState.NORMAL:
        return ScanState.INLINE_CODE
    return state


def _is_cjk_punctuation(ch: str) -> bool:
    return ord(ch) >= 0x3000 and unicodedata.category(ch).startswith("P")


def _match_brace(line: str, i: int) -> tuple[str, int] | None:
    close = line.find("}", i + 2)
    if close == -1:
        return None
    name = line[i + 2 : close].strip()
    if not name:
        return None
    return name, close + 1


def _match_nobrace(line: str, i: int) -> tuple[str, int] | None:
    """Name is the run of non-whitespace after ``@``.

    CJK punctuation (、。「」 etc.) ends a name the way a space does, since
    those scripts do not put spaces between words.
    """
    j = i + 1
    while j < len(line) and not line[j].isspace() and not _is_cjk_punctuation(line[j]):
        j += 1
    if j == i + 1:
        return None
    return line[i + 1 : j], j


def extract_tokens(text: str) -> list[PlaceholderToken]:
    """Return placeholder tokens in text order."""
    if "@" not in text:
        return []

    tokens: list[PlaceholderToken] = []
    state = ScanState.NORMAL
    offset = 0

    for line in text.split("\n"):
        state, excluded = enter_line(state, line)
        if not excluded:
            i = 0
            while i < len(line):
                ch = line[i]
                prev = line[i - 1] if i else ""
                if state is ScanState.NORMAL and ch == "@" and prev != RENDERED_PREFIX:
                    if line.startswith("{", i + 1):
                        match = _match_brace(line, i)
                        form = TokenForm.BRACE
                    else:
                        match = _match_nobrace(line, i)
                        form = TokenForm.NOBRACE
                    if match:
                        name, end = match
                        tokens.append(PlaceholderToken(
                            original=line[i:end],
                            name=name,
                            form=form,
                            start=offset + i,
                            end=offset + end,
                        ))
                        i = end
                        continue
                state = after_char(state, ch, prev)
                i += 1
        offset += len(line) + 1

    return tokens
