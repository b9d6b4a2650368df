"""
Mention resolution: replace placeholders with Slack mention syntax.

- ``@here`` / ``@{here}``    -> ``<!here>`` (mapping not consulted)
- user entry               -> ``<@ID>``
- team entry               -> ``<!subteam^ID>``
- unmapped placeholder     -> left as typed, reported in ``unresolved``
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from broadcaster.core.errors import MentionMappingError
from broadcaster.mentions.tokenizer import extract_tokens

HERE = "here"


class MentionType(str, Enum):
    USER = "user"
    TEAM = "team"


@dataclass(frozen=True)
class MentionEntry:
    id: str
    type: MentionType = MentionType.USER

    def render(self) -> str:
        if self.type is MentionType.TEAM:
            return f"<!subteam^{self.id}>"
        return f"<@{self.id}>"


@dataclass
class ResolutionSummary:
    replacements: dict[str, int] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)
    total_replacements: int = 0
    had_placeholders: bool = False


@dataclass
class MentionResolution:
    text: str
    summary: ResolutionSummary


def normalize_entry(value) -> MentionEntry | None:
    """Coerce a bare id or an ``{id, type}`` object into a MentionEntry.

    Returns None when the value carries no usable id.
    """
    if isinstance(value, MentionEntry):
        return value
    if isinstance(value, str):
        value = value.strip()
        return MentionEntry(id=value) if value else None
    if isinstance(value, Mapping):
        entry_id = value.get("id")
        if not isinstance(entry_id, str) or not entry_id.strip():
            return None
        raw_type = value.get("type")
        mention_type = MentionType.TEAM if raw_type == MentionType.TEAM.value else MentionType.USER
        return MentionEntry(id=entry_id.strip(), type=mention_type)
    return None


def normalize_mapping(mapping) -> dict[str, MentionEntry]:
    if mapping is None:
        return {}
    if not isinstance(mapping, Mapping):
        raise MentionMappingError(
            f"Mention mapping must be a mapping, got {type(mapping).__name__}"
        )
    normalized = {}
    for name, value in mapping.items():
        entry = normalize_entry(value)
        if entry is not None:
            normalized[name] = entry
    return normalized


def resolve_mentions(text: str, mapping) -> MentionResolution:
    """Substitute placeholders in ``text`` using ``mapping``.

    ``mapping`` is read, never modified, so one mapping can be shared by
    concurrent calls.

    Raises:
        MentionMappingError: mapping is not a mapping. Callers should keep
            the original text and carry on.
    """
    if "@" not in text:
        return MentionResolution(text=text, summary=ResolutionSummary())

    entries = normalize_mapping(mapping)
    tokens = extract_tokens(text)
    if not tokens:
        return MentionResolution(text=text, summary=ResolutionSummary())

    parts: list[str] = []
    counts: dict[str, int] = {}
    unresolved: list[str] = []
    last = 0

    for token in tokens:
        parts.append(text[last:token.start])

        if token.name == HERE:
            replacement = "<!here>"
        else:
            entry = entries.get(token.name)
            replacement = entry.render() if entry else None

        if replacement is None:
            parts.append(token.original)
            if token.original not in unresolved:
                unresolved.append(token.original)
        else:
            parts.append(replacement)
            counts[token.name] = counts.get(token.name, 0) + 1

        last = token.end

    parts.append(text[last:])

    summary = ResolutionSummary(
        replacements={name: counts[name] for name in sorted(counts)},
        unresolved=unresolved,
        total_replacements=sum(counts.values()),
        had_placeholders=True,
    )
    return MentionResolution(text="".join(parts), summary=summary)


def format_summary(summary: ResolutionSummary) -> list[str]:
    """Human-readable summary lines, stable across runs."""
    if not summary.had_placeholders:
        return ["Placeholders: none"]

    if summary.replacements:
        pairs = ", ".join(f"{name}={count}" for name, count in sorted(summary.replacements.items()))
        replacement_line = f"Replacements: {pairs} (total={summary.total_replacements})"
    else:
        replacement_line = "Replacements: (total=0)"

    if summary.unresolved:
        unresolved_line = f"Unresolved: {', '.join(summary.unresolved)}"
    else:
        unresolved_line = "Unresolved: none"

    return [replacement_line, unresolved_line]
