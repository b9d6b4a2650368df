from concurrent.futures import ThreadPoolExecutor

import pytest

from broadcaster.core.errors import MentionMappingError
from broadcaster.mentions.resolver import (
    MentionEntry,
    MentionType,
    ResolutionSummary,
    format_summary,
    normalize_mapping,
    resolve_mentions,
)


class TestResolveMentions:
    def test_text_without_at_is_unchanged(self):
        result = resolve_mentions("Deploy finished", {"alice": {"id": "U1"}})
        assert result.text == "Deploy finished"
        assert result.summary == ResolutionSummary()
        assert result.summary.had_placeholders is False

    def test_here_needs_no_mapping(self):
        result = resolve_mentions("@here and @{here}", {})
        assert result.text == "<!here> and <!here>"
        assert result.summary.replacements == {"here": 2}
        assert result.summary.total_replacements == 2

    def test_here_ignores_mapping_entry(self):
        result = resolve_mentions("@here ", {"here": {"id": "U999"}})
        assert result.text == "<!here> "

    def test_punctuation_after_name_stays_literal(self):
        result = resolve_mentions("Hello @name, world", {"name": {"id": "U1"}})
        assert result.text == "Hello @name, world"
        assert result.summary.total_replacements == 0
        assert result.summary.had_placeholders is True
        assert result.summary.unresolved == ["@name,"]

    def test_names_with_punctuation_resolve(self):
        mapping = {"o'brien": "U1", "dev/ops": {"id": "S2", "type": "team"}}
        result = resolve_mentions("ping @o'brien and @dev/ops now", mapping)
        assert result.text == "ping <@U1> and <!subteam^S2> now"
        assert result.summary.replacements == {"dev/ops": 1, "o'brien": 1}

    def test_escaped_backtick_keeps_mentions_live(self):
        result = resolve_mentions("use \\` then @alice please", {"alice": "U1"})
        assert result.text == "use \\` then <@U1> please"

    def test_name_at_end_is_replaced(self):
        result = resolve_mentions("Hello @name", {"name": {"id": "U1"}})
        assert result.text == "Hello <@U1>"
        assert result.summary.total_replacements == 1

    def test_user_and_team(self):
        mapping = {"alice": {"id": "U111AAA"}, "team": {"id": "S999TEAM", "type": "team"}}
        result = resolve_mentions("Ping @{alice} and @team ", mapping)
        assert "<@U111AAA>" in result.text
        assert "<!subteam^S999TEAM>" in result.text
        assert result.summary.replacements == {"alice": 1, "team": 1}
        assert result.summary.total_replacements == 2
        assert result.summary.unresolved == []

    def test_replacements_sorted_by_name(self):
        mapping = {"zebra": "U3", "apple": "U1", "mango": "U2"}
        result = resolve_mentions("@zebra @apple @mango", mapping)
        assert list(result.summary.replacements) == ["apple", "mango", "zebra"]

    def test_bare_string_entry_is_a_user(self):
        result = resolve_mentions("@bob ", {"bob": "U222"})
        assert result.text == "<@U222> "

    def test_unknown_type_falls_back_to_user(self):
        result = resolve_mentions("@ops ", {"ops": {"id": "U333", "type": "channel"}})
        assert result.text == "<@U333> "

    def test_lookup_is_case_sensitive(self):
        result = resolve_mentions("@Alice ", {"alice": "U1"})
        assert result.text == "@Alice "
        assert result.summary.unresolved == ["@Alice"]

    def test_unresolved_deduplicated_in_order(self):
        result = resolve_mentions("@zed @{amy} @zed @amy", {})
        assert result.summary.unresolved == ["@zed", "@{amy}", "@amy"]
        assert result.summary.had_placeholders is True
        assert result.text == "@zed @{amy} @zed @amy"

    def test_code_spans_left_alone(self):
        result = resolve_mentions("run `@alice` then ping @alice", {"alice": "U1"})
        assert result.text == "run `@alice` then ping <@U1>"

    def test_japanese_names(self):
        mapping = {"佐藤": "U123JP", "開発": "U456DEV"}
        result = resolve_mentions("プロジェクト @{佐藤} さん、@開発 チームの成果を共有します。", mapping)
        assert result.text == "プロジェクト <@U123JP> さん、<@U456DEV> チームの成果を共有します。"
        assert result.summary.total_replacements == 2

    def test_resolved_text_round_trips(self):
        first = resolve_mentions("@here @alice ", {"alice": "U1"})
        second = resolve_mentions(first.text, {"alice": "U1"})
        assert second.text == first.text
        assert second.summary.had_placeholders is False

    def test_entry_without_id_stays_unresolved(self):
        result = resolve_mentions("@ghost ", {"ghost": {"type": "team"}})
        assert result.text == "@ghost "
        assert result.summary.unresolved == ["@ghost"]

    def test_non_mapping_raises(self):
        with pytest.raises(MentionMappingError):
            resolve_mentions("@alice ", ["alice"])

    def test_mapping_is_not_modified(self):
        mapping = {"alice": "U1", "team": {"id": "S1", "type": "team"}}
        snapshot = {"alice": "U1", "team": {"id": "S1", "type": "team"}}
        resolve_mentions("@alice @team ", mapping)
        assert mapping == snapshot

    def test_concurrent_calls_share_one_mapping(self):
        mapping = {f"user{i}": f"U{i:04d}" for i in range(50)}
        texts = [f"hi @user{i % 50} and @{{user{(i + 1) % 50}}}" for i in range(200)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda t: resolve_mentions(t, mapping), texts))

        for i, result in enumerate(results):
            assert result.text == f"hi <@U{i % 50:04d}> and <@U{(i + 1) % 50:04d}>"
            assert result.summary.total_replacements == 2


class TestNormalizeMapping:
    def test_shapes(self):
        normalized = normalize_mapping({
            "a": "U1",
            "b": {"id": "S1", "type": "team"},
            "c": {"id": " U2 "},
            "d": {"id": ""},
            "e": None,
        })
        assert normalized == {
            "a": MentionEntry("U1", MentionType.USER),
            "b": MentionEntry("S1", MentionType.TEAM),
            "c": MentionEntry("U2", MentionType.USER),
        }

    def test_none_is_empty(self):
        assert normalize_mapping(None) == {}


class TestFormatSummary:
    def test_no_placeholders(self):
        assert format_summary(ResolutionSummary()) == ["Placeholders: none"]

    def test_replacements_and_unresolved(self):
        summary = ResolutionSummary(
            replacements={"team": 1, "alice": 2},
            unresolved=["@bob", "@{carol}"],
            total_replacements=3,
            had_placeholders=True,
        )
        assert format_summary(summary) == [
            "Replacements: alice=2, team=1 (total=3)",
            "Unresolved: @bob, @{carol}",
        ]

    def test_only_unresolved(self):
        summary = resolve_mentions("@nobody ", {}).summary
        assert format_summary(summary) == ["Replacements: (total=0)", "Unresolved: @nobody"]

    def test_nothing_unresolved(self):
        summary = resolve_mentions("@here ", {}).summary
        assert format_summary(summary) == ["Replacements: here=1 (total=1)", "Unresolved: none"]
