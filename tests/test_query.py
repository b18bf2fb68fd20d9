# tests/test_query.py - Contextual query expansion
from rag.models import ChatTurn
from rag.query import build_contextual_query


class TestBuildContextualQuery:
    def test_short_follow_up_gets_history_appended(self):
        history = [ChatTurn("assistant", "today or the weekend?")]
        assert build_contextual_query("today", history) == "today today or the weekend?"

    def test_long_query_is_unchanged(self):
        history = [ChatTurn("assistant", "today or the weekend?")]
        query = "what restaurants are open on sunday"
        assert build_contextual_query(query, history) == query

    def test_empty_history_is_unchanged(self):
        assert build_contextual_query("a hike", []) == "a hike"

    def test_whole_history_in_chronological_order(self):
        history = [
            ChatTurn("user", "What can I do in Vollen?"),
            ChatTurn("assistant", "Food, a hike or an event?"),
            ChatTurn("user", "outdoors"),
            ChatTurn("assistant", "today or the weekend?"),
        ]
        result = build_contextual_query("today", history)
        assert result == (
            "today What can I do in Vollen? Food, a hike or an event? outdoors today or the weekend?"
        )

    def test_long_turns_are_excluded(self):
        history = [
            ChatTurn("assistant", "Here is a long overview. " * 20),
            ChatTurn("assistant", "Which one?"),
        ]
        assert build_contextual_query("the museum", history) == "the museum Which one?"

    def test_query_always_first(self):
        history = [ChatTurn("user", "boats"), ChatTurn("assistant", "rent or tour?")]
        assert build_contextual_query("rent", history).startswith("rent ")

    def test_only_long_or_blank_turns_returns_query(self):
        history = [ChatTurn("assistant", "x" * 500), ChatTurn("user", "   ")]
        assert build_contextual_query("yes", history) == "yes"

    def test_exactly_threshold_words_is_expanded(self):
        history = [ChatTurn("assistant", "Where?")]
        assert build_contextual_query("near the harbour", history) == "near the harbour Where?"
