# tests/test_history.py - History trimming
from rag.history import history_tokens, trim_history
from rag.models import ChatTurn
from rag.tokens import estimate_tokens


def turn(role, tokens, fill="a"):
    """A turn whose content estimates to exactly `tokens` tokens."""
    return ChatTurn(role, fill * (tokens * 4))


def assert_contiguous_suffix(trimmed, history):
    """All kept turns but the oldest match the tail of history; the oldest may be truncated."""
    assert len(trimmed) <= len(history)
    if not trimmed:
        return
    tail = history[len(history) - len(trimmed):]
    assert trimmed[1:] == tail[1:]
    assert trimmed[0].role == tail[0].role
    assert tail[0].content.startswith(trimmed[0].content.rstrip("."))


class TestTrimHistory:
    def test_empty_history(self):
        assert trim_history([], 1000) == []

    def test_everything_fits(self):
        history = [turn("user", 10), turn("assistant", 20), turn("user", 5)]
        assert trim_history(history, 1000) == history

    def test_keeps_newest_and_drops_oldest(self):
        history = [turn("user", 400), turn("assistant", 400), turn("user", 400), turn("assistant", 400)]
        trimmed = trim_history(history, 1000)
        assert trimmed[-1] == history[-1]
        assert_contiguous_suffix(trimmed, history)
        assert history_tokens(trimmed) <= 1000

    def test_input_is_not_mutated(self):
        history = [turn("user", 600), turn("assistant", 600), turn("user", 600)]
        snapshot = list(history)
        trim_history(history, 700)
        assert history == snapshot

    def test_output_is_oldest_first(self):
        history = [ChatTurn("user", "first"), ChatTurn("assistant", "second"), ChatTurn("user", "third")]
        assert [t.content for t in trim_history(history, 1000)] == ["first", "second", "third"]

    def test_clarifying_question_and_answer_kept_together(self):
        history = [
            turn("user", 300),
            ChatTurn("assistant", "today or the weekend?"),
            ChatTurn("user", "today"),
        ]
        trimmed = trim_history(history, 50)
        assert trimmed == history[1:]

    def test_pair_fits_by_truncating_assistant(self):
        assistant = turn("assistant", 200, fill="b")
        user = turn("user", 10, fill="u")
        trimmed = trim_history([assistant, user], 100)
        assert [t.role for t in trimmed] == ["assistant", "user"]
        assert trimmed[1] == user
        assert estimate_tokens(trimmed[0].content) <= 90
        assert history_tokens(trimmed) <= 100

    def test_forced_split_keeps_user_half(self):
        assistant = turn("assistant", 200, fill="b")
        user = turn("user", 100, fill="u")
        trimmed = trim_history([assistant, user], 120)
        assert trimmed == [user]

    def test_never_keeps_assistant_without_fitting_user(self):
        for budget in range(1, 400, 7):
            history = [turn("assistant", 150, fill="b"), turn("user", 60, fill="u")]
            trimmed = trim_history(history, budget)
            if trimmed and trimmed[0].role == "assistant":
                assert trimmed[-1] == history[-1]

    def test_oversized_newest_turn_is_truncated(self):
        trimmed = trim_history([turn("user", 50), turn("user", 2000)], 1000)
        assert len(trimmed) == 1
        assert estimate_tokens(trimmed[0].content) <= 1000

    def test_newest_turn_kept_when_it_fits_alone(self):
        for budget in (10, 50, 99, 100):
            history = [turn("user", 30), turn("assistant", 300), turn("user", 10)]
            trimmed = trim_history(history, budget)
            assert trimmed[-1] == history[-1]

    def test_no_partial_inclusion_above_ninety_percent(self):
        history = [turn("user", 100), turn("user", 925)]
        assert trim_history(history, 1000) == [history[1]]

    def test_partial_inclusion_below_ninety_percent(self):
        history = [turn("user", 600), turn("user", 500)]
        trimmed = trim_history(history, 1000)
        assert len(trimmed) == 2
        assert trimmed[1] == history[1]
        assert history_tokens(trimmed) <= 1000

    def test_gaps_are_never_introduced(self):
        history = [
            turn("user", 50), turn("assistant", 500), turn("user", 20),
            turn("assistant", 40), turn("user", 700), turn("assistant", 30),
        ]
        for budget in (25, 80, 300, 760, 900, 1400):
            trimmed = trim_history(history, budget)
            assert_contiguous_suffix(trimmed, history)
            assert history_tokens(trimmed) <= budget
