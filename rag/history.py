# rag/history.py - Conversation history trimming
"""
Fit conversation history into a token budget, newest turns first.

An assistant turn directly followed by a user turn (a clarifying question
and its short answer) is budgeted as one unit. The kept history is always
a contiguous suffix of the input: once a unit does not fit, older turns
are dropped.
"""

from dataclasses import replace
from typing import List, Sequence

from config import HISTORY_PARTIAL_THRESHOLD, MAX_HISTORY_TOKENS, MIN_CHUNK_TOKENS
from rag.models import ChatTurn
from rag.tokens import estimate_tokens, truncate_to_tokens
from utils.logger import get_budget_logger

logger = get_budget_logger()


def history_tokens(turns: Sequence[ChatTurn]) -> int:
    return sum(estimate_tokens(turn.content) for turn in turns)


def _units_newest_first(history: Sequence[ChatTurn]) -> List[List[ChatTurn]]:
    """Group turns into budgeting units, each unit in chronological order."""
    units = []
    i = len(history) - 1
    while i >= 0:
        turn = history[i]
        if turn.role == "user" and i > 0 and history[i - 1].role == "assistant":
            units.append([history[i - 1], turn])
            i -= 2
        else:
            units.append([turn])
            i -= 1
    return units


def _fit_partially(unit: List[ChatTurn], remaining: int) -> List[ChatTurn]:
    """Truncate a unit that does not fit whole; empty if nothing usable fits."""
    if len(unit) == 2:
        assistant, user = unit
        user_tokens = estimate_tokens(user.content)
        if user_tokens <= remaining and remaining - user_tokens >= MIN_CHUNK_TOKENS:
            content = truncate_to_tokens(assistant.content, remaining - user_tokens)
            return [replace(assistant, content=content), user]
        # Keep the newer half only; keeping the assistant alone would leave a gap
        unit = [user]

    turn = unit[0]
    if estimate_tokens(turn.content) <= remaining or remaining >= MIN_CHUNK_TOKENS:
        content = truncate_to_tokens(turn.content, remaining)
        if content:
            return [replace(turn, content=content)]
    return []


def trim_history(history: Sequence[ChatTurn], max_tokens: int = MAX_HISTORY_TOKENS) -> List[ChatTurn]:
    """Return the longest trailing part of history that fits max_tokens, oldest first."""
    total = 0
    kept: List[List[ChatTurn]] = []

    for unit in _units_newest_first(history):
        unit_tokens = history_tokens(unit)
        if total + unit_tokens <= max_tokens:
            kept.append(unit)
            total += unit_tokens
            continue

        if total < max_tokens * HISTORY_PARTIAL_THRESHOLD:
            partial = _fit_partially(unit, max_tokens - total)
            if partial:
                kept.append(partial)
                total += history_tokens(partial)
        break

    trimmed = [turn for unit in reversed(kept) for turn in unit]
    if len(trimmed) < len(history):
        logger.debug(f"History trimmed to {len(trimmed)}/{len(history)} messages ({total}/{max_tokens} tokens)")
    return trimmed
