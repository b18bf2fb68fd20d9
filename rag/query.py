# rag/query.py - Contextual query expansion for retrieval
from typing import Sequence

from config import CONTEXTUAL_QUERY_MAX_WORDS, CONTEXTUAL_TURN_MAX_CHARS
from rag.models import ChatTurn


def build_contextual_query(
    query: str,
    history: Sequence[ChatTurn],
    max_words: int = CONTEXTUAL_QUERY_MAX_WORDS,
    max_turn_chars: int = CONTEXTUAL_TURN_MAX_CHARS,
) -> str:
    """
    Expand a short follow-up query with recent conversation text.

    Only used for the retrieval embedding. Long queries and first turns are
    returned unchanged; otherwise every short history turn is appended after
    the query in chronological order.
    """
    if len(query.split()) > max_words or not history:
        return query

    context = [
        turn.content.strip()
        for turn in history
        if turn.content.strip() and len(turn.content) <= max_turn_chars
    ]
    if not context:
        return query

    return " ".join([query, *context])
