# rag/context.py - Token budgeting and context assembly
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from config import CONTEXT_SAFETY_MARGIN, MAX_CONTEXT_TOKENS, MIN_CHUNK_TOKENS
from rag.models import RetrievalMatch, SelectedContext
from rag.prompt import build_user_content
from rag.tokens import estimate_tokens, truncate_to_tokens
from utils.logger import get_budget_logger

logger = get_budget_logger()

MATCH_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class TokenBudget:
    """Named reservations against a fixed ceiling."""

    ceiling: int
    system_prompt: int = 0
    query: int = 0
    history: int = 0
    prefix: int = 0

    @property
    def reserved(self) -> int:
        return self.system_prompt + self.query + self.history + self.prefix

    @property
    def available(self) -> int:
        return self.ceiling - self.reserved

    @property
    def safe_available(self) -> int:
        """Available tokens minus the safety margin; never negative."""
        return max(0, math.floor(self.available * (1 - CONTEXT_SAFETY_MARGIN)))


def format_match(index: int, content: str) -> str:
    return f"[{index}] {content}"


def assemble_context(
    matches: Sequence[RetrievalMatch],
    system_prompt_tokens: int,
    query_tokens: int,
    history_tokens: int,
    ceiling: int = MAX_CONTEXT_TOKENS,
    prefix_tokens: Optional[int] = None,
) -> SelectedContext:
    """
    Select a prefix of the ranked matches that fits the remaining budget.

    Matches are taken in the given order. The first one that does not fit is
    truncated if at least MIN_CHUNK_TOKENS remain, and selection stops there.
    Ordinal markers and separators are charged to the budget as well.
    """
    if prefix_tokens is None:
        prefix_tokens = estimate_tokens(build_user_content("", ""))

    budget = TokenBudget(
        ceiling=ceiling,
        system_prompt=system_prompt_tokens,
        query=query_tokens,
        history=history_tokens,
        prefix=prefix_tokens,
    )
    safe_available = budget.safe_available

    if matches and safe_available < MIN_CHUNK_TOKENS:
        logger.warning(
            f"Context budget exhausted: {budget.reserved} reserved of {ceiling} tokens, "
            f"proceeding without context"
        )

    used_tokens = 0
    selected: List[RetrievalMatch] = []
    entries: List[str] = []

    for match in matches:
        ordinal = len(selected) + 1
        overhead = estimate_tokens(format_match(ordinal, ""))
        if selected:
            overhead += estimate_tokens(MATCH_SEPARATOR)

        remaining = safe_available - used_tokens - overhead
        chunk_tokens = estimate_tokens(match.content)

        if chunk_tokens <= remaining:
            selected.append(match)
            entries.append(format_match(ordinal, match.content))
            used_tokens += overhead + chunk_tokens
        elif remaining >= MIN_CHUNK_TOKENS:
            content = truncate_to_tokens(match.content, remaining)
            selected.append(replace(match, content=content))
            entries.append(format_match(ordinal, content))
            break
        else:
            break

    text = MATCH_SEPARATOR.join(entries)
    return SelectedContext(
        text=text,
        used_matches=selected,
        total_tokens=budget.reserved + estimate_tokens(text),
    )
