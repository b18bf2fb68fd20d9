# rag/tokens.py - Character-based token estimation and truncation
import math

from config import ELLIPSIS, TOKENS_PER_CHAR

SENTENCE_ENDINGS = ".!?"
SENTENCE_CUT_RATIO = 0.7    # A sentence end must lie beyond this share of the cut
WORD_CUT_RATIO = 0.8        # Likewise for a word boundary


def estimate_tokens(text: str) -> int:
    """Estimate tokens from character count, always rounding up."""
    return math.ceil(len(text) * TOKENS_PER_CHAR)


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """
    Cut text so its estimate fits within max_tokens.

    Prefers the last sentence end, then the last word boundary, then a hard
    cut. The two latter cuts are marked with an ellipsis, which is counted
    against the budget.
    """
    if max_tokens <= 0:
        return ""

    if estimate_tokens(text) <= max_tokens:
        return text

    max_chars = math.floor(max_tokens / TOKENS_PER_CHAR)
    truncated = text[:max_chars]

    last_sentence_end = max(truncated.rfind(ch) for ch in SENTENCE_ENDINGS)
    if last_sentence_end > max_chars * SENTENCE_CUT_RATIO:
        return text[:last_sentence_end + 1]

    # Leave room for the ellipsis marker
    cut_chars = max(0, max_chars - len(ELLIPSIS))
    last_space = text[:cut_chars].rfind(" ")
    if last_space > max_chars * WORD_CUT_RATIO:
        return text[:last_space] + ELLIPSIS

    return text[:cut_chars] + ELLIPSIS
