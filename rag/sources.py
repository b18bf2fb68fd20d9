# rag/sources.py - Pick the single source to cite for an answer
"""
Source attribution.

Matches are grouped per URL. A URL scores the max similarity of its chunks and is
represented by its longest chunk. Specific pages outrank homepage URLs regardless of
score unless the policy is switched off; scores within the tie margin are
ranked by how many chunks corroborate the page.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from config import PREFER_SPECIFIC_SOURCES, SOURCE_TIE_MARGIN
from rag.models import AttributedSource, RetrievalMatch
from utils.validators import normalize_url
from utils.logger import get_retrieval_logger

logger = get_retrieval_logger()


@dataclass
class SourceCandidate:
    url: str
    score: float
    chunk_count: int
    title: Optional[str]
    content: str

    def add(self, match: RetrievalMatch) -> None:
        self.score = max(self.score, match.similarity)
        self.chunk_count += 1
        if len(match.content) > len(self.content):
            self.content = match.content
            self.title = match.title or self.title
        elif self.title is None:
            self.title = match.title


def group_by_url(matches: Iterable[RetrievalMatch]) -> List[SourceCandidate]:
    candidates: Dict[str, SourceCandidate] = {}
    for match in matches:
        if not match.source_url:
            continue
        candidate = candidates.get(match.source_url)
        if candidate is None:
            candidates[match.source_url] = SourceCandidate(
                url=match.source_url,
                score=match.similarity,
                chunk_count=1,
                title=match.title,
                content=match.content,
            )
        else:
            candidate.add(match)
    return list(candidates.values())


def rank_candidates(candidates: Sequence[SourceCandidate], tie_margin: float = SOURCE_TIE_MARGIN) -> Optional[SourceCandidate]:
    """Best candidate: among those within tie_margin of the top score, the most corroborated."""
    if not candidates:
        return None
    top_score = max(c.score for c in candidates)
    contenders = [c for c in candidates if top_score - c.score <= tie_margin]
    return max(contenders, key=lambda c: (c.chunk_count, c.score))


def select_source(
    used_matches: Sequence[RetrievalMatch],
    priority_urls: Sequence[str] = (),
    prefer_specific: bool = PREFER_SPECIFIC_SOURCES,
    tie_margin: float = SOURCE_TIE_MARGIN,
) -> Optional[AttributedSource]:
    """Return the single best source for the matches used in the context, or None."""
    candidates = group_by_url(used_matches)
    if not candidates:
        return None

    if prefer_specific:
        homepages = {normalize_url(url) for url in priority_urls}
        specific = [c for c in candidates if normalize_url(c.url) not in homepages]
        generic = [c for c in candidates if normalize_url(c.url) in homepages]
        best = rank_candidates(specific, tie_margin) or rank_candidates(generic, tie_margin)
    else:
        best = rank_candidates(candidates, tie_margin)

    logger.debug(f"Selected source {best.url} (score={best.score:.3f}, chunks={best.chunk_count}) of {len(candidates)} URLs")
    return AttributedSource(url=best.url, title=best.title, content=best.content)
