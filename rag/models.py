# rag/models.py - Per-request data model
"""
Value types created fresh for every chat request and discarded afterwards.

All types are frozen; trimming and truncation derive copies instead of
mutating the caller's history or the retrieval results.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatTurn:
    role: Role
    content: str


@dataclass(frozen=True)
class RetrievalMatch:
    """A ranked chunk returned by vector search."""

    content: str
    source_url: str
    title: Optional[str] = None
    section: str = ""
    similarity: float = 0.0


@dataclass(frozen=True)
class SelectedContext:
    """The context block chosen for one generation request."""

    text: str
    used_matches: List[RetrievalMatch] = field(default_factory=list)
    total_tokens: int = 0


@dataclass(frozen=True)
class AttributedSource:
    url: str
    title: Optional[str]
    content: str

    def to_dict(self) -> dict:
        return {"url": self.url, "title": self.title, "content": self.content}
