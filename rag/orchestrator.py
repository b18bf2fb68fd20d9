# rag/orchestrator.py - One chat request: query -> retrieve -> budget -> generate -> stream
"""
Chat orchestration.

Each request runs the same strict sequence:

    contextual query -> embed -> retrieve -> (no matches: fallback answer)
    -> trim history -> assemble context -> select source -> stream generation

Tokens are forwarded as soon as the model yields them. Embed and retrieve
failures end the request with an error event; generation failures end it
with an error event after whatever tokens were already sent.
"""

import json
import time
from contextlib import aclosing
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator, List, Optional, Sequence

from config import (
    FALLBACK_ANSWER,
    MATCH_COUNT,
    MATCH_THRESHOLD,
    MAX_CONTEXT_TOKENS,
    MAX_HISTORY_TOKENS,
    SYSTEM_PROMPT,
)
from rag.clients import Embedder, Generator, Retriever
from rag.context import assemble_context
from rag.errors import GenerationError, RetrievalError
from rag.history import history_tokens, trim_history
from rag.models import AttributedSource, ChatTurn
from rag.prompt import build_prompt, build_user_content
from rag.query import build_contextual_query
from rag.sources import select_source
from rag.tokens import estimate_tokens
from utils.logger import get_chat_logger

logger = get_chat_logger()


@dataclass
class RequestTimings:
    embed_ms: Optional[float] = None
    retrieve_ms: Optional[float] = None
    first_token_ms: Optional[float] = None
    total_ms: Optional[float] = None


@dataclass(frozen=True)
class ChatEvent:
    type: str
    data: Any = None
    stage: Optional[str] = None   # failing stage of an error event; not sent to clients

    def to_dict(self) -> dict:
        if self.data is None:
            return {"type": self.type}
        return {"type": self.type, "data": self.data}

    def to_sse(self) -> str:
        return "data: " + json.dumps(self.to_dict(), ensure_ascii=False) + "\n\n"


@dataclass
class ChatAnswer:
    answer: str
    sources: List[AttributedSource] = field(default_factory=list)
    timings: RequestTimings = field(default_factory=RequestTimings)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 1)


class ChatOrchestrator:
    def __init__(
        self,
        embedder: Embedder,
        retriever: Retriever,
        generator: Generator,
        *,
        system_prompt: str = SYSTEM_PROMPT,
        priority_urls: Sequence[str] = (),
        match_count: int = MATCH_COUNT,
        match_threshold: float = MATCH_THRESHOLD,
        max_context_tokens: int = MAX_CONTEXT_TOKENS,
        max_history_tokens: int = MAX_HISTORY_TOKENS,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self.generator = generator
        self.system_prompt = system_prompt
        self.priority_urls = list(priority_urls)
        self.match_count = match_count
        self.match_threshold = match_threshold
        self.max_context_tokens = max_context_tokens
        self.max_history_tokens = max_history_tokens

    async def stream(self, message: str, history: Sequence[ChatTurn] = ()) -> AsyncIterator[ChatEvent]:
        """Yield token events, then sources, then exactly one done or error event."""
        timings = RequestTimings()
        request_start = time.perf_counter()

        query = build_contextual_query(message, history)
        if query != message:
            logger.debug(f"Contextual query: {query[:100]}")

        start = time.perf_counter()
        try:
            embedding = await self.embedder.embed(query)
        except Exception as e:
            logger.exception("Embedding failed")
            yield ChatEvent("error", f"Embedding failed: {e}", stage="embed")
            return
        timings.embed_ms = _elapsed_ms(start)

        start = time.perf_counter()
        try:
            matches = await self.retriever.search(embedding, self.match_count, self.match_threshold)
        except Exception as e:
            logger.exception("Vector search failed")
            yield ChatEvent("error", f"Failed to retrieve documents: {e}", stage="retrieve")
            return
        timings.retrieve_ms = _elapsed_ms(start)

        if not matches:
            logger.info("No matches above threshold, returning fallback answer")
            timings.total_ms = _elapsed_ms(request_start)
            yield ChatEvent("token", FALLBACK_ANSWER)
            yield ChatEvent("sources", [])
            yield ChatEvent("done", asdict(timings))
            return

        trimmed = trim_history(history, self.max_history_tokens)
        selected = assemble_context(
            matches,
            system_prompt_tokens=estimate_tokens(self.system_prompt),
            query_tokens=estimate_tokens(message),
            history_tokens=history_tokens(trimmed),
            ceiling=self.max_context_tokens,
            prefix_tokens=estimate_tokens(build_user_content("", "")),
        )
        logger.info(
            f"Token usage: {selected.total_tokens}/{self.max_context_tokens} tokens, "
            f"{len(selected.used_matches)}/{len(matches)} chunks selected, "
            f"{len(trimmed)}/{len(history)} history messages"
        )

        source = select_source(selected.used_matches, self.priority_urls)
        sources = [source.to_dict()] if source else []
        prompt = build_prompt(self.system_prompt, trimmed, selected.text, message)

        start = time.perf_counter()
        try:
            async with aclosing(self.generator.stream(prompt)) as tokens:
                async for token in tokens:
                    if timings.first_token_ms is None:
                        timings.first_token_ms = _elapsed_ms(start)
                    yield ChatEvent("token", token)
        except Exception as e:
            logger.exception("Generation stream failed")
            yield ChatEvent("error", str(e) or e.__class__.__name__, stage="generate")
            return

        timings.total_ms = _elapsed_ms(request_start)
        logger.info(
            f"Request timings: embed={timings.embed_ms}ms retrieve={timings.retrieve_ms}ms "
            f"first_token={timings.first_token_ms}ms total={timings.total_ms}ms"
        )
        yield ChatEvent("sources", sources)
        yield ChatEvent("done", asdict(timings))

    async def answer(self, message: str, history: Sequence[ChatTurn] = ()) -> ChatAnswer:
        """Non-streaming mode: collect the whole answer."""
        parts: List[str] = []
        sources: List[AttributedSource] = []
        timings = RequestTimings()

        async for event in self.stream(message, history):
            if event.type == "token":
                parts.append(event.data)
            elif event.type == "sources":
                sources = [AttributedSource(**source) for source in event.data]
            elif event.type == "done":
                timings = RequestTimings(**event.data)
            elif event.type == "error":
                if event.stage == "generate":
                    raise GenerationError(event.data)
                raise RetrievalError(event.data)

        return ChatAnswer(answer="".join(parts), sources=sources, timings=timings)
