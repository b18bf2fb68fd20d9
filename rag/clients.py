# rag/clients.py - Adapters for the embedding, vector search and chat backends
import asyncio
import os
from typing import AsyncIterator, List, Protocol

from langchain_chroma import Chroma
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from config import CHAT_MAX_TOKENS, CHAT_MODEL, CHAT_TEMPERATURE
from rag.errors import ConfigurationError
from rag.models import RetrievalMatch
from rag.prompt import PromptAssembly
from utils.logger import get_retrieval_logger

logger = get_retrieval_logger()


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


class Retriever(Protocol):
    async def search(self, embedding: List[float], count: int, threshold: float) -> List[RetrievalMatch]:
        ...


class Generator(Protocol):
    def stream(self, prompt: PromptAssembly) -> AsyncIterator[str]:
        ...


def require_api_key(name: str = "OPENAI_API_KEY") -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} environment variable is not set")
    return value


class LangChainEmbedder:
    """Embeds query text with any LangChain Embeddings implementation."""

    def __init__(self, embeddings: Embeddings):
        self._embeddings = embeddings

    async def embed(self, text: str) -> List[float]:
        return await self._embeddings.aembed_query(text)


class ChromaRetriever:
    """Similarity search over the chunk collection."""

    def __init__(self, vectorstore: Chroma):
        self._vectorstore = vectorstore

    async def search(self, embedding: List[float], count: int, threshold: float) -> List[RetrievalMatch]:
        results = await asyncio.to_thread(
            self._vectorstore.similarity_search_by_vector_with_relevance_scores,
            embedding,
            k=count,
        )

        matches = []
        for document, distance in results:
            similarity = 1.0 - distance
            if similarity <= threshold:
                continue
            metadata = document.metadata or {}
            matches.append(RetrievalMatch(
                content=document.page_content,
                source_url=metadata.get("source_url", ""),
                title=metadata.get("title") or None,
                section=metadata.get("section", ""),
                similarity=similarity,
            ))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        logger.debug(f"Vector search returned {len(matches)}/{len(results)} matches above {threshold}")
        return matches


class ChatModelGenerator:
    """Streams answer tokens from a LangChain chat model."""

    def __init__(self, model: BaseChatModel):
        self._model = model

    async def stream(self, prompt: PromptAssembly) -> AsyncIterator[str]:
        async for chunk in self._model.astream(prompt.to_messages()):
            content = chunk.content
            if not isinstance(content, str):
                logger.warning(f"Dropping malformed stream fragment: {content!r:.100}")
                continue
            if content:
                yield content


def create_chat_model() -> ChatOpenAI:
    require_api_key()
    return ChatOpenAI(
        model=CHAT_MODEL,
        temperature=CHAT_TEMPERATURE,
        max_tokens=CHAT_MAX_TOKENS,
        streaming=True,
    )
