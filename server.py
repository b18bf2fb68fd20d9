# server.py - FastAPI RAG chat server
import time
from contextlib import asynccontextmanager
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, field_validator

from ingestion.embedder import collection_exists, delete_collection, get_embeddings, get_vectorstore, index_chunks
from rag.clients import ChatModelGenerator, ChromaRetriever, LangChainEmbedder, create_chat_model, require_api_key
from rag.errors import ConfigurationError, GenerationError, RetrievalError
from rag.models import ChatTurn
from rag.orchestrator import ChatOrchestrator
from utils.logger import get_retrieval_logger, get_server_logger
from utils.rate_limiter import InMemoryRateLimiter, RateLimiter, enforce_rate_limit
from utils.validators import validate_message

# Import centralized config (loads .env)
from config import (
    CHAT_MODEL,
    EMBEDDING_MODEL,
    HOMEPAGE_URLS,
    MATCH_COUNT,
    MATCH_THRESHOLD,
    MAX_CONTEXT_TOKENS,
    MAX_HISTORY_MESSAGES,
    MAX_HISTORY_TOKENS,
    MAX_MESSAGE_LENGTH,
    MIN_CHUNK_TOKENS,
    PREFER_SPECIFIC_SOURCES,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    TOKENS_PER_CHAR,
)

# Initialize loggers
logger = get_server_logger()
retrieval_logger = get_retrieval_logger()

# Built on first use so a missing API key only fails chat/index requests
_orchestrator: Optional[ChatOrchestrator] = None
_vectorstore = None

_rate_limiter = InMemoryRateLimiter(RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup lifecycle handler."""
    logger.info("RAG Chat API starting...")
    yield
    logger.info("RAG Chat API shutting down...")


app = FastAPI(
    title="RAG Chat API",
    description="Answer questions about a crawled website with retrieval-augmented generation",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response Models
class ChatTurnModel(BaseModel):
    role: Literal["user", "assistant"]
    content: str

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content=self.content)


class ChatRequest(BaseModel):
    message: str
    history: List[ChatTurnModel] = Field(default_factory=list)

    @field_validator('message')
    @classmethod
    def validate_message_text(cls, v):
        return validate_message(v, MAX_MESSAGE_LENGTH)

    @field_validator('history')
    @classmethod
    def validate_history(cls, v):
        if len(v) > MAX_HISTORY_MESSAGES:
            raise ValueError(f"History exceeds maximum length ({MAX_HISTORY_MESSAGES} messages)")
        return v

    def turns(self) -> List[ChatTurn]:
        return [turn.to_turn() for turn in self.history]


class SourceModel(BaseModel):
    url: str
    title: Optional[str] = None
    content: str


class TimingsModel(BaseModel):
    embed_ms: Optional[float] = None
    retrieve_ms: Optional[float] = None
    first_token_ms: Optional[float] = None
    total_ms: Optional[float] = None


class ChatResponse(BaseModel):
    answer: str
    sources: List[SourceModel]
    timings: TimingsModel


class ChunkModel(BaseModel):
    content: str
    source_url: str
    title: Optional[str] = None
    section: str = ""


class IndexRequest(BaseModel):
    chunks: List[ChunkModel]

    @field_validator('chunks')
    @classmethod
    def validate_chunks(cls, v):
        if not v:
            raise ValueError("At least one chunk is required")
        return v


class IndexResponse(BaseModel):
    message: str
    chunks_indexed: int


class ResetResponse(BaseModel):
    message: str


# Dependencies
def get_vectorstore_instance():
    """Open the chunk collection once per process."""
    global _vectorstore
    if _vectorstore is None:
        require_api_key()
        _vectorstore = get_vectorstore(embedding=get_embeddings(EMBEDDING_MODEL))
    return _vectorstore


def get_orchestrator() -> ChatOrchestrator:
    """Get or create the chat orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        vectorstore = get_vectorstore_instance()
        _orchestrator = ChatOrchestrator(
            embedder=LangChainEmbedder(get_embeddings(EMBEDDING_MODEL)),
            retriever=ChromaRetriever(vectorstore),
            generator=ChatModelGenerator(create_chat_model()),
            priority_urls=HOMEPAGE_URLS,
        )
        logger.info(f"Chat orchestrator created (model={CHAT_MODEL}, embeddings={EMBEDDING_MODEL})")
    return _orchestrator


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(status_code=503, content={"detail": f"Service not configured: {exc}"})


# Routes
@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "running",
        "message": "RAG Chat API is running",
        "orchestrator_ready": _orchestrator is not None,
    }


@app.get("/limits")
async def get_limits():
    """Get current API limits and token budget configuration."""
    return {
        "input_limits": {
            "max_message_length": MAX_MESSAGE_LENGTH,
            "max_history_messages": MAX_HISTORY_MESSAGES,
        },
        "token_budget": {
            "max_context_tokens": MAX_CONTEXT_TOKENS,
            "max_history_tokens": MAX_HISTORY_TOKENS,
            "min_chunk_tokens": MIN_CHUNK_TOKENS,
            "tokens_per_char": TOKENS_PER_CHAR,
        },
        "retrieval": {
            "match_count": MATCH_COUNT,
            "match_threshold": MATCH_THRESHOLD,
            "prefer_specific_sources": PREFER_SPECIFIC_SOURCES,
            "homepage_urls": HOMEPAGE_URLS,
        },
        "rate_limits": {
            "requests_per_window": RATE_LIMIT_REQUESTS,
            "window_seconds": RATE_LIMIT_WINDOW_SECONDS,
        },
    }


@app.post("/chat")
async def chat(
    request: ChatRequest,
    req: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Stream an answer as Server-Sent Events: token*, sources, then done or error."""
    rate_limit = enforce_rate_limit(req, limiter)

    logger.info(f"POST /chat - Message: {request.message[:50]}... ({len(request.history)} history messages)")

    async def event_stream():
        async for event in orchestrator.stream(request.message, request.turns()):
            yield event.to_sse()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            **rate_limit.headers(),
        },
    )


@app.post("/chat/complete", response_model=ChatResponse)
async def chat_complete(
    request: ChatRequest,
    req: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Answer without streaming."""
    enforce_rate_limit(req, limiter)

    start_time = time.time()
    logger.info(f"POST /chat/complete - Message: {request.message[:50]}...")

    try:
        result = await orchestrator.answer(request.message, request.turns())
    except RetrievalError as e:
        logger.error(f"Retrieval error: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Retrieval failed: {str(e)}")
    except GenerationError as e:
        logger.error(f"Generation error: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Generation failed: {str(e)}")

    elapsed = time.time() - start_time
    logger.info(f"POST /chat/complete completed in {elapsed:.2f}s")

    return ChatResponse(
        answer=result.answer,
        sources=[SourceModel(**source.to_dict()) for source in result.sources],
        timings=TimingsModel(**vars(result.timings)),
    )


@app.post("/index", response_model=IndexResponse)
async def index(request: IndexRequest, req: Request, limiter: RateLimiter = Depends(get_rate_limiter)):
    """Embed and store pre-chunked website content."""
    enforce_rate_limit(req, limiter)

    start_time = time.time()
    logger.info(f"POST /index - {len(request.chunks)} chunks")

    vectorstore = get_vectorstore_instance()
    try:
        count = index_chunks((chunk.model_dump() for chunk in request.chunks), vectorstore)
    except Exception as e:
        logger.exception("Error during indexing")
        raise HTTPException(status_code=500, detail=f"Indexing failed: {str(e)}")

    elapsed = time.time() - start_time
    retrieval_logger.info(f"POST /index completed in {elapsed:.2f}s - {count} chunks")

    return IndexResponse(message="Chunks indexed successfully", chunks_indexed=count)


@app.post("/reset/knowledge", response_model=ResetResponse)
async def reset_knowledge():
    """Delete all indexed chunks."""
    global _orchestrator, _vectorstore

    logger.info("POST /reset/knowledge")

    vectorstore = get_vectorstore_instance()
    if collection_exists(vectorstore):
        delete_collection(vectorstore)

    # The collection handle is stale after deletion
    _vectorstore = None
    _orchestrator = None

    return ResetResponse(message="Knowledge cleared successfully")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
