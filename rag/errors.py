# rag/errors.py - Exception hierarchy for the chat pipeline


class ChatError(Exception):
    """Base exception for chat request failures."""
    pass


class ConfigurationError(ChatError):
    """Missing credentials or endpoints for an external backend."""
    pass


class RetrievalError(ChatError):
    """Embedding or vector search failed; no grounding is possible."""
    pass


class GenerationError(ChatError):
    """The generation stream failed."""
    pass
