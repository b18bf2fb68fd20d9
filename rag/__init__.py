# rag/__init__.py
from .models import AttributedSource, ChatTurn, RetrievalMatch, SelectedContext
from .tokens import estimate_tokens, truncate_to_tokens
from .history import trim_history
from .query import build_contextual_query
from .context import TokenBudget, assemble_context
from .sources import select_source
from .prompt import PromptAssembly, build_prompt
from .orchestrator import ChatAnswer, ChatEvent, ChatOrchestrator, RequestTimings
from .errors import ChatError, ConfigurationError, GenerationError, RetrievalError

__all__ = [
    "AttributedSource",
    "ChatTurn",
    "RetrievalMatch",
    "SelectedContext",
    "estimate_tokens",
    "truncate_to_tokens",
    "trim_history",
    "build_contextual_query",
    "TokenBudget",
    "assemble_context",
    "select_source",
    "PromptAssembly",
    "build_prompt",
    "ChatAnswer",
    "ChatEvent",
    "ChatOrchestrator",
    "RequestTimings",
    "ChatError",
    "ConfigurationError",
    "GenerationError",
    "RetrievalError",
]
