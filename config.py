# config.py - Centralized configuration for the RAG chat service
"""
All limits, budgets and tunables in one place.

Token figures are estimates (see rag/tokens.py), not tokenizer counts.
TOKENS_PER_CHAR is calibrated for Norwegian text; recalibrate for other languages.
"""

import os

from dotenv import load_dotenv

from utils.validators import parse_url_list

load_dotenv()

# === INPUT LIMITS ===
MAX_MESSAGE_LENGTH = 2000           # Max characters for a chat message
MAX_HISTORY_MESSAGES = 50           # Max turns accepted from the client per request

# === TOKEN BUDGET ===
TOKENS_PER_CHAR = 0.25              # ~4 characters per token, rounded up by the estimator
MAX_CONTEXT_TOKENS = 3000           # Ceiling for system prompt + history + context + question
MAX_HISTORY_TOKENS = 1000           # Ceiling for trimmed conversation history
MIN_CHUNK_TOKENS = 50               # Smallest fragment worth truncating into the budget
CONTEXT_SAFETY_MARGIN = 0.05        # Subtracted from available tokens before allocation
HISTORY_PARTIAL_THRESHOLD = 0.9     # Partial history inclusion only below this share of the budget
ELLIPSIS = "..."

# === CONTEXTUAL QUERY ===
CONTEXTUAL_QUERY_MAX_WORDS = 3      # Queries longer than this are used as-is
CONTEXTUAL_TURN_MAX_CHARS = 200     # Longer history turns are too generic to help retrieval

# === RETRIEVAL ===
MATCH_COUNT = 12
MATCH_THRESHOLD = 0.25
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
CHROMA_PERSIST_DIRECTORY = os.getenv("CHROMA_PERSIST_DIRECTORY", "./chroma_db")
CHROMA_COLLECTION = os.getenv("CHROMA_COLLECTION", "documents")

# === GENERATION ===
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000

# === SOURCES ===
HOMEPAGE_URLS = parse_url_list(os.getenv("HOMEPAGE_URLS", ""))
PREFER_SPECIFIC_SOURCES = os.getenv("PREFER_SPECIFIC_SOURCES", "true").lower() != "false"
SOURCE_TIE_MARGIN = 0.05            # Scores this close are ranked by chunk count

# === RATE LIMITING ===
RATE_LIMIT_REQUESTS = 20            # Requests per client per window
RATE_LIMIT_WINDOW_SECONDS = 60

# === PROMPT ===
CONTEXT_LABEL = "Context:"
QUESTION_LABEL = "Question: "

FALLBACK_ANSWER = (
    "Sorry, I could not find any relevant information in the knowledge base "
    "to answer your question."
)

SYSTEM_PROMPT = os.getenv("BOT_SYSTEM_PROMPT", """You are a helpful, friendly assistant for this website.

CONTEXT:
You receive numbered excerpts from the website. Use only this context as facts.

CONVERSATION HISTORY:
You also receive the conversation so far. If the user answers briefly
(for example "today" or "yes"), use earlier messages to understand what they refer to.

STYLE:
* At most 3-6 lines before an optional bullet list.
* Use a bullet list when naming several things.
* Be precise and concrete.

FACTS:
* Do not invent details (dates, times, prices, addresses, opening hours).
* If the context has the answer, give it precisely.
* If you have no information, say briefly that you cannot find it.""")
