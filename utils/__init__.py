# utils/__init__.py
from .logger import (
    setup_logger,
    get_server_logger,
    get_chat_logger,
    get_budget_logger,
    get_retrieval_logger,
)
from .validators import validate_url, validate_message, normalize_url, parse_url_list, URLValidationError
from .rate_limiter import InMemoryRateLimiter, RateLimiter, RateLimitResult, enforce_rate_limit, get_client_ip

__all__ = [
    "setup_logger",
    "get_server_logger",
    "get_chat_logger",
    "get_budget_logger",
    "get_retrieval_logger",
    "validate_url",
    "validate_message",
    "normalize_url",
    "parse_url_list",
    "URLValidationError",
    "InMemoryRateLimiter",
    "RateLimiter",
    "RateLimitResult",
    "enforce_rate_limit",
    "get_client_ip",
]
