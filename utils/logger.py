# utils/logger.py - Centralized logging configuration for the chat pipeline
import logging
import sys

# Log format with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Create a configured logger instance."""
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def get_server_logger():
    """Logger for API server operations."""
    return setup_logger("rag.server")


def get_chat_logger():
    """Logger for the chat orchestrator."""
    return setup_logger("rag.chain")


def get_budget_logger():
    """Logger for token budgeting and context selection."""
    return setup_logger("rag.budget")


def get_retrieval_logger():
    """Logger for embedding, vector search and indexing."""
    return setup_logger("rag.retrieval")
