"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_db_path() -> Path:
    """Return the database file path from ALOA_DB_PATH."""
    raw = os.environ.get("ALOA_DB_PATH", "~/.local/share/aloa_knowledge/knowledge.db")
    return Path(raw).expanduser()


def get_database_url() -> str | None:
    """Return the database URL from ALOA_DATABASE_URL, if set."""
    return os.environ.get("ALOA_DATABASE_URL") or None


def get_log_level() -> str:
    """Return the logging level from ALOA_LOG_LEVEL."""
    return os.environ.get("ALOA_LOG_LEVEL", "WARNING").upper()


def get_transport() -> str:
    """Return the server transport from ALOA_TRANSPORT (stdio or http)."""
    return os.environ.get("ALOA_TRANSPORT", "stdio").lower()


def get_http_host() -> str:
    """Return the HTTP bind host from ALOA_HTTP_HOST."""
    return os.environ.get("ALOA_HTTP_HOST", "127.0.0.1")


def get_http_port() -> int:
    """Return the HTTP bind port from ALOA_HTTP_PORT."""
    return int(os.environ.get("ALOA_HTTP_PORT", "8000"))


def get_fetch_timeout() -> float:
    """Return the file/website fetch timeout in seconds from ALOA_FETCH_TIMEOUT."""
    return float(os.environ.get("ALOA_FETCH_TIMEOUT", "10.0"))


def get_queue_batch_size() -> int:
    """Return how many queue entries one drain handles, from ALOA_QUEUE_BATCH_SIZE."""
    return int(os.environ.get("ALOA_QUEUE_BATCH_SIZE", "10"))


def get_queue_max_attempts() -> int:
    """Return the attempt cap for queue entries from ALOA_QUEUE_MAX_ATTEMPTS."""
    return int(os.environ.get("ALOA_QUEUE_MAX_ATTEMPTS", "3"))


def get_context_ttl() -> int:
    """Return the AI context cache lifetime in seconds from ALOA_CONTEXT_TTL."""
    return int(os.environ.get("ALOA_CONTEXT_TTL", "3600"))
