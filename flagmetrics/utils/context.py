"""
Request Context Utilities.

Carries the request ID through the async call chain so that logs
emitted from the store and the ingestion service can be correlated
with the HTTP request (or worker task) that triggered them.

Usage:
    from flagmetrics.utils.context import get_request_id

    logger.info("Metrics stored", request_id=get_request_id())
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import Any, Optional


# Request-scoped context using contextvars (async-safe)
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID."""
    return _request_id.get()


def set_request_id(request_id: Optional[str]) -> Token:
    """Set the request ID for the current context."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


# ============================================================
# STRUCTLOG PROCESSOR
# ============================================================

def add_request_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds the request ID to all logs.

    Usage:
        structlog.configure(
            processors=[
                add_request_context,
                structlog.processors.JSONRenderer(),
            ]
        )
    """
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict
