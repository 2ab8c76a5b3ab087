"""Middleware package."""

from flagmetrics.api.middleware.request_id import RequestIdMiddleware
from flagmetrics.api.middleware.logging import LoggingMiddleware

__all__ = [
    "RequestIdMiddleware",
    "LoggingMiddleware",
]
