"""Middleware package."""
from gatepass.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
