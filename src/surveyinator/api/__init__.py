"""HTTP API for Surveyinator."""

from .app import create_app, cors_headers
from .handlers import handle_start, handle_vote

__all__ = [
    "create_app",
    "cors_headers",
    "handle_start",
    "handle_vote",
]
