"""REST API for flaw detection."""

from .routes import api

__all__ = ["api"]
