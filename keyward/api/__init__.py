"""Keyward HTTP API."""

from keyward.api.routes import router

__all__ = ["router"]
