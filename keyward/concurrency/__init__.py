"""Concurrency utilities for Keyward."""

from keyward.concurrency.locks import get_code_lock, release_code_lock

__all__ = ["get_code_lock", "release_code_lock"]
