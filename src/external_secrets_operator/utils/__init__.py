"""Utility functions for the External Secrets Operator."""

from .cache import (
    get_cached_object,
    invalidate_cache,
    make_cache_key,
    set_cached_object,
)
from .conditions import set_ready_condition, update_condition
from .errors import describe_error, sanitize_error_message, sanitize_exception
from .events import emit_event
from .secrets import build_target_secret, upsert_secret

__all__ = [
    "update_condition",
    "set_ready_condition",
    "emit_event",
    "build_target_secret",
    "upsert_secret",
    "get_cached_object",
    "set_cached_object",
    "invalidate_cache",
    "make_cache_key",
    "describe_error",
    "sanitize_error_message",
    "sanitize_exception",
]
