"""Utility exports for concurrency helpers."""

from juggler.utils.concurrency import ConcurrencyLimiter, gather_bounded

__all__ = ["ConcurrencyLimiter", "gather_bounded"]
