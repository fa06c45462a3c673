"""Async SQLite storage."""

from .core import AsyncStore, OpportunityNotFound

__all__ = ["AsyncStore", "OpportunityNotFound"]
