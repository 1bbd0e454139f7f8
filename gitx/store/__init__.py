"""Durable commit store."""

from .commit_store import CommitStore

__all__ = ["CommitStore"]
