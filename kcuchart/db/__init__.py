"""Persistence for kcuchart."""

from kcuchart.db.store import DataStore

__all__ = ["DataStore"]
