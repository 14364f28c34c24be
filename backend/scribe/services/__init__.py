"""Service exports."""

from . import engine, history, records, sync, types

__all__ = ["engine", "history", "records", "sync", "types"]
