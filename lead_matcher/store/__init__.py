"""Lead/match persistence and the per-professional lead index."""

from .base import LeadStore, index_entries
from .index import LeadIndex
from .memory import InMemoryLeadStore
from .sqlite import SqliteLeadStore

__all__ = ["InMemoryLeadStore", "LeadIndex", "LeadStore", "SqliteLeadStore", "index_entries"]
