"""Colony store adapters."""

from antopolis.repository.memory_store import InMemoryColonyStore
from antopolis.repository.sql_store import SqlColonyStore

__all__ = ["InMemoryColonyStore", "SqlColonyStore"]
