"""Protocol interfaces for the Antopolis battle subsystem.

The scheduler and services depend on these protocols rather than on a
concrete store, so tests can inject in-memory fakes.
"""

from antopolis.interfaces.colony_store import IColonyStore

__all__ = ["IColonyStore"]
