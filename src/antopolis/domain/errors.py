"""Exception hierarchy for the battle subsystem."""

from __future__ import annotations


class AntopolisError(Exception):
    """Base class for every error raised by the battle subsystem."""


class ValidationError(AntopolisError, ValueError):
    """Input rejected before any state was touched."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, str | None]:
        return {"error": self.message, "field": self.field}


class NotFoundError(AntopolisError, LookupError):
    """A colony or attack referenced by id does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class TransientStoreError(AntopolisError):
    """Read or write against the colony store failed."""


class SchedulingInitError(AntopolisError):
    """The scheduler could not enumerate the AI colonies it should drive."""
