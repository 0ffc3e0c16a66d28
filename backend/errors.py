from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class FieldFailure:
    field: str
    code: str
    message: str


@dataclass(frozen=True)
class ValidationError:
    """Every unmet condition that blocked a step transition or a submission.

    Returned, never raised. The session that produced it is left as it was.
    """

    failures: tuple[FieldFailure, ...]

    @property
    def fields(self) -> list[str]:
        return [f.field for f in self.failures]

    @property
    def codes(self) -> list[str]:
        return [f.code for f in self.failures]


@dataclass(frozen=True)
class PersistenceError:
    """The order insert failed. ``message`` is the storage layer's own text."""

    message: str


class StorageError(Exception):
    """Raised by order stores when an insert cannot be completed."""
