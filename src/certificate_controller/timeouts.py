"""Per-operation time budgets.

Each reconciliation call gets a Deadline created when the operation starts.
Every remote call made on behalf of that operation is bounded by the budget
that remains, so a slow existence check eats into the time left for the
create call rather than resetting the clock.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum

DEFAULT_CREATE_TIMEOUT_MINUTES = 30
DEFAULT_READ_TIMEOUT_MINUTES = 5
DEFAULT_UPDATE_TIMEOUT_MINUTES = 30
DEFAULT_DELETE_TIMEOUT_MINUTES = 30

MIN_TIMEOUT_MINUTES = 1
MAX_TIMEOUT_MINUTES = 24 * 60


class Operation(StrEnum):
    """Reconciliation entry points."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


@dataclass(frozen=True)
class ResourceTimeouts:
    """Default wall-clock budgets, in minutes."""

    create_minutes: int = DEFAULT_CREATE_TIMEOUT_MINUTES
    read_minutes: int = DEFAULT_READ_TIMEOUT_MINUTES
    update_minutes: int = DEFAULT_UPDATE_TIMEOUT_MINUTES
    delete_minutes: int = DEFAULT_DELETE_TIMEOUT_MINUTES

    def minutes_for(self, operation: Operation) -> int:
        match operation:
            case Operation.CREATE:
                return self.create_minutes
            case Operation.UPDATE:
                return self.update_minutes
            case Operation.DELETE:
                return self.delete_minutes
            case Operation.READ | Operation.IMPORT:
                return self.read_minutes
        raise ValueError(f"Unsupported operation: {operation}")

    def validate(self) -> list[str]:
        """Return a list of problems, empty when all budgets are in range."""
        errors = []
        for name in ("create_minutes", "read_minutes", "update_minutes", "delete_minutes"):
            value = getattr(self, name)
            if not MIN_TIMEOUT_MINUTES <= value <= MAX_TIMEOUT_MINUTES:
                errors.append(
                    f"{name} must be between {MIN_TIMEOUT_MINUTES} and {MAX_TIMEOUT_MINUTES}: {value}"
                )
        return errors


@dataclass(frozen=True)
class Deadline:
    """Absolute deadline for one operation, measured on the monotonic clock."""

    operation: Operation
    timeout_seconds: float
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def for_operation(cls, timeouts: ResourceTimeouts, operation: Operation) -> Deadline:
        return cls(operation=operation, timeout_seconds=timeouts.minutes_for(operation) * 60.0)

    @classmethod
    def for_create_update(cls, timeouts: ResourceTimeouts, is_new: bool) -> Deadline:
        operation = Operation.CREATE if is_new else Operation.UPDATE
        return cls.for_operation(timeouts, operation)

    def remaining_seconds(self) -> float:
        elapsed = time.monotonic() - self.started_at
        return max(0.0, self.timeout_seconds - elapsed)

    @property
    def expired(self) -> bool:
        return self.remaining_seconds() <= 0
