"""Operation provenance for audit.

Every controller entry point is stamped with one provenance record that
answers "what was attempted, against which certificate, with what outcome,
by which controller version".
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

# Version is set at build time or falls back to dev
CONTROLLER_VERSION = os.environ.get("CONTROLLER_VERSION", "dev")


@dataclass
class OperationProvenance:
    """Provenance record for one controller operation."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    operation: str = ""
    controller_version: str = CONTROLLER_VERSION

    # Target certificate; resource_id is filled once known
    name: str = ""
    resource_group: str = ""
    resource_id: str = ""

    # succeeded, absent, failed
    outcome: str = "succeeded"
    duration_seconds: float = 0.0

    error: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = asdict(self)
        result["timestamp"] = self.timestamp.isoformat()
        return result


class ProvenanceLogger:
    """Logs provenance records to the structured logger."""

    def __init__(self) -> None:
        self._instance_id = os.environ.get("CONTAINER_INSTANCE_ID", "")

    def create_provenance(
        self,
        operation: str,
        name: str = "",
        resource_group: str = "",
        resource_id: str = "",
    ) -> OperationProvenance:
        return OperationProvenance(
            operation=operation,
            name=name,
            resource_group=resource_group,
            resource_id=resource_id,
        )

    def log_provenance(self, provenance: OperationProvenance) -> None:
        """Log a completed provenance record."""
        log_level = logging.INFO
        if provenance.error:
            log_level = logging.ERROR
        elif provenance.outcome == "absent":
            log_level = logging.WARNING

        logger.log(
            log_level,
            "Certificate operation provenance",
            extra={
                "provenance": provenance.to_dict(),
                "operation": provenance.operation,
                "outcome": provenance.outcome,
                "resource_id": provenance.resource_id,
                "controller_version": provenance.controller_version,
                "instance_id": self._instance_id,
                "duration_seconds": provenance.duration_seconds,
            },
        )

    @contextmanager
    def track(
        self,
        operation: str,
        name: str = "",
        resource_group: str = "",
        resource_id: str = "",
    ) -> Iterator[OperationProvenance]:
        """Record an operation; errors are recorded and re-raised."""
        provenance = self.create_provenance(operation, name, resource_group, resource_id)
        started = time.monotonic()
        try:
            yield provenance
        except Exception as e:
            provenance.outcome = "failed"
            provenance.error = str(e)
            provenance.error_type = type(e).__name__
            raise
        finally:
            provenance.duration_seconds = time.monotonic() - started
            self.log_provenance(provenance)


# Global singleton for provenance logging
_provenance_logger: ProvenanceLogger | None = None


def get_provenance_logger() -> ProvenanceLogger:
    """Get the global provenance logger instance."""
    global _provenance_logger
    if _provenance_logger is None:
        _provenance_logger = ProvenanceLogger()
    return _provenance_logger
