"""Controller configuration.

Everything the controller needs from its environment is read once, validated
up front, and then passed around as an immutable Config.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from .errors import ConfigurationError
from .timeouts import (
    DEFAULT_CREATE_TIMEOUT_MINUTES,
    DEFAULT_DELETE_TIMEOUT_MINUTES,
    DEFAULT_READ_TIMEOUT_MINUTES,
    DEFAULT_UPDATE_TIMEOUT_MINUTES,
    ResourceTimeouts,
)

# Spec files larger than this are refused before parsing
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024

VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


@dataclass(frozen=True)
class Config:
    """Controller configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-operation.
    """

    subscription_id: str

    # User-assigned managed identity; None selects the system-assigned identity
    client_id: str | None = None

    timeouts: ResourceTimeouts = field(default_factory=ResourceTimeouts)

    # Structured security audit events for create/delete
    enable_audit_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        errors.extend(self.timeouts.validate())

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription holding the certificates
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity (optional)
            CREATE_TIMEOUT_MINUTES: Create budget (default: 30)
            READ_TIMEOUT_MINUTES: Read/import budget (default: 5)
            UPDATE_TIMEOUT_MINUTES: Update budget (default: 30)
            DELETE_TIMEOUT_MINUTES: Delete budget (default: 30)
            ENABLE_AUDIT_LOGGING: Emit security audit events (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            timeouts=ResourceTimeouts(
                create_minutes=get_int("CREATE_TIMEOUT_MINUTES", DEFAULT_CREATE_TIMEOUT_MINUTES),
                read_minutes=get_int("READ_TIMEOUT_MINUTES", DEFAULT_READ_TIMEOUT_MINUTES),
                update_minutes=get_int("UPDATE_TIMEOUT_MINUTES", DEFAULT_UPDATE_TIMEOUT_MINUTES),
                delete_minutes=get_int("DELETE_TIMEOUT_MINUTES", DEFAULT_DELETE_TIMEOUT_MINUTES),
            ),
            enable_audit_logging=get_bool("ENABLE_AUDIT_LOGGING", True),
        )
