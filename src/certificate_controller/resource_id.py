"""Identity codec for App Service certificate resource IDs.

Format:
    /subscriptions/{subscription}/resourceGroups/{group}/providers/Microsoft.Web/certificates/{name}
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ConfigurationError

CERTIFICATE_RESOURCE_TYPE = "Microsoft.Web/certificates"

# Matched exactly so parse and format round-trip without rewriting the ID
CERTIFICATE_ID_PATTERN = re.compile(
    r"^/subscriptions/(?P<subscription_id>[^/]+)"
    r"/resourceGroups/(?P<resource_group>[^/]+)"
    r"/providers/Microsoft\.Web"
    r"/certificates/(?P<name>[^/]+)/?$"
)


@dataclass(frozen=True)
class CertificateId:
    """Parsed identity of one App Service certificate."""

    subscription_id: str
    resource_group: str
    name: str

    def __post_init__(self) -> None:
        for field_name in ("subscription_id", "resource_group", "name"):
            value = getattr(self, field_name)
            if not value:
                raise ConfigurationError(f"Certificate ID {field_name} cannot be empty")
            if "/" in value:
                raise ConfigurationError(
                    f"Certificate ID {field_name} cannot contain '/': {value!r}"
                )

    @property
    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/{CERTIFICATE_RESOURCE_TYPE}/{self.name}"
        )

    def __str__(self) -> str:
        return self.id


def parse_certificate_id(resource_id: str) -> CertificateId:
    """Parse a certificate resource ID.

    Raises:
        ConfigurationError: If the string is not a certificate resource ID.
    """
    if not resource_id:
        raise ConfigurationError("Certificate ID cannot be empty")

    match = CERTIFICATE_ID_PATTERN.match(resource_id)
    if match is None:
        raise ConfigurationError(
            f"Invalid App Service Certificate ID {resource_id!r}: expected "
            "/subscriptions/{subscriptionId}/resourceGroups/{resourceGroup}"
            f"/providers/{CERTIFICATE_RESOURCE_TYPE}/{{name}}"
        )

    return CertificateId(
        subscription_id=match.group("subscription_id"),
        resource_group=match.group("resource_group"),
        name=match.group("name"),
    )


def validate_certificate_id(resource_id: str) -> None:
    """Import-time validation: parse and discard."""
    parse_certificate_id(resource_id)
