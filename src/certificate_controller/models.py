"""Desired configuration and output state for App Service certificates.

These models provide:
1. Type-safe YAML parsing with camelCase aliases
2. Validation at the boundary (fail fast, fail loudly)
3. The certificate source union and its exclusivity check
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .errors import ConfigurationError
from .keyvault import SecretReference, parse_secret_reference
from .normalize import normalize_location, validate_tags

# Fields whose change requires the certificate to be destroyed and recreated
FORCE_NEW_FIELDS: tuple[str, ...] = (
    "name",
    "resource_group_name",
    "location",
    "pfx_blob",
    "password",
    "key_vault_secret_id",
    "app_service_plan_id",
)

LINE_BREAKS = re.compile(r"[\r\n]")


# =============================================================================
# Certificate Source
# =============================================================================


@dataclass(frozen=True)
class InlinePfx:
    """A PKCS#12 archive supplied directly in configuration, already decoded."""

    pfx_bytes: bytes
    password: str

    def __repr__(self) -> str:
        return f"InlinePfx(pfx_bytes=<{len(self.pfx_bytes)} bytes>, password=***)"


@dataclass(frozen=True)
class VaultReference:
    """A pointer to a Key Vault secret holding the certificate."""

    secret_uri: str
    reference: SecretReference


CertificateSource = InlinePfx | VaultReference


def decode_pfx_blob(pfx_blob: str) -> bytes:
    """Strictly decode a base64 PFX blob.

    Line breaks are dropped first so blobs wrapped in a YAML block scalar
    decode; any other non-alphabet character is rejected.

    Raises:
        ConfigurationError: If the blob is not valid base64.
    """
    try:
        return base64.b64decode(LINE_BREAKS.sub("", pfx_blob), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"Could not decode PFX blob: {e}") from e


# =============================================================================
# Desired Configuration
# =============================================================================


class CertificateSpec(BaseModel):
    """Desired state of one App Service certificate."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    resource_group_name: str = Field(alias="resourceGroupName", min_length=1, max_length=90)
    location: str = Field(min_length=1)

    # Inline PFX source
    pfx_blob: SecretStr | None = Field(None, alias="pfxBlob")
    password: SecretStr | None = None

    # Key Vault source
    key_vault_secret_id: str | None = Field(None, alias="keyVaultSecretId")

    # Hosting scope
    app_service_plan_id: str | None = Field(None, alias="appServicePlanId")

    # Deprecated: superseded by app_service_plan_id, accepted but never sent
    hosting_environment_profile_id: str | None = Field(None, alias="hostingEnvironmentProfileId")

    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("password")
    @classmethod
    def validate_password_not_empty(cls, v: SecretStr | None) -> SecretStr | None:
        if v is not None and not v.get_secret_value():
            raise ValueError("password must not be empty when set")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tag_limits(cls, v: dict[str, str]) -> dict[str, str]:
        errors = validate_tags(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v

    @property
    def has_inline_pfx(self) -> bool:
        return bool(_secret(self.pfx_blob) or _secret(self.password))

    @property
    def has_vault_reference(self) -> bool:
        return bool(self.key_vault_secret_id)

    def replacement_fields(self, desired: CertificateSpec) -> list[str]:
        """List the force-new fields that differ between self and desired."""
        changed = []
        for name in FORCE_NEW_FIELDS:
            current_value = _comparable(name, getattr(self, name))
            desired_value = _comparable(name, getattr(desired, name))
            if current_value != desired_value:
                changed.append(name)
        return changed


def validate_certificate_source(spec: CertificateSpec) -> CertificateSource:
    """Select the single populated certificate source and check its payload.

    Decodes an inline blob and parses a vault reference, so every
    configuration mistake surfaces here. Performs no remote calls.

    Raises:
        ConfigurationError: If neither or both sources are set, the blob is
            not base64, or the secret ID is not a Key Vault item ID.
    """
    if spec.has_inline_pfx and spec.has_vault_reference:
        raise ConfigurationError(
            "Only one of `pfx_blob`/`password` or `key_vault_secret_id` may be set"
        )
    if not spec.has_inline_pfx and not spec.has_vault_reference:
        raise ConfigurationError("Either `pfx_blob` or `key_vault_secret_id` must be set")

    if spec.has_vault_reference:
        # SAFETY: has_vault_reference guarantees a non-empty string
        secret_uri = spec.key_vault_secret_id or ""
        return VaultReference(secret_uri=secret_uri, reference=parse_secret_reference(secret_uri))

    pfx_blob = _secret(spec.pfx_blob)
    if not pfx_blob:
        raise ConfigurationError("`password` requires `pfx_blob` to be set")
    return InlinePfx(pfx_bytes=decode_pfx_blob(pfx_blob), password=_secret(spec.password))


def _secret(value: SecretStr | None) -> str:
    return value.get_secret_value() if value is not None else ""


def _comparable(name: str, value: Any) -> Any:
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    if name == "location" and value:
        return normalize_location(value)
    return value or None


# =============================================================================
# Output State
# =============================================================================


@dataclass
class CertificateState:
    """Provider-managed state re-derived from the remote certificate.

    An empty id means the certificate no longer exists remotely and should
    be dropped from tracked state.
    """

    id: str = ""
    name: str | None = None
    resource_group_name: str | None = None
    location: str | None = None
    tags: dict[str, str] = field(default_factory=dict)

    # Computed by the service
    friendly_name: str | None = None
    subject_name: str | None = None
    host_names: list[str] = field(default_factory=list)
    issuer: str | None = None
    issue_date: str | None = None
    expiration_date: str | None = None
    thumbprint: str | None = None
    hosting_environment_profile_id: str | None = None

    @property
    def exists(self) -> bool:
        return bool(self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
