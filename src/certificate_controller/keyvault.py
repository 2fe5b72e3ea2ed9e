"""Key Vault secret references.

A certificate can be sourced from a Key Vault secret instead of an inline
PFX. The App Service API wants the vault's ARM resource ID plus the secret
name, while users supply the secret's data-plane URI, e.g.:

    https://my-vault.vault.azure.net/secrets/my-cert/0123456789abcdef

so the base URL has to be mapped back to a vault resource via ARM.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from azure.keyvault.secrets import KeyVaultSecretIdentifier

from .errors import ConfigurationError, KeyVaultResolutionError

if TYPE_CHECKING:
    from azure.mgmt.resource import ResourceManagementClient

logger = logging.getLogger(__name__)

KEY_VAULT_RESOURCE_TYPE = "Microsoft.KeyVault/vaults"
KEY_VAULT_API_VERSION = "2022-07-01"

# App Service accepts certificates stored either as secrets or as KV certificates
SUPPORTED_NESTED_ITEM_TYPES = frozenset({"secrets", "certificates"})


@dataclass(frozen=True)
class SecretReference:
    """A parsed Key Vault nested item ID."""

    vault_base_url: str
    nested_item_type: str
    name: str
    version: str | None = None

    @property
    def vault_name(self) -> str:
        return vault_name_from_base_url(self.vault_base_url)


def parse_secret_reference(secret_id: str) -> SecretReference:
    """Split a Key Vault secret URI into vault base URL and secret name.

    Raises:
        ConfigurationError: If the URI is not a Key Vault secret or certificate ID.
    """
    try:
        identifier = KeyVaultSecretIdentifier(secret_id)
    except ValueError as e:
        raise ConfigurationError(f"Invalid Key Vault secret ID {secret_id!r}: {e}") from e

    parsed = urlparse(secret_id)
    if parsed.scheme != "https":
        raise ConfigurationError(f"Key Vault secret ID must use https: {secret_id!r}")

    nested_item_type = parsed.path.strip("/").split("/")[0].lower()
    if nested_item_type not in SUPPORTED_NESTED_ITEM_TYPES:
        raise ConfigurationError(
            f"Key Vault ID {secret_id!r} must reference one of "
            f"{sorted(SUPPORTED_NESTED_ITEM_TYPES)}, got {nested_item_type!r}"
        )

    return SecretReference(
        vault_base_url=_normalize_base_url(identifier.vault_url),
        nested_item_type=nested_item_type,
        name=identifier.name,
        version=identifier.version,
    )


def vault_name_from_base_url(vault_base_url: str) -> str:
    """The vault name is the first DNS label of the vault host."""
    hostname = urlparse(vault_base_url).hostname
    if not hostname:
        raise ConfigurationError(f"Invalid Key Vault base URL: {vault_base_url!r}")
    return hostname.split(".")[0]


def resolve_key_vault_id(client: ResourceManagementClient, vault_base_url: str) -> str:
    """Resolve a vault base URL to the vault's ARM resource ID.

    Candidates are listed by name, then confirmed by comparing each vault's
    vaultUri, since vault names are only unique per cloud, not per tenant
    listing.

    Raises:
        KeyVaultResolutionError: If no vault or more than one vault matches.
        azure.core.exceptions.AzureError: If the ARM lookup fails.
    """
    vault_name = vault_name_from_base_url(vault_base_url)
    expected = _normalize_base_url(vault_base_url)
    filter_expr = f"resourceType eq '{KEY_VAULT_RESOURCE_TYPE}' and name eq '{vault_name}'"

    matches: list[str] = []
    for candidate in client.resources.list(filter=filter_expr):
        if not candidate.id:
            continue
        vault = client.resources.get_by_id(candidate.id, KEY_VAULT_API_VERSION)
        vault_uri = (vault.properties or {}).get("vaultUri") or ""
        if _normalize_base_url(vault_uri) == expected:
            matches.append(candidate.id)

    if not matches:
        raise KeyVaultResolutionError(
            f"Unable to determine the Resource ID for the Key Vault at URL {vault_base_url!r}"
        )
    if len(matches) > 1:
        raise KeyVaultResolutionError(
            f"Key Vault URL {vault_base_url!r} matched {len(matches)} vaults: {matches}"
        )

    logger.debug(
        "Resolved Key Vault resource ID",
        extra={"vault_base_url": vault_base_url, "key_vault_id": matches[0]},
    )
    return matches[0]


def _normalize_base_url(url: str) -> str:
    return url.rstrip("/").lower()
