"""Tests for Key Vault secret reference parsing and vault resolution."""

from __future__ import annotations

import pytest
from azure_mock import MockResourceClient, MockResourceState

from certificate_controller.errors import ConfigurationError, KeyVaultResolutionError
from certificate_controller.keyvault import (
    parse_secret_reference,
    resolve_key_vault_id,
    vault_name_from_base_url,
)


class TestParseSecretReference:
    """Tests for parse_secret_reference()."""

    def test_versioned_secret(self) -> None:
        """Test that base URL, name and version are split out."""
        reference = parse_secret_reference(
            "https://my-vault.vault.azure.net/secrets/my-cert/0123456789abcdef"
        )

        assert reference.vault_base_url == "https://my-vault.vault.azure.net"
        assert reference.nested_item_type == "secrets"
        assert reference.name == "my-cert"
        assert reference.version == "0123456789abcdef"
        assert reference.vault_name == "my-vault"

    def test_versionless_secret(self) -> None:
        """Test that the version is optional."""
        reference = parse_secret_reference("https://my-vault.vault.azure.net/secrets/my-cert")

        assert reference.name == "my-cert"
        assert reference.version is None

    def test_certificate_path_accepted(self) -> None:
        """Test that Key Vault certificate IDs are accepted too."""
        reference = parse_secret_reference("https://my-vault.vault.azure.net/certificates/c1")

        assert reference.nested_item_type == "certificates"
        assert reference.name == "c1"

    def test_base_url_normalized(self) -> None:
        """Test that the base URL is lowercased without trailing slash."""
        reference = parse_secret_reference("https://My-Vault.Vault.Azure.Net/secrets/c1")

        assert reference.vault_base_url == "https://my-vault.vault.azure.net"

    @pytest.mark.parametrize(
        "secret_id",
        [
            "not a url",
            "https://my-vault.vault.azure.net/",
            "https://my-vault.vault.azure.net/keys/k1",
            "http://my-vault.vault.azure.net/secrets/c1",
            "https://my-vault.vault.azure.net/secrets/c1/v1/extra",
        ],
    )
    def test_invalid_references(self, secret_id: str) -> None:
        """Test that anything but an https secret or certificate ID is rejected."""
        with pytest.raises(ConfigurationError):
            parse_secret_reference(secret_id)

    def test_vault_name_from_base_url(self) -> None:
        """Test that the vault name is the first DNS label."""
        assert vault_name_from_base_url("https://kv1.vault.usgovcloudapi.net") == "kv1"


class TestResolveKeyVaultId:
    """Tests for resolve_key_vault_id()."""

    def test_single_match(self) -> None:
        """Test that a vault whose URI matches is returned."""
        state = MockResourceState()
        vault = state.add_vault("kv1")
        client = MockResourceClient(state)

        key_vault_id = resolve_key_vault_id(client, "https://kv1.vault.azure.net")  # type: ignore[arg-type]

        assert key_vault_id == vault.id
        list_call, get_call = client.resources.calls
        assert list_call[0] == "list"
        assert "resourceType eq 'Microsoft.KeyVault/vaults'" in list_call[1]
        assert "name eq 'kv1'" in list_call[1]
        assert get_call == ("get_by_id", vault.id)

    def test_trailing_slash_on_vault_uri(self) -> None:
        """Test that vaultUri comparison ignores the trailing slash and case."""
        state = MockResourceState()
        vault = state.add_vault("kv1", vault_uri="https://KV1.vault.azure.net/")

        key_vault_id = resolve_key_vault_id(
            MockResourceClient(state),  # type: ignore[arg-type]
            "https://kv1.vault.azure.net/",
        )

        assert key_vault_id == vault.id

    def test_no_match(self) -> None:
        """Test that an unknown vault raises KeyVaultResolutionError."""
        with pytest.raises(KeyVaultResolutionError) as exc_info:
            resolve_key_vault_id(MockResourceClient(), "https://kv1.vault.azure.net")  # type: ignore[arg-type]

        assert isinstance(exc_info.value, ConfigurationError)

    def test_multiple_matches(self) -> None:
        """Test that ambiguity is refused rather than guessed."""
        state = MockResourceState()
        state.add_vault("kv1", resource_group="a")
        state.add_vault("kv1", resource_group="b")

        with pytest.raises(KeyVaultResolutionError, match="matched 2 vaults"):
            resolve_key_vault_id(MockResourceClient(state), "https://kv1.vault.azure.net")  # type: ignore[arg-type]

