"""Mock Azure Resource Manager generic resources API.

Only the surface used for Key Vault resolution is modelled:
resources.list(filter=...) and resources.get_by_id(resource_id, api_version).
"""

from __future__ import annotations

import re
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from azure.core.exceptions import ResourceNotFoundError

from .web import DEFAULT_SUBSCRIPTION_ID

KEY_VAULT_TYPE = "Microsoft.KeyVault/vaults"

_NAME_FILTER = re.compile(r"name eq '(.+?)'")
_TYPE_FILTER = re.compile(r"resourceType eq '(.+?)'")


@dataclass
class MockGenericResource:
    """Mimics azure.mgmt.resource.resources.models.GenericResource."""

    id: str
    name: str
    type: str
    location: str = "westus"
    properties: dict[str, Any] = field(default_factory=dict)


class MockResourceState:
    """In-memory generic resources, keyed by lowercased resource ID."""

    def __init__(self, subscription_id: str = DEFAULT_SUBSCRIPTION_ID) -> None:
        self.subscription_id = subscription_id
        self._resources: dict[str, MockGenericResource] = {}

    def add_vault(
        self,
        name: str,
        vault_uri: str | None = None,
        resource_group: str = "vault-rg",
        subscription_id: str | None = None,
    ) -> MockGenericResource:
        """Register a Key Vault; vault_uri defaults to the public cloud URI."""
        subscription = subscription_id or self.subscription_id
        resource = MockGenericResource(
            id=(
                f"/subscriptions/{subscription}/resourceGroups/{resource_group}"
                f"/providers/{KEY_VAULT_TYPE}/{name}"
            ),
            name=name,
            type=KEY_VAULT_TYPE,
            properties={"vaultUri": vault_uri or f"https://{name}.vault.azure.net/"},
        )
        self._resources[resource.id.lower()] = resource
        return resource

    def get(self, resource_id: str) -> MockGenericResource | None:
        return self._resources.get(resource_id.lower())

    def find(self, resource_type: str | None, name: str | None) -> list[MockGenericResource]:
        return [
            resource
            for resource in self._resources.values()
            if (resource_type is None or resource.type.lower() == resource_type.lower())
            and (name is None or resource.name.lower() == name.lower())
        ]

    @property
    def resource_count(self) -> int:
        return len(self._resources)


class MockResourceClient:
    """Mock of azure.mgmt.resource.ResourceManagementClient."""

    def __init__(self, state: MockResourceState | None = None) -> None:
        self.state = state or MockResourceState()
        self.resources = _MockResourcesOperations(self.state)


class _MockResourcesOperations:
    """Mock resources operation group."""

    def __init__(self, state: MockResourceState) -> None:
        self._state = state
        self.calls: list[tuple[str, str]] = []
        self._errors: dict[str, list[Exception]] = defaultdict(list)
        self._delays: dict[str, float] = {}

    def inject_error(self, operation: str, error: Exception, times: int = 1) -> None:
        """Raise error on the next `times` calls of operation."""
        self._errors[operation].extend([error] * times)

    def inject_delay(self, operation: str, seconds: float) -> None:
        self._delays[operation] = seconds

    def _before(self, operation: str, argument: str) -> None:
        self.calls.append((operation, argument))
        if delay := self._delays.get(operation):
            time.sleep(delay)
        if self._errors[operation]:
            raise self._errors[operation].pop(0)

    def list(self, filter: str | None = None, **_kwargs: Any) -> list[MockGenericResource]:  # noqa: A002
        self._before("list", filter or "")

        name_match = _NAME_FILTER.search(filter or "")
        type_match = _TYPE_FILTER.search(filter or "")
        return self._state.find(
            type_match.group(1) if type_match else None,
            name_match.group(1) if name_match else None,
        )

    def get_by_id(self, resource_id: str, api_version: str, **_kwargs: Any) -> MockGenericResource:
        self._before("get_by_id", resource_id)

        resource = self._state.get(resource_id)
        if resource is None:
            raise ResourceNotFoundError(message=f"Resource {resource_id!r} not found")
        return resource
