"""Azure SDK client bundle handed to the controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.web import WebSiteManagementClient

from .security import get_managed_identity_credential

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential

    from .config import Config


@dataclass(frozen=True)
class CertificateClients:
    """Clients for one controller invocation.

    web: App Service certificates (get / create_or_update / delete).
    resources: ARM generic resources, used to resolve Key Vault IDs.
    """

    web: WebSiteManagementClient
    resources: ResourceManagementClient


def build_clients(config: Config, credential: TokenCredential | None = None) -> CertificateClients:
    """Create fresh SDK clients for the configured subscription.

    SECURITY: Without an explicit credential a managed identity is used,
    after verifying no credential secrets are in the environment.
    """
    if credential is None:
        credential = get_managed_identity_credential(config.client_id)

    return CertificateClients(
        web=WebSiteManagementClient(credential=credential, subscription_id=config.subscription_id),
        resources=ResourceManagementClient(
            credential=credential, subscription_id=config.subscription_id
        ),
    )
