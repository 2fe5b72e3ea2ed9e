"""Azure API Mock for Integration Testing.

In-memory stand-ins for the App Service certificates API, the ARM
generic resources API (Key Vault lookup) and managed identity, so the
controller can be exercised end to end without Azure connectivity.

Key Features:
- In-memory certificates with service-computed fields
- Call recording for asserting which remote calls were (not) made
- Error and latency injection for failure and timeout scenarios

Usage:
    from azure_mock import MockAzureContext

    with MockAzureContext() as ctx:
        controller = CertificateController(build_clients(config))
        state = await controller.create_or_update(spec)

        assert ctx.certificates.count == 1
"""

from .context import MockAzureContext, mock_azure_context
from .credential import MockManagedIdentityCredential, create_mock_credential
from .resources import MockGenericResource, MockResourceClient, MockResourceState
from .web import (
    MockCertificate,
    MockCertificateState,
    MockHostingEnvironmentProfile,
    MockWebClient,
)

__all__ = [
    "MockAzureContext",
    "MockCertificate",
    "MockCertificateState",
    "MockGenericResource",
    "MockHostingEnvironmentProfile",
    "MockManagedIdentityCredential",
    "MockResourceClient",
    "MockResourceState",
    "MockWebClient",
    "create_mock_credential",
    "mock_azure_context",
]
