"""Error taxonomy for certificate reconciliation.

Every error surfaced to the host engine derives from CertificateError so
callers can decide retry/abort policy by type. The controller itself never
retries.
"""

from __future__ import annotations

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError

HTTP_NOT_FOUND = 404


class CertificateError(Exception):
    """Base class for all certificate controller errors."""

    pass


class ConfigurationError(CertificateError):
    """Raised for invalid local configuration.

    Always detected before any remote call that would mutate state and never
    worth retrying without a configuration change.
    """

    pass


class KeyVaultResolutionError(ConfigurationError):
    """Raised when a Key Vault base URL cannot be mapped to exactly one vault."""

    pass


class AlreadyExistsError(CertificateError):
    """Raised when a certificate exists remotely but is not yet tracked."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(
            f'A resource with the ID "{resource_id}" already exists - to be managed '
            "by this controller it needs to be imported first."
        )


class NotFoundError(CertificateError):
    """Internal signal that the remote certificate does not exist.

    Read converts this into absence and Delete into success; it never
    reaches the host engine from those paths.
    """

    pass


class RemoteAPIError(CertificateError):
    """Raised for any remote failure other than not-found."""

    def __init__(
        self,
        operation: str,
        name: str,
        resource_group: str,
        error: Exception,
    ) -> None:
        self.operation = operation
        self.name = name
        self.resource_group = resource_group
        self.status_code: int | None = getattr(error, "status_code", None)
        super().__init__(
            f"{operation} App Service Certificate {name!r} "
            f"(Resource Group {resource_group!r}): {error}"
        )


class InconsistencyError(CertificateError):
    """Raised when a successful write is not observable by a follow-up read."""

    pass


class OperationTimeoutError(CertificateError):
    """Raised when an operation exceeds its deadline."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{operation} timed out after {timeout_seconds:.0f}s")


def response_was_not_found(error: BaseException) -> bool:
    """Check whether an Azure SDK error means the resource does not exist."""
    if isinstance(error, ResourceNotFoundError):
        return True
    if isinstance(error, HttpResponseError):
        return error.status_code == HTTP_NOT_FOUND
    return False


def wrap_remote_error(
    operation: str, name: str, resource_group: str, error: AzureError
) -> CertificateError:
    """Classify an SDK error as NotFoundError or RemoteAPIError."""
    if response_was_not_found(error):
        return NotFoundError(
            f"App Service Certificate {name!r} (Resource Group {resource_group!r}) was not found"
        )
    return RemoteAPIError(operation, name, resource_group, error)
