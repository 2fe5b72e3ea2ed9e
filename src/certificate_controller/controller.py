"""Reconciliation of one App Service certificate against Azure.

Four entry points are exposed to the host engine:

- create_or_update: validate, guard against adopting foreign state, resolve
  the certificate payload, issue one create-or-replace, then read back
- read: refresh all computed fields; an absent certificate yields a state
  with an empty id, telling the host to drop it
- delete: delete by identity; an already-absent certificate is success
- import_resource: validate an external identity, then read

The controller holds no state between calls apart from the clients it was
given. It never retries; every failure is classified (see errors.py) and
returned to the host engine, which owns retry policy.

SECURITY: Every Azure call is bounded by the operation's Deadline to
prevent indefinite hangs.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from azure.core.exceptions import AzureError
from azure.mgmt.web.models import Certificate

from .clients import CertificateClients
from .errors import (
    AlreadyExistsError,
    InconsistencyError,
    NotFoundError,
    OperationTimeoutError,
    RemoteAPIError,
    wrap_remote_error,
)
from .keyvault import resolve_key_vault_id
from .models import (
    CertificateSpec,
    CertificateState,
    InlinePfx,
    VaultReference,
    validate_certificate_source,
)
from .normalize import expand_tags, flatten_tags, format_timestamp, normalize_location
from .provenance import ProvenanceLogger, get_provenance_logger
from .resource_id import CertificateId, parse_certificate_id, validate_certificate_id
from .security import log_security_audit_event
from .timeouts import Deadline, Operation, ResourceTimeouts

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_new_resource(resource_id: str | None) -> bool:
    """A certificate is being created when no identity has been retained yet."""
    return not resource_id


class CertificateController:
    """CRUD reconciliation for Microsoft.Web/certificates."""

    def __init__(
        self,
        clients: CertificateClients,
        *,
        timeouts: ResourceTimeouts | None = None,
        enable_audit_logging: bool = True,
        provenance_logger: ProvenanceLogger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            clients: Fresh SDK clients for this invocation.
            timeouts: Default budgets used when a caller passes no Deadline.
            enable_audit_logging: Emit security audit events for writes and deletes.
            provenance_logger: Provenance sink; defaults to the process logger.
        """
        self._clients = clients
        self._timeouts = timeouts or ResourceTimeouts()
        self._audit = enable_audit_logging
        self._provenance = provenance_logger or get_provenance_logger()

    @property
    def timeouts(self) -> ResourceTimeouts:
        return self._timeouts

    # =========================================================================
    # Create / Update
    # =========================================================================

    async def create_or_update(
        self,
        spec: CertificateSpec,
        resource_id: str = "",
        deadline: Deadline | None = None,
    ) -> CertificateState:
        """Apply the desired configuration and return the refreshed state.

        Args:
            spec: Desired configuration.
            resource_id: Retained identity; empty on first creation.
            deadline: Caller-supplied deadline; defaults to the create/update budget.

        Raises:
            ConfigurationError: Invalid source selection, PFX, or secret reference.
            AlreadyExistsError: First creation found a certificate with the same name.
            RemoteAPIError: Any Azure failure other than the tolerated not-found cases.
            InconsistencyError: The write succeeded but the certificate is unobservable.
            OperationTimeoutError: The deadline was exceeded.
        """
        is_new = is_new_resource(resource_id)
        operation = Operation.CREATE if is_new else Operation.UPDATE
        if deadline is None:
            deadline = Deadline.for_create_update(self._timeouts, is_new)

        with self._provenance.track(
            operation.value,
            name=spec.name,
            resource_group=spec.resource_group_name,
            resource_id=resource_id,
        ) as provenance:
            state = await self._create_or_update(spec, is_new, deadline)
            provenance.resource_id = state.id

        if self._audit:
            log_security_audit_event(
                "certificate_write",
                target_resource=state.id,
                action=operation.value,
                result="success",
            )
        return state

    async def _create_or_update(
        self, spec: CertificateSpec, is_new: bool, deadline: Deadline
    ) -> CertificateState:
        name = spec.name
        resource_group = spec.resource_group_name
        location = normalize_location(spec.location)

        logger.info(
            "Preparing arguments for App Service Certificate",
            extra={"certificate_name": name, "resource_group": resource_group, "is_new": is_new},
        )

        # Every configuration error surfaces before any network traffic
        source = validate_certificate_source(spec)

        if spec.hosting_environment_profile_id:
            logger.warning(
                "hosting_environment_profile_id is deprecated and ignored; "
                "use app_service_plan_id instead",
                extra={"certificate_name": name, "resource_group": resource_group},
            )

        if is_new:
            await self._ensure_absent(name, resource_group, deadline)

        envelope_args: dict[str, Any] = {
            "location": location,
            "tags": expand_tags(spec.tags),
        }
        if spec.app_service_plan_id:
            envelope_args["server_farm_id"] = spec.app_service_plan_id

        match source:
            case InlinePfx():
                envelope_args["pfx_blob"] = source.pfx_bytes
                envelope_args["password"] = source.password
            case VaultReference():
                key_vault_id, secret_name = await self._resolve_vault_reference(
                    source, name, resource_group, deadline
                )
                envelope_args["key_vault_id"] = key_vault_id
                envelope_args["key_vault_secret_name"] = secret_name

        envelope = Certificate(**envelope_args)

        try:
            await self._call(
                deadline,
                "App Service Certificate create/update",
                self._clients.web.certificates.create_or_update,
                resource_group,
                name,
                envelope,
            )
        except AzureError as e:
            raise RemoteAPIError("creating/updating", name, resource_group, e) from e

        try:
            created = await self._get(name, resource_group, deadline, "retrieving")
        except NotFoundError as e:
            raise InconsistencyError(
                f"App Service Certificate {name!r} (Resource Group {resource_group!r}) "
                "was not found after a successful create/update"
            ) from e

        if not created.id:
            raise InconsistencyError(
                f"Cannot read App Service Certificate {name!r} (Resource Group {resource_group!r}) ID"
            )

        state = await self._read(created.id, deadline)
        if not state.exists:
            raise InconsistencyError(
                f"App Service Certificate {created.id!r} disappeared before it could be read"
            )

        logger.info(
            "App Service Certificate reconciled",
            extra={"resource_id": state.id, "thumbprint": state.thumbprint},
        )
        return state

    async def _ensure_absent(self, name: str, resource_group: str, deadline: Deadline) -> None:
        """Existence guard for first creation.

        Raises:
            AlreadyExistsError: If a certificate with this name already exists.
        """
        try:
            existing = await self._get(
                name, resource_group, deadline, "checking for presence of existing"
            )
        except NotFoundError:
            return

        if existing.id:
            logger.warning(
                "App Service Certificate already exists and must be imported",
                extra={"resource_id": existing.id},
            )
            raise AlreadyExistsError(existing.id)

    async def _resolve_vault_reference(
        self,
        source: VaultReference,
        name: str,
        resource_group: str,
        deadline: Deadline,
    ) -> tuple[str, str]:
        reference = source.reference

        try:
            key_vault_id = await self._call(
                deadline,
                "Key Vault resolution",
                resolve_key_vault_id,
                self._clients.resources,
                reference.vault_base_url,
            )
        except AzureError as e:
            raise RemoteAPIError(
                f"retrieving the Resource ID for the Key Vault at URL "
                f"{reference.vault_base_url!r} for",
                name,
                resource_group,
                e,
            ) from e

        return key_vault_id, reference.name

    # =========================================================================
    # Read / Import
    # =========================================================================

    async def read(self, resource_id: str, deadline: Deadline | None = None) -> CertificateState:
        """Refresh state from Azure.

        Returns:
            The refreshed state, or a state with an empty id if the
            certificate no longer exists.

        Raises:
            ConfigurationError: If resource_id is malformed.
            RemoteAPIError: For Azure failures other than not-found.
            OperationTimeoutError: The deadline was exceeded.
        """
        if deadline is None:
            deadline = Deadline.for_operation(self._timeouts, Operation.READ)

        with self._provenance.track(Operation.READ.value, resource_id=resource_id) as provenance:
            state = await self._read(resource_id, deadline)
            if not state.exists:
                provenance.outcome = "absent"
        return state

    async def import_resource(
        self, resource_id: str, deadline: Deadline | None = None
    ) -> CertificateState:
        """Validate an externally supplied identity, then read it.

        Raises:
            ConfigurationError: If resource_id is not a certificate ID.
        """
        if deadline is None:
            deadline = Deadline.for_operation(self._timeouts, Operation.IMPORT)

        with self._provenance.track(Operation.IMPORT.value, resource_id=resource_id) as provenance:
            validate_certificate_id(resource_id)
            state = await self._read(resource_id, deadline)
            if not state.exists:
                provenance.outcome = "absent"
        return state

    async def _read(self, resource_id: str, deadline: Deadline) -> CertificateState:
        certificate_id = parse_certificate_id(resource_id)

        try:
            certificate = await self._get(
                certificate_id.name,
                certificate_id.resource_group,
                deadline,
                "making Read request on",
            )
        except NotFoundError:
            logger.info(
                "App Service Certificate was not found - removing from state",
                extra={"resource_id": resource_id},
            )
            return CertificateState()

        return self._to_state(resource_id, certificate_id, certificate)

    @staticmethod
    def _to_state(
        resource_id: str, certificate_id: CertificateId, certificate: Certificate
    ) -> CertificateState:
        """Map the remote certificate onto output state."""
        state = CertificateState(
            id=resource_id,
            name=certificate.name or certificate_id.name,
            resource_group_name=certificate_id.resource_group,
            tags=flatten_tags(certificate.tags),
        )

        if certificate.location:
            state.location = normalize_location(certificate.location)

        state.friendly_name = certificate.friendly_name
        state.subject_name = certificate.subject_name
        state.host_names = list(certificate.host_names or [])
        state.issuer = certificate.issuer
        state.issue_date = format_timestamp(certificate.issue_date)
        state.expiration_date = format_timestamp(certificate.expiration_date)
        state.thumbprint = certificate.thumbprint

        if profile := certificate.hosting_environment_profile:
            state.hosting_environment_profile_id = profile.id

        return state

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(self, resource_id: str, deadline: Deadline | None = None) -> None:
        """Delete the certificate; an already-absent certificate is success.

        Raises:
            ConfigurationError: If resource_id is malformed.
            RemoteAPIError: For Azure failures other than not-found.
            OperationTimeoutError: The deadline was exceeded.
        """
        if deadline is None:
            deadline = Deadline.for_operation(self._timeouts, Operation.DELETE)

        with self._provenance.track(Operation.DELETE.value, resource_id=resource_id) as provenance:
            certificate_id = parse_certificate_id(resource_id)
            provenance.name = certificate_id.name
            provenance.resource_group = certificate_id.resource_group

            logger.info("Deleting App Service Certificate", extra={"resource_id": resource_id})

            try:
                await self._call(
                    deadline,
                    "App Service Certificate delete",
                    self._clients.web.certificates.delete,
                    certificate_id.resource_group,
                    certificate_id.name,
                )
            except AzureError as e:
                error = wrap_remote_error(
                    "deleting", certificate_id.name, certificate_id.resource_group, e
                )
                if not isinstance(error, NotFoundError):
                    raise error from e
                logger.info(
                    "App Service Certificate already absent, nothing to delete",
                    extra={"resource_id": resource_id},
                )
                provenance.outcome = "absent"

        if self._audit:
            log_security_audit_event(
                "certificate_delete",
                target_resource=resource_id,
                action=Operation.DELETE.value,
                result=provenance.outcome,
            )

    # =========================================================================
    # Azure call plumbing
    # =========================================================================

    async def _get(
        self, name: str, resource_group: str, deadline: Deadline, operation: str
    ) -> Certificate:
        """Fetch a certificate.

        Raises:
            NotFoundError: If the certificate does not exist.
            RemoteAPIError: For any other Azure failure.
        """
        try:
            return await self._call(
                deadline,
                "App Service Certificate get",
                self._clients.web.certificates.get,
                resource_group,
                name,
            )
        except AzureError as e:
            raise wrap_remote_error(operation, name, resource_group, e) from e

    async def _call(
        self,
        deadline: Deadline,
        operation_name: str,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run a blocking SDK call in the executor, bounded by the deadline.

        Raises:
            OperationTimeoutError: If the deadline is exceeded.
        """
        remaining = deadline.remaining_seconds()
        if remaining <= 0:
            raise OperationTimeoutError(operation_name, deadline.timeout_seconds)

        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(func, *args)),
                timeout=remaining,
            )
        except TimeoutError as e:
            logger.error(
                f"{operation_name} timed out",
                extra={
                    "operation": deadline.operation.value,
                    "timeout_seconds": deadline.timeout_seconds,
                },
            )
            raise OperationTimeoutError(operation_name, deadline.timeout_seconds) from e
