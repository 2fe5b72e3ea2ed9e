"""Tests for error classification."""

from __future__ import annotations

import pytest
from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
)

from certificate_controller.errors import (
    AlreadyExistsError,
    CertificateError,
    ConfigurationError,
    KeyVaultResolutionError,
    NotFoundError,
    OperationTimeoutError,
    RemoteAPIError,
    response_was_not_found,
    wrap_remote_error,
)


def http_error(status_code: int) -> HttpResponseError:
    error = HttpResponseError(message=f"status {status_code}")
    error.status_code = status_code
    return error


class TestResponseWasNotFound:
    """Tests for not-found detection."""

    def test_resource_not_found(self) -> None:
        """Test the SDK's dedicated not-found error."""
        assert response_was_not_found(ResourceNotFoundError(message="gone"))

    def test_http_404(self) -> None:
        """Test a generic HTTP error with status 404."""
        assert response_was_not_found(http_error(404))

    @pytest.mark.parametrize(
        "error",
        [
            http_error(500),
            http_error(403),
            ResourceExistsError(message="exists"),
            ServiceRequestError(message="connection reset"),
            ValueError("unrelated"),
        ],
    )
    def test_other_errors(self, error: Exception) -> None:
        """Test that nothing else counts as not found."""
        assert not response_was_not_found(error)


class TestWrapRemoteError:
    """Tests for SDK error wrapping."""

    def test_not_found_becomes_not_found_error(self) -> None:
        """Test that not-found maps to the internal signal."""
        error = wrap_remote_error("deleting", "cert1", "rg1", http_error(404))

        assert isinstance(error, NotFoundError)

    def test_other_becomes_remote_api_error(self) -> None:
        """Test that other failures keep the operation, names and status code."""
        error = wrap_remote_error("deleting", "cert1", "rg1", http_error(500))

        assert isinstance(error, RemoteAPIError)
        assert error.status_code == 500
        assert error.operation == "deleting"
        assert str(error).startswith("deleting App Service Certificate 'cert1'")
        assert "(Resource Group 'rg1')" in str(error)

    def test_transport_error_has_no_status(self) -> None:
        """Test that connection failures carry no status code."""
        error = wrap_remote_error("retrieving", "c", "rg", ServiceRequestError(message="reset"))

        assert isinstance(error, RemoteAPIError)
        assert error.status_code is None


class TestHierarchy:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("x"),
            KeyVaultResolutionError("x"),
            AlreadyExistsError("/x"),
            NotFoundError("x"),
            OperationTimeoutError("read", 300),
        ],
    )
    def test_all_derive_from_certificate_error(self, error: Exception) -> None:
        """Test that callers can catch every controller error at once."""
        assert isinstance(error, CertificateError)

    def test_already_exists_message(self) -> None:
        """Test that the import hint names the existing identity."""
        error = AlreadyExistsError("/subscriptions/s/x")

        assert error.resource_id == "/subscriptions/s/x"
        assert '"/subscriptions/s/x" already exists' in str(error)

    def test_timeout_message(self) -> None:
        """Test the timeout message rounds to whole seconds."""
        assert str(OperationTimeoutError("delete", 1800.4)) == "delete timed out after 1800s"
