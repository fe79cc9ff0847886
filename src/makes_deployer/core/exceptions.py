"""
Custom exceptions for the cloud service deployer.

This module defines a hierarchy of exceptions used throughout the deployment
workflow. Components raise them; only the CLI entry point turns them into a
one-line error message and a non-zero exit code.

Exception Hierarchy:
    DeploymentError (base)
    ├── ValidationError - Missing or invalid input parameter
    │   └── ConfigurationError - Unreadable parameter file
    ├── AuthenticationError - No usable Azure credential
    ├── ResourceNotFoundError - Storage account or artifact missing
    ├── ResourceCreationError - Failed to create hosted service or deployment
    ├── OperationFailedError - Asynchronous platform operation failed
    ├── DeploymentTimeoutError - Bounded wait expired
    └── DeploymentCancelledError - Cancellation requested during a wait
"""

from typing import Optional


class DeploymentError(Exception):
    """
    Base exception for all deployment-related errors.

    Attributes:
        message: Human-readable error description
        service_name: Optional hosted service where the error occurred
        slot: Optional deployment slot ("production" or "staging")
    """

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        slot: Optional[str] = None
    ):
        self.message = message
        self.service_name = service_name
        self.slot = slot

        # Build detailed message with context
        details = []
        if service_name:
            details.append(f"service={service_name}")
        if slot:
            details.append(f"slot={slot}")

        if details:
            full_message = f"{message} [{', '.join(details)}]"
        else:
            full_message = message

        super().__init__(full_message)


class ValidationError(DeploymentError):
    """
    Raised when an input parameter is missing or invalid.

    Always raised before any remote call is made.

    Example:
        >>> resolve_engine_type("graph")
        ValidationError: Invalid EngineType 'graph'. Valid: ['entity', 'semantic']
    """

    def __init__(self, message: str, parameter: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message)


class ConfigurationError(ValidationError):
    """
    Raised when a parameter file is missing or has invalid JSON.
    """

    def __init__(self, message: str, config_file: Optional[str] = None):
        self.config_file = config_file
        if config_file:
            message = f"{message} (file: {config_file})"
        super().__init__(message)


class AuthenticationError(DeploymentError):
    """Raised when no Azure credential can be obtained."""


class ResourceNotFoundError(DeploymentError):
    """
    Raised when a required remote resource does not exist.

    Attributes:
        resource_type: Type of resource (e.g., "storage_account", "blob")
        resource_name: Name of the resource that was looked up
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None
    ):
        self.resource_type = resource_type
        self.resource_name = resource_name
        super().__init__(message)


class ResourceCreationError(DeploymentError):
    """
    Raised when a hosted service or deployment fails to create.

    This wraps Azure SDK errors with the resource that was being created.

    Attributes:
        resource_type: Type of resource (e.g., "hosted_service", "deployment")
        resource_name: Name of the resource that failed
        original_error: The underlying SDK exception
    """

    def __init__(
        self,
        resource_type: str,
        resource_name: str,
        service_name: Optional[str] = None,
        slot: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.original_error = original_error

        message = f"Failed to create {resource_type} '{resource_name}'"
        if original_error:
            message += f": {str(original_error)}"

        super().__init__(message, service_name=service_name, slot=slot)


class OperationFailedError(DeploymentError):
    """
    Raised when an asynchronous Service Management operation ends as Failed.

    Attributes:
        operation: Operation description (e.g., "swap", "delete deployment")
        request_id: Platform request id of the operation
    """

    def __init__(
        self,
        operation: str,
        request_id: Optional[str] = None,
        reason: Optional[str] = None,
        service_name: Optional[str] = None,
        slot: Optional[str] = None
    ):
        self.operation = operation
        self.request_id = request_id
        self.reason = reason

        message = f"Operation '{operation}' failed"
        if request_id:
            message += f" (request {request_id})"
        if reason:
            message += f": {reason}"

        super().__init__(message, service_name=service_name, slot=slot)


class DeploymentTimeoutError(DeploymentError):
    """
    Raised when a bounded wait expires before its condition holds.

    Attributes:
        description: What was being waited for
        timeout: Maximum wait in seconds
    """

    def __init__(self, description: str, timeout: float, **context):
        self.description = description
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for {description}",
            **context
        )


class DeploymentCancelledError(DeploymentError):
    """Raised when a wait is cancelled via its cancellation event."""
