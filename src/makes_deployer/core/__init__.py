"""
Core abstractions for the cloud service deployer.

Modules:
    context: DeploymentTarget, ArtifactReference and DeploymentContext
    config_loader: Parameter file loading and target resolution
    polling: Bounded, cancellable waits
    exceptions: Custom exception types for deployment operations

Usage:
    from makes_deployer.core import DeploymentContext, resolve_target

    target = resolve_target(params, prompt=False)
    context = DeploymentContext(target=target, settings=settings, provider=provider)
"""

from .context import ArtifactReference, DeploymentContext, DeploymentTarget, SlotState, StorageAccountInfo
from .config_loader import load_parameter_file, merge_parameters, resolve_target
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DeploymentCancelledError,
    DeploymentError,
    DeploymentTimeoutError,
    OperationFailedError,
    ResourceCreationError,
    ResourceNotFoundError,
    ValidationError,
)
from .polling import wait_until

__all__ = [
    # Context
    "ArtifactReference",
    "DeploymentContext",
    "DeploymentTarget",
    "SlotState",
    "StorageAccountInfo",
    # Parameters
    "load_parameter_file",
    "merge_parameters",
    "resolve_target",
    # Polling
    "wait_until",
    # Exceptions
    "AuthenticationError",
    "ConfigurationError",
    "DeploymentCancelledError",
    "DeploymentError",
    "DeploymentTimeoutError",
    "OperationFailedError",
    "ResourceCreationError",
    "ResourceNotFoundError",
    "ValidationError",
]
