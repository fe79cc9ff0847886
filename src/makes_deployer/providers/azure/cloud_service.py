"""
Azure Cloud Services: hosted service and deployment slot management.

Uses the classic Service Management API. Mutating calls (create, swap,
delete) are asynchronous on the platform side: they return a request id
that is polled until the operation finishes.

Slot Model:
    A hosted service has a production and a staging slot, each holding at
    most one deployment (package + configuration). A swap exchanges which
    deployment is served from the production address.
"""

import base64
import logging
import threading
import uuid
from typing import TYPE_CHECKING, Any, Optional

from azure.common import AzureHttpError, AzureMissingResourceHttpError

import makes_deployer.constants as CONSTANTS
from makes_deployer.core.context import DeploymentTarget, SlotState
from makes_deployer.core.exceptions import OperationFailedError, ResourceCreationError
from makes_deployer.core.polling import wait_until

if TYPE_CHECKING:
    from makes_deployer.providers.azure.provider import AzureProvider
    from makes_deployer.settings import Settings

logger = logging.getLogger(__name__)


def _normalize_location(location: str) -> str:
    return (location or "").replace(" ", "").lower()


# ==========================================
# Hosted Service
# ==========================================

def resolve_location(provider: 'AzureProvider', location: str) -> str:
    """
    Map a Resource Manager region name ("westus") to its Service Management
    display name ("West US").

    Returns the input unchanged if no location matches.
    """
    sms = provider.clients["service_management"]
    wanted = _normalize_location(location)
    for candidate in sms.list_locations():
        if _normalize_location(candidate.name) == wanted:
            return candidate.name
    logger.warning(f"No Service Management location matches '{location}', using it as-is")
    return location


def check_hosted_service(provider: 'AzureProvider', service_name: str) -> bool:
    """
    Check if the hosted service exists.

    Returns:
        True if the hosted service exists, False otherwise
    """
    try:
        provider.clients["service_management"].get_hosted_service_properties(service_name)
        logger.info(f"✓ Cloud Service exists: {service_name}")
        return True
    except AzureMissingResourceHttpError:
        logger.info(f"✗ Cloud Service not found: {service_name}")
        return False


def ensure_hosted_service(provider: 'AzureProvider', service_name: str, location: str) -> bool:
    """
    Create the hosted service unless it already exists.

    Args:
        provider: Azure Provider instance
        service_name: Hosted service name (also the DNS label)
        location: Region of the storage account holding the build

    Returns:
        True if the service was created, False if it already existed

    Raises:
        ResourceCreationError: If creation fails
    """
    if check_hosted_service(provider, service_name):
        return False

    sms_location = resolve_location(provider, location)
    logger.info(f"Creating Cloud Service: {service_name} in {sms_location}")

    try:
        provider.clients["service_management"].create_hosted_service(
            service_name=service_name,
            label=service_name,
            location=sms_location,
        )
    except AzureHttpError as e:
        logger.error(f"Failed to create Cloud Service: {e.status_code} - {e}")
        raise ResourceCreationError(
            "hosted_service", service_name, service_name=service_name, original_error=e
        )

    logger.info(f"✓ Cloud Service created: {service_name}")
    return True


# ==========================================
# Deployment Slots
# ==========================================

def get_deployment(provider: 'AzureProvider', service_name: str, slot: str) -> Optional[Any]:
    """
    Read the deployment currently in a slot.

    Returns:
        The Deployment object, or None if the slot is empty
    """
    try:
        return provider.clients["service_management"].get_deployment_by_slot(service_name, slot)
    except AzureMissingResourceHttpError:
        return None


def get_slot_state(provider: 'AzureProvider', service_name: str, slot: str) -> SlotState:
    """Read whether a slot is occupied; never cached."""
    if get_deployment(provider, service_name, slot) is None:
        return SlotState.ABSENT
    return SlotState(slot)


def instances_ready(deployment: Any) -> bool:
    """True when the deployment has role instances and every one of them is ready."""
    if deployment is None:
        return False
    instances = list(deployment.role_instance_list or [])
    return bool(instances) and all(
        instance.instance_status == CONSTANTS.ROLE_READY_STATUS for instance in instances
    )


def wait_for_operation(
    provider: 'AzureProvider',
    result: Any,
    description: str,
    settings: 'Settings',
    cancel_event: Optional[threading.Event] = None,
    **context
) -> None:
    """
    Wait for an asynchronous Service Management operation to finish.

    Args:
        result: Return value of the mutating call (carries request_id)
        description: Operation description for logs and errors

    Raises:
        OperationFailedError: If the operation ends as Failed
        DeploymentTimeoutError: If it is still running after the operation timeout
    """
    request_id = getattr(result, "request_id", None)
    if not request_id:
        return

    sms = provider.clients["service_management"]

    def finished():
        operation = sms.get_operation_status(request_id)
        if operation.status == CONSTANTS.OPERATION_IN_PROGRESS:
            return None
        return operation

    operation = wait_until(
        finished,
        description,
        timeout=settings.OPERATION_TIMEOUT_SECONDS,
        interval=settings.OPERATION_POLL_INTERVAL_SECONDS,
        cancel_event=cancel_event,
        **context
    )

    if operation.status != CONSTANTS.OPERATION_SUCCEEDED:
        error = getattr(operation, "error", None)
        reason = getattr(error, "message", None) or operation.status
        raise OperationFailedError(description, request_id=request_id, reason=reason, **context)


def create_deployment(
    provider: 'AzureProvider',
    target: DeploymentTarget,
    slot: str,
    package_url: str,
    configuration: str,
    settings: 'Settings',
    cancel_event: Optional[threading.Event] = None
) -> str:
    """
    Create and start a deployment in a slot.

    Args:
        provider: Azure Provider instance
        target: Resolved deployment target
        slot: "production" or "staging"
        package_url: SAS URL of the package blob
        configuration: Materialized configuration text
        settings: Settings (operation timeouts)
        cancel_event: Optional cancellation event

    Returns:
        Name of the new deployment

    Raises:
        ResourceCreationError: If the platform rejects or fails the deployment
    """
    deployment_name = uuid.uuid4().hex
    label = f"{target.engine_type} {target.data_version} {target.instance_size}"

    logger.info(f"Creating {slot} deployment '{deployment_name}' for {target.service_name}")

    try:
        result = provider.clients["service_management"].create_deployment(
            service_name=target.service_name,
            deployment_slot=slot,
            name=deployment_name,
            package_url=package_url,
            label=label,
            configuration=base64.b64encode(configuration.encode("utf-8")).decode("ascii"),
            start_deployment=True,
        )
        wait_for_operation(
            provider, result, f"{slot} deployment creation", settings, cancel_event,
            service_name=target.service_name, slot=slot
        )
    except (AzureHttpError, OperationFailedError) as e:
        logger.error(f"Failed to create {slot} deployment: {e}")
        raise ResourceCreationError(
            "deployment", deployment_name,
            service_name=target.service_name, slot=slot, original_error=e
        )

    logger.info(f"✓ Deployment created: {deployment_name} ({slot})")
    return deployment_name


def wait_for_ready(
    provider: 'AzureProvider',
    service_name: str,
    slot: str,
    settings: 'Settings',
    cancel_event: Optional[threading.Event] = None
) -> Any:
    """
    Poll a slot until every role instance reports ReadyRole.

    Returns:
        The ready Deployment object

    Raises:
        DeploymentTimeoutError: After settings.READY_TIMEOUT_SECONDS
        DeploymentCancelledError: If cancel_event is set
    """
    logger.info(f"Waiting for {slot} role instances of {service_name} to become ready...")

    def ready():
        deployment = get_deployment(provider, service_name, slot)
        if deployment is not None:
            states = ", ".join(
                f"{i.instance_name}={i.instance_status}" for i in (deployment.role_instance_list or [])
            )
            logger.debug(f"  {slot}: {states or 'no instances yet'}")
        return deployment if instances_ready(deployment) else None

    deployment = wait_until(
        ready,
        f"{slot} role instances",
        timeout=settings.READY_TIMEOUT_SECONDS,
        interval=settings.POLL_INTERVAL_SECONDS,
        cancel_event=cancel_event,
        service_name=service_name,
        slot=slot,
    )
    logger.info(f"✓ All {slot} role instances ready")
    return deployment


def swap_deployments(
    provider: 'AzureProvider',
    service_name: str,
    settings: 'Settings',
    cancel_event: Optional[threading.Event] = None
) -> bool:
    """
    Swap the staging deployment into production.

    Both slots are re-read first, so a run interrupted after a completed
    swap can be repeated safely.

    Returns:
        True if a swap was performed, False if there was nothing to swap

    Raises:
        OperationFailedError: If the swap fails
    """
    staging = get_deployment(provider, service_name, CONSTANTS.SLOT_STAGING)
    if staging is None:
        logger.warning(f"No staging deployment on {service_name}, skipping swap")
        return False

    production = get_deployment(provider, service_name, CONSTANTS.SLOT_PRODUCTION)
    if production is None:
        raise OperationFailedError(
            "swap", reason="no production deployment to swap with", service_name=service_name
        )

    logger.info(f"Swapping staging '{staging.name}' into production on {service_name}")

    try:
        result = provider.clients["service_management"].swap_deployment(
            service_name, production.name, staging.name
        )
    except AzureHttpError as e:
        logger.error(f"Failed to swap deployments: {e.status_code} - {e}")
        raise OperationFailedError("swap", reason=str(e), service_name=service_name)

    wait_for_operation(
        provider, result, "slot swap", settings, cancel_event, service_name=service_name
    )
    logger.info("✓ Swap complete")
    return True


def delete_deployment(
    provider: 'AzureProvider',
    service_name: str,
    slot: str,
    settings: 'Settings',
    cancel_event: Optional[threading.Event] = None
) -> bool:
    """
    Delete the deployment in a slot together with its backing VHD storage.

    Returns:
        True if a deployment was deleted, False if the slot was already empty

    Raises:
        OperationFailedError: If the deletion fails
    """
    deployment = get_deployment(provider, service_name, slot)
    if deployment is None:
        logger.info(f"{slot.capitalize()} slot of {service_name} already empty")
        return False

    logger.info(f"Deleting {slot} deployment '{deployment.name}' from {service_name}")

    try:
        result = provider.clients["service_management"].delete_deployment(
            service_name, deployment.name, delete_vhd=True
        )
    except AzureMissingResourceHttpError:
        logger.info(f"Deployment already deleted: {deployment.name}")
        return False
    except AzureHttpError as e:
        logger.error(f"Failed to delete deployment: {e.status_code} - {e}")
        raise OperationFailedError(
            "delete deployment", reason=str(e), service_name=service_name, slot=slot
        )

    wait_for_operation(
        provider, result, f"{slot} deployment deletion", settings, cancel_event,
        service_name=service_name, slot=slot
    )
    logger.info(f"✓ Deployment deleted: {deployment.name}")
    return True
