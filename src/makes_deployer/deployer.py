"""
Deployment orchestration.

Runs the whole workflow for one DeploymentTarget:

    1. Locate the storage account and its key
    2. Verify the configuration and package blobs exist
    3. Materialize the configuration locally (removed on exit)
    4. Ensure the hosted service exists
    5. Deploy:
       - no production deployment -> create in production, wait until ready
       - production deployment    -> create in staging, wait until ready,
                                     swap, delete the old deployment now in staging

Production is never modified directly when it is already serving.
"""

import logging
from typing import Any, Dict

import makes_deployer.constants as CONSTANTS
from makes_deployer.core.context import DeploymentContext, SlotState
from makes_deployer.providers.azure import cloud_service, storage

logger = logging.getLogger(__name__)


def fresh_deploy(context: DeploymentContext, package_url: str, configuration: str) -> str:
    """Create the first deployment of a service straight in production."""
    provider = context.provider
    target = context.target
    slot = CONSTANTS.SLOT_PRODUCTION

    logger.info("No production deployment found, deploying to production")
    name = cloud_service.create_deployment(
        provider, target, slot, package_url, configuration, context.settings, context.cancel_event
    )
    cloud_service.wait_for_ready(
        provider, target.service_name, slot, context.settings, context.cancel_event
    )
    return name


def blue_green_deploy(context: DeploymentContext, package_url: str, configuration: str) -> str:
    """Deploy to staging, then swap it into production and drop the old deployment."""
    provider = context.provider
    target = context.target
    settings = context.settings
    slot = CONSTANTS.SLOT_STAGING

    logger.info("Production deployment found, deploying to staging")

    # Leftover from an interrupted run would make the create call conflict
    if cloud_service.get_slot_state(provider, target.service_name, slot) is SlotState.STAGING:
        logger.warning("Removing stale staging deployment first")
        cloud_service.delete_deployment(provider, target.service_name, slot, settings, context.cancel_event)

    name = cloud_service.create_deployment(
        provider, target, slot, package_url, configuration, settings, context.cancel_event
    )
    cloud_service.wait_for_ready(provider, target.service_name, slot, settings, context.cancel_event)
    cloud_service.swap_deployments(provider, target.service_name, settings, context.cancel_event)
    cloud_service.delete_deployment(provider, target.service_name, slot, settings, context.cancel_event)
    return name


def deploy(context: DeploymentContext) -> str:
    """
    Deploy a build to its hosted service.

    Args:
        context: DeploymentContext with a resolved target and initialized provider

    Returns:
        The public test page URL of the service

    Raises:
        ResourceNotFoundError: If the storage account or an artifact is missing
        ResourceCreationError: If the service or a deployment cannot be created
        OperationFailedError: If swapping or deleting fails
        DeploymentTimeoutError: If instances do not become ready in time
    """
    provider = context.provider
    target = context.target
    settings = context.settings
    artifacts = context.artifacts

    logger.info(
        f"Deploying {target.engine_type} {target.data_version} ({target.instance_size}) "
        f"to {target.service_name}"
    )

    account = storage.locate_storage_account(provider, target.storage_account)
    storage.verify_artifacts(provider, account, settings.CONTAINER_NAME, artifacts, target)
    package_url = storage.package_url(
        account, settings.CONTAINER_NAME, artifacts.package_blob_path, settings.SAS_EXPIRY_HOURS
    )

    with storage.materialize_configuration(
        provider, account, artifacts, settings, target.service_name
    ) as config_path:
        configuration = config_path.read_text(encoding="utf-8")

        cloud_service.ensure_hosted_service(provider, target.service_name, account.location)

        state = cloud_service.get_slot_state(provider, target.service_name, CONSTANTS.SLOT_PRODUCTION)
        if state is SlotState.PRODUCTION:
            blue_green_deploy(context, package_url, configuration)
        else:
            fresh_deploy(context, package_url, configuration)

    logger.info(f"✓ Deployment of {target.service_name} complete")
    return context.service_url


def _describe_slot(deployment: Any) -> Dict[str, Any]:
    if deployment is None:
        return {"state": SlotState.ABSENT.value}
    return {
        "state": deployment.deployment_slot.lower() if deployment.deployment_slot else "unknown",
        "name": deployment.name,
        "label": deployment.label,
        "status": deployment.status,
        "instances": {
            instance.instance_name: instance.instance_status
            for instance in (deployment.role_instance_list or [])
        },
        "ready": cloud_service.instances_ready(deployment),
    }


def status(provider: Any, service_name: str) -> Dict[str, Any]:
    """
    Describe both slots of a hosted service without changing anything.

    Returns:
        {"service": name, "exists": bool, "production": {...}, "staging": {...}}
    """
    result: Dict[str, Any] = {"service": service_name, "exists": False}
    if not cloud_service.check_hosted_service(provider, service_name):
        return result

    result["exists"] = True
    for slot in (CONSTANTS.SLOT_PRODUCTION, CONSTANTS.SLOT_STAGING):
        result[slot] = _describe_slot(cloud_service.get_deployment(provider, service_name, slot))
    return result
