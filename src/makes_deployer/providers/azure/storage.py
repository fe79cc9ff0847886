"""
Azure Storage: build artifact lookup and configuration materialization.

Artifacts live in one container of the storage account, laid out as:
    {data_version}/{engine_type}/configuration.cscfg
    {data_version}/{engine_type}/package-{instance_size}.cspkg

The configuration blob is a template; its account name and account key
placeholders are replaced locally before it is handed to the platform.
"""

import contextlib
import logging
import os
import re
import secrets
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from azure.core.exceptions import AzureError, HttpResponseError
from azure.storage.blob import BlobSasPermissions, generate_blob_sas

import makes_deployer.constants as CONSTANTS
from makes_deployer.core.context import ArtifactReference, DeploymentTarget, StorageAccountInfo
from makes_deployer.core.exceptions import ResourceNotFoundError

if TYPE_CHECKING:
    from makes_deployer.providers.azure.provider import AzureProvider
    from makes_deployer.settings import Settings

logger = logging.getLogger(__name__)

RESOURCE_GROUP_PATTERN = re.compile(r"/resourceGroups/([^/]+)/", re.IGNORECASE)


# ==========================================
# Storage Account
# ==========================================

def locate_storage_account(provider: 'AzureProvider', account_name: str) -> StorageAccountInfo:
    """
    Find a storage account in the subscription and fetch its primary key.

    Args:
        provider: Azure Provider instance with initialized clients
        account_name: Storage account name

    Returns:
        StorageAccountInfo with resource group, location and primary key

    Raises:
        ResourceNotFoundError: If no account with this name exists
        azure.core.exceptions.HttpResponseError: If listing or key retrieval fails
    """
    storage_client = provider.clients["storage"]

    logger.info(f"Looking up Storage Account: {account_name}")

    try:
        account = next(
            (a for a in storage_client.storage_accounts.list() if a.name.lower() == account_name.lower()),
            None
        )
    except HttpResponseError as e:
        logger.error(f"Failed to list Storage Accounts: {e.status_code} - {e.message}")
        raise

    if account is None:
        logger.error(f"✗ Storage Account not found: {account_name}")
        raise ResourceNotFoundError(
            "Storage account not found",
            resource_type="storage_account",
            resource_name=account_name
        )

    match = RESOURCE_GROUP_PATTERN.search(account.id or "")
    if not match:
        raise ResourceNotFoundError(
            f"Could not determine resource group of storage account '{account.name}'",
            resource_type="storage_account",
            resource_name=account.name
        )
    resource_group = match.group(1)

    try:
        keys = storage_client.storage_accounts.list_keys(resource_group, account.name)
    except HttpResponseError as e:
        logger.error(f"Failed to read Storage Account keys: {e.status_code} - {e.message}")
        raise

    if not keys.keys:
        raise ResourceNotFoundError(
            f"Storage account '{account.name}' has no access keys",
            resource_type="storage_account_key",
            resource_name=account.name
        )

    logger.info(f"✓ Storage Account found: {account.name} ({account.location}, rg={resource_group})")
    return StorageAccountInfo(
        name=account.name,
        resource_group=resource_group,
        location=account.location,
        key=keys.keys[0].value,
    )


# ==========================================
# Artifacts
# ==========================================

def verify_artifacts(
    provider: 'AzureProvider',
    account: StorageAccountInfo,
    container_name: str,
    artifacts: ArtifactReference,
    target: DeploymentTarget
) -> None:
    """
    Confirm that both the configuration and the package blob exist.

    Raises:
        ResourceNotFoundError: Naming the data version if either blob is missing
    """
    blob_service = provider.blob_service_client(account.name, account.key)

    for blob_path in (artifacts.config_blob_path, artifacts.package_blob_path):
        try:
            exists = blob_service.get_blob_client(container=container_name, blob=blob_path).exists()
        except AzureError as e:
            logger.error(f"Failed to check blob {container_name}/{blob_path}: {type(e).__name__}: {e}")
            raise

        if not exists:
            logger.error(f"✗ Blob not found: {container_name}/{blob_path}")
            raise ResourceNotFoundError(
                f"Data version '{target.data_version}' not found for {target.engine_type} "
                f"({container_name}/{blob_path})",
                resource_type="blob",
                resource_name=blob_path
            )
        logger.info(f"✓ Blob exists: {container_name}/{blob_path}")


def package_url(
    account: StorageAccountInfo,
    container_name: str,
    blob_path: str,
    expiry_hours: int = CONSTANTS.DEFAULT_SAS_EXPIRY_HOURS
) -> str:
    """
    Build a read-only SAS URL for the package blob.

    The platform fetches the package itself, so the URL must be readable
    without the account key.
    """
    sas = generate_blob_sas(
        account_name=account.name,
        container_name=container_name,
        blob_name=blob_path,
        account_key=account.key,
        permission=BlobSasPermissions(read=True),
        expiry=datetime.now(timezone.utc) + timedelta(hours=expiry_hours),
    )
    return f"https://{account.name}.blob.core.windows.net/{container_name}/{blob_path}?{sas}"


# ==========================================
# Configuration Materialization
# ==========================================

def render_configuration(template: str, account: StorageAccountInfo, settings: 'Settings') -> str:
    """Replace the account name and key placeholders across the whole text."""
    return (
        template
        .replace(settings.ACCOUNT_NAME_PLACEHOLDER, account.name)
        .replace(settings.ACCOUNT_KEY_PLACEHOLDER, account.key)
    )


@contextlib.contextmanager
def materialize_configuration(
    provider: 'AzureProvider',
    account: StorageAccountInfo,
    artifacts: ArtifactReference,
    settings: 'Settings',
    service_name: str
) -> Iterator[Path]:
    """
    Download the configuration blob and write a deployable copy locally.

    The file holds the storage account key in plain text. It is created with
    owner-only permissions and is removed when the context exits, whether or
    not the deployment succeeded.

    Args:
        provider: Azure Provider instance
        account: Located storage account
        artifacts: Artifact blob paths
        settings: Settings holding the container name and placeholders
        service_name: Used as the local file name prefix

    Yields:
        Path to the materialized configuration file
    """
    blob_service = provider.blob_service_client(account.name, account.key)
    blob_client = blob_service.get_blob_client(
        container=settings.CONTAINER_NAME,
        blob=artifacts.config_blob_path
    )

    logger.info(f"Downloading configuration: {artifacts.config_blob_path}")
    template = blob_client.download_blob().readall().decode("utf-8-sig")
    rendered = render_configuration(template, account, settings)

    file_name = f"{service_name}-{secrets.token_hex(8)}{CONSTANTS.MATERIALIZED_CONFIG_SUFFIX}"
    config_path = Path(tempfile.gettempdir()) / file_name

    fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(rendered)
        logger.debug(f"Configuration written to {config_path}")
        yield config_path
    finally:
        config_path.unlink(missing_ok=True)
        logger.info("✓ Local configuration removed")
