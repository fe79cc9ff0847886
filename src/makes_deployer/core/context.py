"""
Deployment target and context classes.

Instead of prompting inside the workflow or reading an implicit logged-in
session, every deployment function receives a DeploymentContext that holds
the resolved target, the settings and the initialized Azure provider.

Lifecycle:
    1. Parameters are resolved into a DeploymentTarget (core.config_loader)
    2. Settings are loaded from the environment and CLI flags
    3. The Azure provider is initialized with a verified credential
    4. The context is passed to deployer.deploy()
    5. Discarded when the process exits
"""

import enum
import threading
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

import makes_deployer.constants as CONSTANTS

if TYPE_CHECKING:
    from makes_deployer.settings import Settings
    from makes_deployer.providers.azure.provider import AzureProvider


@dataclass(frozen=True)
class DeploymentTarget:
    """
    Fully resolved deployment parameters.

    Attributes:
        storage_account: Name of the storage account holding the build
        data_version: Build version in YYYY-MM-DD format
        engine_type: Resolved engine identifier (e.g., "entity-engine")
        instance_size: Resolved SKU (e.g., "D3_v2")
        service_name: Name of the hosted cloud service
        instance_type: Abbreviated instance type the SKU was resolved from
    """

    storage_account: str
    data_version: str
    engine_type: str
    instance_size: str
    service_name: str
    instance_type: str = ""


@dataclass(frozen=True)
class ArtifactReference:
    """
    Blob paths of a versioned build inside the artifact container.

    Example:
        >>> ArtifactReference.for_target(target)
        ArtifactReference(config_blob_path='2018-10-12/entity-engine/configuration.cscfg',
                          package_blob_path='2018-10-12/entity-engine/package-D3_v2.cspkg')
    """

    config_blob_path: str
    package_blob_path: str

    @classmethod
    def for_target(cls, target: DeploymentTarget) -> "ArtifactReference":
        prefix = f"{target.data_version}/{target.engine_type}"
        package_name = CONSTANTS.PACKAGE_BLOB_TEMPLATE.format(
            instance_size=target.instance_size
        )
        return cls(
            config_blob_path=f"{prefix}/{CONSTANTS.CONFIG_BLOB_NAME}",
            package_blob_path=f"{prefix}/{package_name}",
        )


class SlotState(enum.Enum):
    """Which slot a deployment occupies; ABSENT when the slot is empty."""

    ABSENT = "absent"
    PRODUCTION = CONSTANTS.SLOT_PRODUCTION
    STAGING = CONSTANTS.SLOT_STAGING


@dataclass(frozen=True)
class StorageAccountInfo:
    """
    A located storage account.

    Attributes:
        name: Storage account name
        resource_group: Resource group parsed from the account's resource id
        location: Azure region of the account (e.g., "westus")
        key: Primary access key
    """

    name: str
    resource_group: str
    location: str
    key: str = field(repr=False)


@dataclass
class DeploymentContext:
    """
    Encapsulates all state needed for one deployment run.

    Attributes:
        target: Resolved DeploymentTarget
        settings: Loaded Settings (polling, container, placeholders)
        provider: Initialized AzureProvider
        cancel_event: Set from another thread to stop any pending wait. The CLI
            relies on KeyboardInterrupt instead; the event is for callers that
            embed the deployer and drive it from their own thread.
    """

    target: DeploymentTarget
    settings: 'Settings'
    provider: 'AzureProvider'
    cancel_event: threading.Event = field(default_factory=threading.Event)
    artifacts: Optional[ArtifactReference] = None

    def __post_init__(self):
        if self.artifacts is None:
            self.artifacts = ArtifactReference.for_target(self.target)

    @property
    def service_url(self) -> str:
        return self.settings.service_url(self.target.service_name)
