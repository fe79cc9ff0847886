import base64
import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.common import AzureMissingResourceHttpError

# Make the package importable without installation
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

ACCOUNT_NAME = "makesascontoso"
ACCOUNT_KEY = base64.b64encode(b"contoso-secret-key").decode("ascii")
ACCOUNT_ID = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/makes-rg"
    "/providers/Microsoft.Storage/storageAccounts/makesascontoso"
)
CONFIG_TEMPLATE = (
    '<ServiceConfiguration serviceName="makes">'
    '<Setting name="StorageAccount" value="_STORAGE_ACCOUNT_NAME_" />'
    '<Setting name="StorageKey" value="_STORAGE_ACCOUNT_KEY_" />'
    '<Setting name="Connection" value="AccountName=_STORAGE_ACCOUNT_NAME_;AccountKey=_STORAGE_ACCOUNT_KEY_" />'
    '</ServiceConfiguration>'
)


@pytest.fixture(scope="function", autouse=True)
def mock_env_vars(monkeypatch):
    """Keep real Azure settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("MAKES_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def mock_sleep(monkeypatch):
    """Skip time.sleep calls to speed up tests."""
    monkeypatch.setattr("time.sleep", lambda x: None)


@pytest.fixture
def settings():
    from makes_deployer.settings import Settings

    return Settings(
        SUBSCRIPTION_ID="00000000-0000-0000-0000-000000000000",
        POLL_INTERVAL_SECONDS=0,
        OPERATION_POLL_INTERVAL_SECONDS=0,
        READY_TIMEOUT_SECONDS=60,
        OPERATION_TIMEOUT_SECONDS=60,
    )


@pytest.fixture
def semantic_target():
    from makes_deployer.core.context import DeploymentTarget

    return DeploymentTarget(
        storage_account=ACCOUNT_NAME,
        data_version="2018-10-12",
        engine_type="semantic-interpretation-engine",
        instance_size="E32_v3",
        service_name="contoso-makes-semantic",
        instance_type="large",
    )


@pytest.fixture
def entity_target():
    from makes_deployer.core.context import DeploymentTarget

    return DeploymentTarget(
        storage_account=ACCOUNT_NAME,
        data_version="2018-10-12",
        engine_type="entity-engine",
        instance_size="D3_v2",
        service_name="contoso-makes-entity",
        instance_type="small",
    )


@pytest.fixture
def storage_account():
    from makes_deployer.core.context import StorageAccountInfo

    return StorageAccountInfo(
        name=ACCOUNT_NAME, resource_group="makes-rg", location="westus", key=ACCOUNT_KEY
    )


class FakeServiceManagement:
    """
    In-memory stand-in for ServiceManagementService.

    Keeps hosted services and one deployment per slot, and records every
    mutating call in `calls` as (method, service_name, slot_or_name).
    """

    def __init__(self, services=None, ready_after=0):
        self.services = {name: dict(slots) for name, slots in (services or {}).items()}
        self.ready_after = ready_after
        self.calls = []
        self._polls = {}

    @staticmethod
    def _missing():
        return AzureMissingResourceHttpError("Not Found", 404)

    @staticmethod
    def deployment(name, slot, status="ReadyRole", count=2):
        instances = [
            SimpleNamespace(instance_name=f"Role_IN_{i}", instance_status=status, role_name="Role")
            for i in range(count)
        ]
        return SimpleNamespace(
            name=name, deployment_slot=slot.capitalize(), label=name,
            status="Running", role_instance_list=instances,
        )

    def list_locations(self):
        return [SimpleNamespace(name="East US"), SimpleNamespace(name="West US")]

    def get_hosted_service_properties(self, service_name, embed_detail=False):
        if service_name not in self.services:
            raise self._missing()
        return SimpleNamespace(service_name=service_name)

    def create_hosted_service(self, service_name, label, description=None, location=None, **kwargs):
        self.calls.append(("create_hosted_service", service_name, location))
        self.services[service_name] = {}
        return SimpleNamespace(request_id="req-service")

    def get_deployment_by_slot(self, service_name, deployment_slot):
        slots = self.services.get(service_name)
        if slots is None or deployment_slot not in slots:
            raise self._missing()
        deployment = slots[deployment_slot]
        polls = self._polls.get(deployment.name, 0)
        self._polls[deployment.name] = polls + 1
        if polls < self.ready_after:
            return self.deployment(deployment.name, deployment_slot, status="BusyRole")
        return deployment

    def create_deployment(self, service_name, deployment_slot, name, package_url, label,
                          configuration, start_deployment=False, **kwargs):
        self.calls.append(("create_deployment", service_name, deployment_slot))
        self.services[service_name][deployment_slot] = self.deployment(name, deployment_slot)
        self.last_configuration = configuration
        self.last_package_url = package_url
        return SimpleNamespace(request_id=f"req-create-{deployment_slot}")

    def swap_deployment(self, service_name, production, source_deployment):
        self.calls.append(("swap_deployment", service_name, source_deployment))
        slots = self.services[service_name]
        slots["production"], slots["staging"] = slots["staging"], slots["production"]
        return SimpleNamespace(request_id="req-swap")

    def delete_deployment(self, service_name, deployment_name, delete_vhd=False):
        self.calls.append(("delete_deployment", service_name, deployment_name))
        self.delete_vhd = delete_vhd
        slots = self.services[service_name]
        for slot, deployment in list(slots.items()):
            if deployment.name == deployment_name:
                del slots[slot]
        return SimpleNamespace(request_id="req-delete")

    def get_operation_status(self, request_id):
        return SimpleNamespace(status="Succeeded", error=None)

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_sms():
    return FakeServiceManagement()


@pytest.fixture
def mock_azure_provider(fake_sms):
    """Create a mock AzureProvider backed by fake storage and service management clients."""
    provider = MagicMock()

    storage_client = MagicMock()
    storage_client.storage_accounts.list.return_value = [
        SimpleNamespace(name="otheraccount", id=ACCOUNT_ID.replace("makesascontoso", "otheraccount"), location="eastus"),
        SimpleNamespace(name=ACCOUNT_NAME, id=ACCOUNT_ID, location="westus"),
    ]
    storage_client.storage_accounts.list_keys.return_value = SimpleNamespace(
        keys=[SimpleNamespace(key_name="key1", value=ACCOUNT_KEY)]
    )

    blob_service = MagicMock()
    blob_service.get_blob_client.return_value.exists.return_value = True
    blob_service.get_blob_client.return_value.download_blob.return_value.readall.return_value = (
        CONFIG_TEMPLATE.encode("utf-8")
    )
    provider.blob_service_client.return_value = blob_service

    provider.clients = {
        "storage": storage_client,
        "service_management": fake_sms,
    }
    return provider
