"""
Unit tests for Azure Cloud Service operations.

Tests cover:
- Hosted service check/create
- Slot state reads
- Role instance readiness
- Asynchronous operation waits
- Swap and delete re-checks
"""

import base64
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.common import AzureConflictHttpError, AzureHttpError

from makes_deployer.core.context import SlotState
from makes_deployer.core.exceptions import (
    DeploymentTimeoutError,
    OperationFailedError,
    ResourceCreationError,
)
from makes_deployer.providers.azure import cloud_service

from tests.conftest import FakeServiceManagement


SERVICE = "contoso-makes-entity"


# ==========================================
# Hosted Service
# ==========================================

class TestHostedService:

    def test_check_missing_returns_false(self, mock_azure_provider):
        assert cloud_service.check_hosted_service(mock_azure_provider, SERVICE) is False

    def test_ensure_creates_in_storage_region(self, mock_azure_provider, fake_sms):
        created = cloud_service.ensure_hosted_service(mock_azure_provider, SERVICE, "westus")

        assert created is True
        assert fake_sms.calls == [("create_hosted_service", SERVICE, "West US")]

    def test_ensure_existing_service_is_untouched(self, mock_azure_provider, fake_sms):
        fake_sms.services[SERVICE] = {}

        created = cloud_service.ensure_hosted_service(mock_azure_provider, SERVICE, "westus")

        assert created is False
        assert fake_sms.calls == []

    def test_unknown_location_passed_through(self, mock_azure_provider, fake_sms):
        cloud_service.ensure_hosted_service(mock_azure_provider, SERVICE, "centralindia")

        assert fake_sms.calls[0][2] == "centralindia"

    def test_create_failure_raises(self, mock_azure_provider, fake_sms):
        fake_sms.create_hosted_service = MagicMock(
            side_effect=AzureConflictHttpError("DNS name taken", 409)
        )

        with pytest.raises(ResourceCreationError) as exc:
            cloud_service.ensure_hosted_service(mock_azure_provider, SERVICE, "westus")

        assert exc.value.resource_type == "hosted_service"
        assert "DNS name taken" in str(exc.value)


# ==========================================
# Slots and Readiness
# ==========================================

class TestSlots:

    def test_slot_states(self, mock_azure_provider, fake_sms):
        fake_sms.services[SERVICE] = {"production": FakeServiceManagement.deployment("blue", "production")}

        assert cloud_service.get_slot_state(mock_azure_provider, SERVICE, "production") is SlotState.PRODUCTION
        assert cloud_service.get_slot_state(mock_azure_provider, SERVICE, "staging") is SlotState.ABSENT

    def test_slot_state_of_missing_service_is_absent(self, mock_azure_provider):
        assert cloud_service.get_slot_state(mock_azure_provider, SERVICE, "production") is SlotState.ABSENT

    def test_instances_ready(self):
        assert cloud_service.instances_ready(FakeServiceManagement.deployment("d", "staging"))

    def test_instances_not_ready_when_any_busy(self):
        deployment = FakeServiceManagement.deployment("d", "staging")
        deployment.role_instance_list[1].instance_status = "BusyRole"

        assert not cloud_service.instances_ready(deployment)

    @pytest.mark.parametrize("deployment", [
        None,
        SimpleNamespace(role_instance_list=[]),
        SimpleNamespace(role_instance_list=None),
    ])
    def test_no_instances_is_not_ready(self, deployment):
        assert not cloud_service.instances_ready(deployment)

    def test_wait_for_ready_polls_until_ready(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {"staging": FakeServiceManagement.deployment("green", "staging")}
        fake_sms.ready_after = 3

        deployment = cloud_service.wait_for_ready(mock_azure_provider, SERVICE, "staging", settings)

        assert deployment.name == "green"
        assert fake_sms._polls["green"] == 4

    def test_wait_for_ready_times_out(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {"staging": FakeServiceManagement.deployment("green", "staging")}
        fake_sms.ready_after = 10 ** 6
        settings = settings.model_copy(update={"READY_TIMEOUT_SECONDS": 0})

        with pytest.raises(DeploymentTimeoutError) as exc:
            cloud_service.wait_for_ready(mock_azure_provider, SERVICE, "staging", settings)

        assert exc.value.slot == "staging"


# ==========================================
# Operations
# ==========================================

class TestOperations:

    def test_result_without_request_id_returns_immediately(self, mock_azure_provider, settings):
        cloud_service.wait_for_operation(mock_azure_provider, None, "noop", settings)

    def test_waits_while_in_progress(self, mock_azure_provider, fake_sms, settings):
        fake_sms.get_operation_status = MagicMock(side_effect=[
            SimpleNamespace(status="InProgress", error=None),
            SimpleNamespace(status="Succeeded", error=None),
        ])

        cloud_service.wait_for_operation(
            mock_azure_provider, SimpleNamespace(request_id="req-1"), "swap", settings
        )

        assert fake_sms.get_operation_status.call_count == 2

    def test_failed_operation_raises(self, mock_azure_provider, fake_sms, settings):
        fake_sms.get_operation_status = MagicMock(return_value=SimpleNamespace(
            status="Failed", error=SimpleNamespace(code="BadRequest", message="Package invalid")
        ))

        with pytest.raises(OperationFailedError, match="Package invalid") as exc:
            cloud_service.wait_for_operation(
                mock_azure_provider, SimpleNamespace(request_id="req-1"), "swap", settings
            )

        assert exc.value.request_id == "req-1"

    def test_create_deployment_encodes_configuration(self, mock_azure_provider, fake_sms, settings, entity_target):
        fake_sms.services[entity_target.service_name] = {}

        name = cloud_service.create_deployment(
            mock_azure_provider, entity_target, "production", "https://pkg", "<cfg/>", settings
        )

        deployment = fake_sms.services[entity_target.service_name]["production"]
        assert deployment.name == name
        assert base64.b64decode(fake_sms.last_configuration).decode("utf-8") == "<cfg/>"
        assert fake_sms.last_package_url == "https://pkg"

    def test_create_deployment_failure_raises(self, mock_azure_provider, fake_sms, settings, entity_target):
        fake_sms.create_deployment = MagicMock(side_effect=AzureHttpError("Quota exceeded", 400))

        with pytest.raises(ResourceCreationError) as exc:
            cloud_service.create_deployment(
                mock_azure_provider, entity_target, "staging", "https://pkg", "<cfg/>", settings
            )

        assert exc.value.slot == "staging"
        assert "Quota exceeded" in str(exc.value)

    def test_swap_skipped_without_staging(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {"production": FakeServiceManagement.deployment("blue", "production")}

        assert cloud_service.swap_deployments(mock_azure_provider, SERVICE, settings) is False
        assert fake_sms.calls == []

    def test_swap_exchanges_slots(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {
            "production": FakeServiceManagement.deployment("blue", "production"),
            "staging": FakeServiceManagement.deployment("green", "staging"),
        }

        assert cloud_service.swap_deployments(mock_azure_provider, SERVICE, settings) is True
        assert fake_sms.services[SERVICE]["production"].name == "green"
        assert fake_sms.services[SERVICE]["staging"].name == "blue"

    def test_swap_without_production_raises(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {"staging": FakeServiceManagement.deployment("green", "staging")}

        with pytest.raises(OperationFailedError, match="no production deployment"):
            cloud_service.swap_deployments(mock_azure_provider, SERVICE, settings)

    def test_delete_removes_vhd(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {"staging": FakeServiceManagement.deployment("blue", "staging")}

        assert cloud_service.delete_deployment(mock_azure_provider, SERVICE, "staging", settings) is True
        assert fake_sms.services[SERVICE] == {}
        assert fake_sms.delete_vhd is True

    def test_delete_empty_slot_is_noop(self, mock_azure_provider, fake_sms, settings):
        fake_sms.services[SERVICE] = {}

        assert cloud_service.delete_deployment(mock_azure_provider, SERVICE, "staging", settings) is False
        assert fake_sms.calls == []
