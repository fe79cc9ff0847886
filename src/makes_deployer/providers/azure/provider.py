"""
Azure provider: SDK client initialization.

SDK Clients Initialized:
    - StorageManagementClient: Storage account lookup and access keys
    - ServiceManagementService: Hosted services and deployment slots
      (classic Service Management API, authenticated with a bearer token)

Blob clients are created per storage account, since they need the
account's access key.

Usage:
    from makes_deployer.providers.azure.provider import AzureProvider

    provider = AzureProvider()
    provider.initialize_clients(credential, subscription_id)
    # Access clients: provider.clients["storage"], provider.clients["service_management"]
"""

import logging
from typing import Any, Dict

import requests
import requests.auth

import makes_deployer.constants as CONSTANTS

logger = logging.getLogger(__name__)


class BearerTokenAuth(requests.auth.AuthBase):
    """
    Attaches a fresh bearer token to every request.

    azure-identity caches the token and renews it shortly before expiry, so
    asking the credential per request keeps long deployment runs authenticated.
    """

    def __init__(self, credential: Any, scope: str):
        self.credential = credential
        self.scope = scope

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        token = self.credential.get_token(self.scope)
        request.headers["Authorization"] = f"Bearer {token.token}"
        return request


class AzureProvider:
    """
    Holds the Azure credential and the SDK clients of one deployment run.

    Attributes:
        subscription_id: Subscription the clients operate on
        clients: Dictionary of initialized Azure SDK clients
    """

    name: str = "azure"

    def __init__(self):
        self._subscription_id: str = ""
        self._credential: Any = None
        self._clients: Dict[str, Any] = {}
        self._initialized = False

    @property
    def subscription_id(self) -> str:
        """Get the Azure subscription ID."""
        return self._subscription_id

    @property
    def credential(self) -> Any:
        if not self._initialized:
            raise RuntimeError("Provider not initialized. Call initialize_clients first.")
        return self._credential

    @property
    def clients(self) -> Dict[str, Any]:
        """Get the dictionary of Azure SDK clients."""
        return self._clients

    def initialize_clients(self, credential: Any, subscription_id: str) -> None:
        """
        Initialize Azure SDK clients.

        Args:
            credential: A verified azure-identity credential
            subscription_id: Azure subscription ID (REQUIRED)

        Raises:
            ValueError: If subscription_id is empty
        """
        if not subscription_id:
            raise ValueError("Missing required 'subscription_id' for Azure clients.")

        self._subscription_id = subscription_id
        self._credential = credential
        self._initialize_sdk_clients(credential)
        self._initialized = True

    def _initialize_sdk_clients(self, credential: Any) -> None:
        """Initialize all required Azure SDK clients."""
        from azure.mgmt.storage import StorageManagementClient
        from azure.servicemanagement import ServiceManagementService

        subscription_id = self._subscription_id

        self._clients["storage"] = StorageManagementClient(credential=credential, subscription_id=subscription_id)
        self._clients["service_management"] = ServiceManagementService(
            subscription_id=subscription_id,
            request_session=self._service_management_session(credential),
        )

    @staticmethod
    def _service_management_session(credential: Any) -> requests.Session:
        """Build a requests session that authenticates with a Service Management bearer token."""
        session = requests.Session()
        session.auth = BearerTokenAuth(credential, CONSTANTS.SERVICE_MANAGEMENT_SCOPE)
        return session

    def blob_service_client(self, account_name: str, account_key: str) -> Any:
        """Create a BlobServiceClient for a storage account using its access key."""
        from azure.storage.blob import BlobServiceClient

        return BlobServiceClient(
            account_url=f"https://{account_name}.blob.core.windows.net",
            credential=account_key,
        )
