"""
Azure credential and subscription resolution.

An existing session is preferred: DefaultAzureCredential covers environment
variables (service principal), managed identity and an `az login` session.
Only when none of those yields a token does the deployer fall back to an
interactive browser login.
"""

import logging
from typing import Any, Optional

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError
from azure.identity import DefaultAzureCredential, InteractiveBrowserCredential

import makes_deployer.constants as CONSTANTS
from makes_deployer.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def _has_token(credential: Any) -> bool:
    try:
        credential.get_token(CONSTANTS.ARM_SCOPE)
        return True
    except ClientAuthenticationError as e:
        logger.debug(f"No token from {type(credential).__name__}: {e}")
        return False


def get_credential(interactive: bool = True, tenant_id: Optional[str] = None) -> Any:
    """
    Ensure an authenticated Azure session and return its credential.

    Args:
        interactive: Allow an interactive browser login when no session exists
        tenant_id: Optional Azure AD tenant for the interactive login

    Returns:
        An azure-identity credential that has already produced a token

    Raises:
        AuthenticationError: If no session exists and login is not possible
    """
    credential = DefaultAzureCredential(exclude_interactive_browser_credential=True)
    if _has_token(credential):
        logger.info("✓ Using existing Azure session")
        return credential

    if not interactive:
        raise AuthenticationError(
            "No Azure session found. Run 'az login' or set AZURE_CLIENT_ID, "
            "AZURE_TENANT_ID and AZURE_CLIENT_SECRET."
        )

    logger.warning("No Azure session found, opening interactive login...")
    credential = InteractiveBrowserCredential(tenant_id=tenant_id) if tenant_id else InteractiveBrowserCredential()
    if not _has_token(credential):
        raise AuthenticationError("Interactive Azure login failed.")

    logger.info("✓ Logged in to Azure")
    return credential


def resolve_subscription_id(credential: Any, subscription_id: Optional[str] = None) -> str:
    """
    Pick the subscription to deploy into.

    An explicit subscription id is used as-is. Otherwise the credential must
    have access to exactly one enabled subscription.

    Raises:
        AuthenticationError: If no or several subscriptions are available
    """
    if subscription_id:
        return subscription_id

    from azure.mgmt.resource import SubscriptionClient

    try:
        subscriptions = [
            sub for sub in SubscriptionClient(credential).subscriptions.list()
            if sub.state in (None, "Enabled")
        ]
    except HttpResponseError as e:
        logger.error(f"Failed to list subscriptions: {e.status_code} - {e.message}")
        raise AuthenticationError(f"Could not list Azure subscriptions: {e.message}")

    if not subscriptions:
        raise AuthenticationError("The Azure account has no enabled subscription.")
    if len(subscriptions) > 1:
        names = ", ".join(f"{s.display_name} ({s.subscription_id})" for s in subscriptions)
        raise AuthenticationError(
            f"Several subscriptions available: {names}. "
            "Pass --subscription-id or set MAKES_SUBSCRIPTION_ID."
        )

    subscription = subscriptions[0]
    logger.info(f"Using subscription: {subscription.display_name} ({subscription.subscription_id})")
    return subscription.subscription_id
