"""
Azure provider package.

Modules:
    provider: SDK client initialization
    credentials: Session verification and subscription selection
    storage: Storage account lookup, artifact checks, configuration materialization
    cloud_service: Hosted service and deployment slot operations
"""

from .provider import AzureProvider

__all__ = ["AzureProvider"]
