from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

import makes_deployer.constants as CONSTANTS


class Settings(BaseSettings):
    # Azure
    SUBSCRIPTION_ID: Optional[str] = None
    TENANT_ID: Optional[str] = None

    # Artifacts
    CONTAINER_NAME: str = CONSTANTS.DEFAULT_CONTAINER_NAME
    ACCOUNT_NAME_PLACEHOLDER: str = CONSTANTS.DEFAULT_ACCOUNT_NAME_PLACEHOLDER
    ACCOUNT_KEY_PLACEHOLDER: str = CONSTANTS.DEFAULT_ACCOUNT_KEY_PLACEHOLDER
    SAS_EXPIRY_HOURS: int = CONSTANTS.DEFAULT_SAS_EXPIRY_HOURS

    # Polling (seconds)
    POLL_INTERVAL_SECONDS: int = CONSTANTS.DEFAULT_POLL_INTERVAL
    READY_TIMEOUT_SECONDS: int = CONSTANTS.DEFAULT_READY_TIMEOUT
    OPERATION_TIMEOUT_SECONDS: int = CONSTANTS.DEFAULT_OPERATION_TIMEOUT
    OPERATION_POLL_INTERVAL_SECONDS: int = CONSTANTS.DEFAULT_OPERATION_POLL_INTERVAL

    # Output
    SERVICE_DOMAIN: str = CONSTANTS.DEFAULT_SERVICE_DOMAIN
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_prefix=CONSTANTS.ENV_PREFIX,
        env_file=".env",
        extra="ignore",
    )

    def service_url(self, service_name: str) -> str:
        """Build the public test page URL of a hosted service."""
        return f"http://{service_name}.{self.SERVICE_DOMAIN}/{CONSTANTS.TEST_PAGE}"
