"""
Constants shared across the deployer.

Grouped by concern: engine/SKU tables, artifact layout, cloud service
slot and status names, and defaults for polling and configuration.
"""

# ==========================================
# 1. Engine Types
# ==========================================
ENGINE_SEMANTIC = "semantic"
ENGINE_ENTITY = "entity"

# Abbreviated engine type -> engine identifier used in artifact paths
ENGINE_TYPES = {
    ENGINE_SEMANTIC: "semantic-interpretation-engine",
    ENGINE_ENTITY: "entity-engine",
}

# ==========================================
# 2. Instance Sizes (SKUs)
# ==========================================
INSTANCE_SMALL = "small"
INSTANCE_LARGE = "large"

# Abbreviated instance type -> {engine type -> SKU}
INSTANCE_SIZES = {
    INSTANCE_SMALL: {
        ENGINE_SEMANTIC: "D4_v2",
        ENGINE_ENTITY: "D3_v2",
    },
    INSTANCE_LARGE: {
        ENGINE_SEMANTIC: "E32_v3",
        ENGINE_ENTITY: "E32_v3",
    },
}

# ==========================================
# 3. Artifact Layout
# ==========================================
DEFAULT_CONTAINER_NAME = "makes"
CONFIG_BLOB_NAME = "configuration.cscfg"
PACKAGE_BLOB_TEMPLATE = "package-{instance_size}.cspkg"
MATERIALIZED_CONFIG_SUFFIX = ".cscfg"

DEFAULT_ACCOUNT_NAME_PLACEHOLDER = "_STORAGE_ACCOUNT_NAME_"
DEFAULT_ACCOUNT_KEY_PLACEHOLDER = "_STORAGE_ACCOUNT_KEY_"

DATA_VERSION_FORMAT = "%Y-%m-%d"

# ==========================================
# 4. Cloud Service
# ==========================================
SLOT_PRODUCTION = "production"
SLOT_STAGING = "staging"

ROLE_READY_STATUS = "ReadyRole"

OPERATION_SUCCEEDED = "Succeeded"
OPERATION_IN_PROGRESS = "InProgress"

DEFAULT_SERVICE_DOMAIN = "cloudapp.net"
TEST_PAGE = "test.html"

# Azure Resource Manager scope (storage, subscriptions)
ARM_SCOPE = "https://management.azure.com/.default"
# Classic Service Management API scope (hosted services, deployments)
SERVICE_MANAGEMENT_SCOPE = "https://management.core.windows.net/.default"

# ==========================================
# 5. Polling Defaults (seconds)
# ==========================================
DEFAULT_POLL_INTERVAL = 30
DEFAULT_READY_TIMEOUT = 3600
DEFAULT_OPERATION_TIMEOUT = 1800
DEFAULT_OPERATION_POLL_INTERVAL = 5
DEFAULT_SAS_EXPIRY_HOURS = 24

# ==========================================
# 6. CLI
# ==========================================
ENV_PREFIX = "MAKES_"

# Keys accepted in a JSON parameter file
PARAM_STORAGE_ACCOUNT_NAME = "StorageAccountName"
PARAM_DATA_VERSION = "DataVersion"
PARAM_ENGINE_TYPE = "EngineType"
PARAM_INSTANCE_TYPE = "InstanceType"
PARAM_SERVICE_NAME = "ServiceName"

PARAMETER_NAMES = [
    PARAM_STORAGE_ACCOUNT_NAME,
    PARAM_DATA_VERSION,
    PARAM_ENGINE_TYPE,
    PARAM_INSTANCE_TYPE,
    PARAM_SERVICE_NAME,
]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
