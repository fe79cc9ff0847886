"""
Parameter loading and resolution.

This module turns raw parameter values (CLI flags, an optional JSON parameter
file and interactive prompts) into a validated DeploymentTarget.

Resolution Order (first non-empty value wins):
    1. CLI flags (--storage-account-name, ...)
    2. JSON parameter file (--params), keyed by StorageAccountName, DataVersion,
       EngineType, InstanceType, ServiceName
    3. Interactive prompt (unless prompting is disabled)

Usage:
    from makes_deployer.core.config_loader import load_parameter_file, resolve_target

    raw = load_parameter_file(Path("params.json"))
    target = resolve_target(raw, prompt=False)
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import makes_deployer.constants as CONSTANTS
from .context import DeploymentTarget
from .exceptions import ConfigurationError, ValidationError

# Cloud service names become DNS labels under the service domain
SERVICE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{1,61}[a-zA-Z0-9]$")
STORAGE_ACCOUNT_PATTERN = re.compile(r"^[a-z0-9]{3,24}$")
# strptime alone accepts unpadded months and days
DATA_VERSION_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

PROMPTS = {
    CONSTANTS.PARAM_STORAGE_ACCOUNT_NAME: "Storage account name",
    CONSTANTS.PARAM_DATA_VERSION: "Data version (YYYY-MM-DD)",
    CONSTANTS.PARAM_ENGINE_TYPE: "Engine type (semantic|entity)",
    CONSTANTS.PARAM_INSTANCE_TYPE: "Instance type (small|large)",
    CONSTANTS.PARAM_SERVICE_NAME: "Cloud service name",
}


def load_parameter_file(file_path: Path) -> Dict[str, Any]:
    """
    Load a JSON parameter file.

    Args:
        file_path: Path to the JSON file

    Returns:
        Parsed parameters; unknown keys are kept but ignored later

    Raises:
        ConfigurationError: If the file is missing, has invalid JSON or is not an object
    """
    if not file_path.exists():
        raise ConfigurationError(
            f"Parameter file not found: {file_path.name}",
            config_file=str(file_path)
        )

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in parameter file: {e}",
            config_file=str(file_path)
        )

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Parameter file must contain a JSON object",
            config_file=str(file_path)
        )
    return data


def merge_parameters(*sources: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """
    Merge parameter sources, earlier sources taking precedence.

    Empty strings and None count as unset.
    """
    merged: Dict[str, str] = {}
    for source in sources:
        if not source:
            continue
        for name in CONSTANTS.PARAMETER_NAMES:
            value = source.get(name)
            if name not in merged and value not in (None, ""):
                merged[name] = str(value).strip()
    return merged


# ==========================================
# Enum Translation
# ==========================================

def resolve_engine_type(engine_type: str) -> str:
    """
    Translate an abbreviated engine type to its engine identifier.

    Raises:
        ValidationError: If the value is not one of the known engine types
    """
    key = (engine_type or "").strip().lower()
    if key not in CONSTANTS.ENGINE_TYPES:
        raise ValidationError(
            f"Invalid EngineType '{engine_type}'. Valid: {sorted(CONSTANTS.ENGINE_TYPES)}",
            parameter=CONSTANTS.PARAM_ENGINE_TYPE
        )
    return CONSTANTS.ENGINE_TYPES[key]


def resolve_instance_size(instance_type: str, engine_type: str) -> str:
    """
    Translate an abbreviated instance type to a SKU for the given engine.

    Args:
        instance_type: "small" or "large"
        engine_type: Abbreviated engine type ("semantic" or "entity")

    Returns:
        SKU identifier (e.g., "D4_v2")

    Raises:
        ValidationError: If either value is unknown

    Example:
        >>> resolve_instance_size("small", "entity")
        "D3_v2"
    """
    size_key = (instance_type or "").strip().lower()
    engine_key = (engine_type or "").strip().lower()
    if size_key not in CONSTANTS.INSTANCE_SIZES:
        raise ValidationError(
            f"Invalid InstanceType '{instance_type}'. Valid: {sorted(CONSTANTS.INSTANCE_SIZES)}",
            parameter=CONSTANTS.PARAM_INSTANCE_TYPE
        )
    skus = CONSTANTS.INSTANCE_SIZES[size_key]
    if engine_key not in skus:
        raise ValidationError(
            f"Invalid EngineType '{engine_type}'. Valid: {sorted(skus)}",
            parameter=CONSTANTS.PARAM_ENGINE_TYPE
        )
    return skus[engine_key]


# ==========================================
# Scalar Validation
# ==========================================

def validate_data_version(data_version: str) -> str:
    try:
        if not DATA_VERSION_PATTERN.fullmatch(data_version):
            raise ValueError(data_version)
        datetime.strptime(data_version, CONSTANTS.DATA_VERSION_FORMAT)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid DataVersion '{data_version}'. Expected format YYYY-MM-DD.",
            parameter=CONSTANTS.PARAM_DATA_VERSION
        )
    return data_version


def validate_service_name(service_name: str) -> str:
    if not SERVICE_NAME_PATTERN.match(service_name or ""):
        raise ValidationError(
            f"Invalid ServiceName '{service_name}'. Use 3-63 letters, digits or hyphens, "
            "starting and ending with a letter or digit.",
            parameter=CONSTANTS.PARAM_SERVICE_NAME
        )
    return service_name


def validate_storage_account(storage_account: str) -> str:
    if not STORAGE_ACCOUNT_PATTERN.match(storage_account or ""):
        raise ValidationError(
            f"Invalid StorageAccountName '{storage_account}'. Use 3-24 lowercase letters or digits.",
            parameter=CONSTANTS.PARAM_STORAGE_ACCOUNT_NAME
        )
    return storage_account


# ==========================================
# Target Resolution
# ==========================================

def _prompt_missing(
    params: Dict[str, str],
    prompt: bool,
    input_func: Callable[[str], str]
) -> Dict[str, str]:
    resolved = dict(params)
    for name in CONSTANTS.PARAMETER_NAMES:
        if resolved.get(name):
            continue
        if not prompt:
            raise ValidationError(f"Missing required parameter '{name}'", parameter=name)
        value = input_func(f"{PROMPTS[name]}: ").strip()
        if not value:
            raise ValidationError(f"Missing required parameter '{name}'", parameter=name)
        resolved[name] = value
    return resolved


def resolve_target(
    params: Dict[str, str],
    prompt: bool = True,
    input_func: Optional[Callable[[str], str]] = None
) -> DeploymentTarget:
    """
    Build a validated DeploymentTarget from raw parameters.

    Missing values are prompted for through input_func when prompt is True.
    No remote call is made here, so every validation failure happens before
    anything is mutated.

    Args:
        params: Raw parameters keyed by StorageAccountName, DataVersion, ...
        prompt: Whether missing values may be asked for interactively
        input_func: Function used to read a prompted value (default: input)

    Returns:
        DeploymentTarget with resolved engine identifier and SKU

    Raises:
        ValidationError: If a value is missing (and prompting is off) or invalid
    """
    values = _prompt_missing(params, prompt, input_func or input)

    engine_key = values[CONSTANTS.PARAM_ENGINE_TYPE].lower()
    instance_key = values[CONSTANTS.PARAM_INSTANCE_TYPE].lower()

    engine_type = resolve_engine_type(engine_key)
    instance_size = resolve_instance_size(instance_key, engine_key)

    return DeploymentTarget(
        storage_account=validate_storage_account(values[CONSTANTS.PARAM_STORAGE_ACCOUNT_NAME]),
        data_version=validate_data_version(values[CONSTANTS.PARAM_DATA_VERSION]),
        engine_type=engine_type,
        instance_size=instance_size,
        service_name=validate_service_name(values[CONSTANTS.PARAM_SERVICE_NAME]),
        instance_type=instance_key,
    )
