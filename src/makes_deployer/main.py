"""
MAKES Cloud Service Deployer - CLI Entry Point.

Usage:
    makes-deploy deploy --storage-account-name makesascontoso --data-version 2018-10-12 \\
                        --engine-type semantic --instance-type large \\
                        --service-name contoso-makes-semantic
    makes-deploy status --service-name contoso-makes-semantic

Missing deploy parameters are prompted for unless --no-prompt is given.
Exit codes: 0 success, 1 any failure, 130 interrupted.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import makes_deployer.constants as CONSTANTS
from makes_deployer.logger import configure_logger, logger, print_stack_trace
from makes_deployer.settings import Settings
from makes_deployer.core.config_loader import load_parameter_file, merge_parameters, resolve_target
from makes_deployer.core.context import DeploymentContext
from makes_deployer.core.exceptions import DeploymentError
from makes_deployer.providers.azure.credentials import get_credential, resolve_subscription_id
from makes_deployer.providers.azure.provider import AzureProvider
import makes_deployer.deployer as deployer


# ==========================================
# Argument Parsing
# ==========================================

# (flag, PowerShell-style alias, parameter name)
TARGET_ARGUMENTS = [
    ("--storage-account-name", "-StorageAccountName", CONSTANTS.PARAM_STORAGE_ACCOUNT_NAME),
    ("--data-version", "-DataVersion", CONSTANTS.PARAM_DATA_VERSION),
    ("--engine-type", "-EngineType", CONSTANTS.PARAM_ENGINE_TYPE),
    ("--instance-type", "-InstanceType", CONSTANTS.PARAM_INSTANCE_TYPE),
    ("--service-name", "-ServiceName", CONSTANTS.PARAM_SERVICE_NAME),
]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--subscription-id", help="Azure subscription ID (default: MAKES_SUBSCRIPTION_ID)")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="makes-deploy",
        description="Deploy a Knowledge Exploration engine build to an Azure Cloud Service",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command")

    deploy_parser = subparsers.add_parser(
        "deploy", help="Deploy a build (fresh or blue/green)", allow_abbrev=False
    )
    for flag, alias, name in TARGET_ARGUMENTS:
        deploy_parser.add_argument(flag, alias, dest=name, help=f"{name} parameter")
    deploy_parser.add_argument("--params", type=Path, help="JSON file with deployment parameters")
    deploy_parser.add_argument("--container", help="Blob container holding the builds")
    deploy_parser.add_argument("--poll-interval", type=int, help="Seconds between readiness checks")
    deploy_parser.add_argument("--timeout", type=int, help="Maximum seconds to wait for readiness")
    deploy_parser.add_argument(
        "--no-prompt", action="store_true",
        help="Fail instead of prompting for missing parameters or logging in interactively"
    )
    _add_common_arguments(deploy_parser)
    deploy_parser.set_defaults(handler=handle_deploy)

    status_parser = subparsers.add_parser(
        "status", help="Show the deployment slots of a cloud service", allow_abbrev=False
    )
    status_parser.add_argument("--service-name", "-ServiceName", required=True)
    status_parser.add_argument("--no-prompt", action="store_true", help="Never log in interactively")
    _add_common_arguments(status_parser)
    status_parser.set_defaults(handler=handle_status)

    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Load settings from the environment, then apply CLI overrides."""
    overrides = {
        "SUBSCRIPTION_ID": getattr(args, "subscription_id", None),
        "CONTAINER_NAME": getattr(args, "container", None),
        "POLL_INTERVAL_SECONDS": getattr(args, "poll_interval", None),
        "READY_TIMEOUT_SECONDS": getattr(args, "timeout", None),
        "DEBUG": getattr(args, "debug", None),
    }
    return Settings().model_copy(update={k: v for k, v in overrides.items() if v is not None})


def create_provider(settings: Settings, interactive: bool) -> AzureProvider:
    """Verify the Azure session and initialize the SDK clients."""
    credential = get_credential(interactive=interactive, tenant_id=settings.TENANT_ID)
    subscription_id = resolve_subscription_id(credential, settings.SUBSCRIPTION_ID)
    provider = AzureProvider()
    provider.initialize_clients(credential, subscription_id)
    return provider


# ==========================================
# Command Handlers
# ==========================================

def handle_deploy(args: argparse.Namespace, settings: Settings) -> int:
    """Resolve parameters, verify the session and run the deployment."""
    prompt = not args.no_prompt
    cli_params = {name: getattr(args, name) for _, _, name in TARGET_ARGUMENTS}
    file_params = load_parameter_file(args.params) if args.params else None

    # Everything is validated before the first remote call
    target = resolve_target(merge_parameters(cli_params, file_params), prompt=prompt)

    print(f"\n{'='*60}")
    print(f"Storage account: {target.storage_account}")
    print(f"Data version:    {target.data_version}")
    print(f"Engine:          {target.engine_type}")
    print(f"Instance size:   {target.instance_size}")
    print(f"Cloud service:   {target.service_name}")
    print(f"{'='*60}\n")

    provider = create_provider(settings, interactive=prompt)
    context = DeploymentContext(target=target, settings=settings, provider=provider)

    url = deployer.deploy(context)

    print(f"\n{'='*60}")
    print(f"Deployment succeeded. Test the service at: {url}")
    print(f"{'='*60}")
    return CONSTANTS.EXIT_SUCCESS


def handle_status(args: argparse.Namespace, settings: Settings) -> int:
    """Print both deployment slots of a cloud service."""
    provider = create_provider(settings, interactive=not args.no_prompt)
    result = deployer.status(provider, args.service_name)
    print(json.dumps(result, indent=2))
    return CONSTANTS.EXIT_SUCCESS if result["exists"] else CONSTANTS.EXIT_FAILURE


# ==========================================
# Main
# ==========================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return CONSTANTS.EXIT_FAILURE

    try:
        settings = load_settings(args)
        configure_logger(settings.DEBUG)
        return args.handler(args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return CONSTANTS.EXIT_INTERRUPTED
    except DeploymentError as e:
        print_stack_trace()
        print(f"Error: {e}", file=sys.stderr)
        return CONSTANTS.EXIT_FAILURE
    except Exception as e:
        print_stack_trace()
        logger.error(f"Error during '{args.command}': {type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return CONSTANTS.EXIT_FAILURE


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
