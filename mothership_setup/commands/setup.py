"""Setup command: provision both hosts and start Mothership."""

import asyncio
import logging
import sys

import yaml

from mothership_setup.config import load_config, resolve_access_token
from mothership_setup.console import print_banner
from mothership_setup.deploy.orchestrate import ProvisioningOrchestrator
from mothership_setup.deploy.report import report_success
from mothership_setup.errors import SetupError, StepFailedError
from mothership_setup.provisioning.digitalocean import verify_access_token
from mothership_setup.provisioning.machine import DockerMachineProvider
from mothership_setup.provisioning.session import DockerMachineSession

logger = logging.getLogger(__name__)


def build_orchestrator(config, dry_run=False):
    """Wire the docker-machine provider and session into an orchestrator."""
    session = DockerMachineSession(timeout=config.command_timeout, dry_run=dry_run)
    provider = DockerMachineProvider(
        driver=config.driver,
        create_timeout=config.create_timeout,
        timeout=config.command_timeout,
        dry_run=dry_run,
    )
    return ProvisioningOrchestrator(provider, session, config=config, dry_run=dry_run)


def load_config_or_exit(config_path):
    try:
        return load_config(config_path)
    except FileNotFoundError:
        logger.error(f"Error: Config file '{config_path}' not found.")
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML config: {e}")
    except (TypeError, ValueError) as e:
        logger.error(f"Error: invalid config: {e}")
    sys.exit(1)


def handle_setup(args):
    """CLI handler for 'setup'."""
    asyncio.run(_handle_setup(args))


async def _handle_setup(args):
    config = load_config_or_exit(args.config)
    print_banner()

    orchestrator = build_orchestrator(config, dry_run=args.dry_run)
    try:
        access_token, domain = orchestrator.resolve_inputs(resolve_access_token(args.access_token), args.domain)
    except EOFError:
        logger.error("Error: no input available; pass --access-token and --domain")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if not args.skip_token_check:
        try:
            await verify_access_token(access_token, dry_run=args.dry_run)
        except SetupError as e:
            logger.error(f"Error: {e}")
            sys.exit(1)

    try:
        result = await orchestrator.run(access_token, domain)
    except StepFailedError as e:
        logger.error(f"Error: {e}")
        logger.error(
            "Setup stopped. Hosts created by earlier steps were left running; "
            "remove them with 'mothership-setup teardown'."
        )
        sys.exit(1)

    report_success(result)


def register_setup_command(subparsers):
    """Register the setup subcommand."""
    parser = subparsers.add_parser("setup", help="Provision the Mothership and swarm hosts and start Mothership")
    parser.add_argument(
        "--access-token",
        default=None,
        help="DigitalOcean access token (default: $DIGITALOCEAN_ACCESS_TOKEN, else prompt)",
    )
    parser.add_argument("--domain", default=None, help="Domain Mothership will run on (default: prompt)")
    parser.add_argument("--config", default=None, help="YAML file overriding installer defaults")
    parser.add_argument("--skip-token-check", action="store_true", help="Do not verify the token against the DigitalOcean API")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing")
    parser.set_defaults(func=handle_setup)
