"""Teardown command: remove the hosts a failed or finished setup left behind."""

import asyncio
import logging
import sys

from mothership_setup.commands.setup import build_orchestrator, load_config_or_exit

logger = logging.getLogger(__name__)


def handle_teardown(args):
    """Handle the teardown command."""
    asyncio.run(_handle_teardown(args))


async def _handle_teardown(args):
    config = load_config_or_exit(args.config)
    orchestrator = build_orchestrator(config, dry_run=args.dry_run)

    logger.info(f"Tearing down '{config.swarm_node_name}' and '{config.control_node_name}'")
    failed = await orchestrator.cleanup_all()

    if failed:
        logger.error(f"\nFailed to remove {len(failed)} host(s): {', '.join(failed)}")
        sys.exit(1)
    logger.info("\nAll hosts removed.")


def register_teardown_command(subparsers):
    """Register the teardown subcommand."""
    parser = subparsers.add_parser(
        "teardown",
        help="Remove the swarm and Mothership hosts",
    )
    parser.add_argument("--config", default=None, help="YAML file overriding installer defaults")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing")
    parser.set_defaults(func=handle_teardown)
