#!/usr/bin/env python3
"""Mothership automated setup — CLI entrypoint."""

import argparse

from mothership_setup.commands.setup import register_setup_command
from mothership_setup.commands.teardown import register_teardown_command
from mothership_setup.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Mothership automated setup")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_setup_command(subparsers)
    register_teardown_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
