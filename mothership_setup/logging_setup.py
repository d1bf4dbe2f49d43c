"""CLI logging setup: plain %(message)s output with secret redaction."""

import logging
import sys

from mothership_setup.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure the root logger to print plain messages to stdout.

    With *verbose*, debug records (e.g. remote stderr) are shown too.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
