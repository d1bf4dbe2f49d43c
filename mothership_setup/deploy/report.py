"""Operator report: DNS records to add by hand once setup finishes."""

import logging
from dataclasses import dataclass

from rich import box
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

APP_SUBDOMAIN = "mothership"


@dataclass(frozen=True)
class DnsRecord:
    """One resource record for the operator's DNS provider."""

    name: str
    type: str
    target: str


def build_dns_records(control_ip, swarm_ip):
    """Apex and wildcard point at the swarm; the app subdomain at the control host."""
    return [
        DnsRecord("@", "A", swarm_ip),
        DnsRecord("*", "A", swarm_ip),
        DnsRecord(APP_SUBDOMAIN, "A", control_ip),
    ]


def dns_table(records):
    table = Table(box=box.ASCII, show_lines=False)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("IP Address")
    for record in records:
        table.add_row(record.name, record.type, record.target)
    return table


def report_success(result, console=None):
    """Log the completion banner, print the DNS records, then log the app URL."""
    console = console or Console()
    logger.info("")
    logger.info("~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~")
    logger.info("~~ Mothership installer complete! ~~")
    logger.info("~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~")
    logger.info("")
    logger.info("Note: To finish configuration you'll need to add the")
    logger.info("following resource records to your DNS provider:")
    console.print(dns_table(result.dns_records()))
    logger.info(f"After adding these resource records visit Mothership online: {result.app_url}")
