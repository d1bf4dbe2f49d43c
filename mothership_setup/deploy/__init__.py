"""Deploy library: descriptor rendering, DNS report. The workflow lives in deploy.orchestrate."""

from mothership_setup.deploy.compose import (
    DeploymentDescriptor,
    generate_session_secret,
    render_compose,
    render_descriptor,
)
from mothership_setup.deploy.report import (
    DnsRecord,
    build_dns_records,
    dns_table,
    report_success,
)

__all__ = [
    "DeploymentDescriptor",
    "generate_session_secret",
    "render_compose",
    "render_descriptor",
    "DnsRecord",
    "build_dns_records",
    "dns_table",
    "report_success",
]
