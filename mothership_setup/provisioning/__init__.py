"""Machine provisioning: types, local and remote command execution, providers, retries."""

from mothership_setup.provisioning.digitalocean import verify_access_token
from mothership_setup.provisioning.machine import (
    DockerMachineProvider,
    MachineProvider,
    TunneledMachineProvider,
    machine_env_prefix,
    parse_address,
)
from mothership_setup.provisioning.retry import RetryPolicy
from mothership_setup.provisioning.session import DockerMachineSession, RemoteSession
from mothership_setup.provisioning.shell import run_shell_cmd
from mothership_setup.provisioning.types import MachineHandle

__all__ = [
    "MachineHandle",
    "run_shell_cmd",
    "RemoteSession",
    "DockerMachineSession",
    "MachineProvider",
    "DockerMachineProvider",
    "TunneledMachineProvider",
    "machine_env_prefix",
    "parse_address",
    "RetryPolicy",
    "verify_access_token",
]
