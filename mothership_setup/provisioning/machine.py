"""Machine providers: create, inspect, and remove cloud hosts with docker-machine.

Two providers share the same docker-machine command builders:

- ``DockerMachineProvider`` runs them on the operator's machine.
- ``TunneledMachineProvider`` runs them through a RemoteSession on another
  host, so the created machine's metadata lives on that host instead.
"""

import ipaddress
import logging
import shlex
from abc import ABC, abstractmethod

from mothership_setup.errors import (
    MachineNotFoundError,
    MalformedOutputError,
    ProviderError,
    RemoteCommandError,
    RemoteConnectionError,
)
from mothership_setup.provisioning.session import MACHINE_BIN
from mothership_setup.provisioning.shell import run_shell_cmd
from mothership_setup.provisioning.types import MachineHandle

logger = logging.getLogger(__name__)

DEFAULT_DRIVER = "digitalocean"
DRY_RUN_ADDRESS = "192.0.2.1"

# ── Command builders ───────────────────────────────────────────────


def _machine_create_cmd(name, driver, credentials):
    """Build docker-machine command to create a host.

    Args:
        credentials: driver options, e.g. {"digitalocean-access-token": "..."}
    """
    cmd = [MACHINE_BIN, "create", "--driver", driver]
    for option, value in credentials.items():
        cmd.extend([f"--{option}", value])
    cmd.append(name)
    return cmd


def _machine_ip_cmd(name):
    """Build docker-machine command to print a host's public IP."""
    return [MACHINE_BIN, "ip", name]


def _machine_rm_cmd(name):
    """Build docker-machine command to remove a host without confirmation."""
    return [MACHINE_BIN, "rm", "-y", name]


def machine_env_prefix(name):
    """Shell prefix that points the docker CLI at *name* for the rest of the command."""
    return f"eval $({MACHINE_BIN} env {shlex.quote(name)})"


def _is_not_found(stderr):
    # docker-machine reports: Host does not exist: "name"
    return "does not exist" in (stderr or "").lower()


def parse_address(name, output):
    """Trim and validate the IP printed by ``docker-machine ip``."""
    address = output.strip()
    if not address:
        raise MalformedOutputError(f"No IP address reported for machine '{name}'")
    try:
        ipaddress.ip_address(address)
    except ValueError as e:
        raise MalformedOutputError(f"Unexpected IP address for machine '{name}': {address!r}") from e
    return address


# ── Providers ──────────────────────────────────────────────────────


class MachineProvider(ABC):
    """Creates named cloud machines and reports their public addresses.

    ``create`` is not idempotent: callers must ``destroy`` before creating the
    same name again.
    """

    @abstractmethod
    async def create(self, name: str, credentials: dict[str, str]) -> MachineHandle:
        """Provision a machine. Its address is not known yet."""

    @abstractmethod
    async def get_address(self, name: str) -> str:
        """Return the public IP of a machine created earlier.

        Raises:
            MachineNotFoundError: no such machine.
            MalformedOutputError: the provider answered without a usable IP.
        """

    @abstractmethod
    async def destroy(self, name: str) -> None:
        """Remove a machine."""


class DockerMachineProvider(MachineProvider):
    """Runs docker-machine on the local host."""

    def __init__(self, driver=DEFAULT_DRIVER, create_timeout=1800, timeout=600, dry_run=False):
        self.driver = driver
        self.create_timeout = create_timeout
        self.timeout = timeout
        self.dry_run = dry_run

    async def create(self, name, credentials):
        logger.info(f"Creating machine '{name}' (driver: {self.driver})...")
        cmd = _machine_create_cmd(name, self.driver, credentials)
        rc, _, stderr = await run_shell_cmd(cmd, dry_run=self.dry_run, timeout=self.create_timeout)
        if rc != 0:
            raise ProviderError(f"Failed to create machine '{name}': {stderr.strip()}")
        return MachineHandle(name=name)

    async def get_address(self, name):
        rc, stdout, stderr = await run_shell_cmd(_machine_ip_cmd(name), dry_run=self.dry_run, timeout=self.timeout)
        if self.dry_run:
            return DRY_RUN_ADDRESS
        if rc != 0:
            if _is_not_found(stderr):
                raise MachineNotFoundError(name)
            raise ProviderError(f"Failed to get IP of machine '{name}': {stderr.strip()}")
        return parse_address(name, stdout)

    async def destroy(self, name):
        logger.info(f"Removing machine '{name}'...")
        rc, _, stderr = await run_shell_cmd(_machine_rm_cmd(name), dry_run=self.dry_run, timeout=self.timeout)
        if rc != 0:
            if _is_not_found(stderr):
                raise MachineNotFoundError(name)
            raise ProviderError(f"Failed to remove machine '{name}': {stderr.strip()}")


class TunneledMachineProvider(MachineProvider):
    """Runs docker-machine on *via_host* through a RemoteSession.

    The machine's certificates and driver state end up on *via_host*, so
    everything about it can be managed from there later.
    """

    def __init__(self, session, via_host, driver=DEFAULT_DRIVER, create_timeout=1800, dry_run=False):
        self.session = session
        self.via_host = via_host
        self.driver = driver
        self.create_timeout = create_timeout
        self.dry_run = dry_run

    async def _run(self, cmd, timeout=None):
        return await self.session.run(self.via_host, shlex.join(cmd), timeout=timeout)

    async def create(self, name, credentials):
        logger.info(f"Creating machine '{name}' from '{self.via_host}' (driver: {self.driver})...")
        await self._run(_machine_create_cmd(name, self.driver, credentials), timeout=self.create_timeout)
        return MachineHandle(name=name)

    async def get_address(self, name):
        try:
            output = await self._run(_machine_ip_cmd(name))
        except RemoteConnectionError:
            raise
        except RemoteCommandError as e:
            if _is_not_found(e.stderr):
                raise MachineNotFoundError(name) from e
            raise
        if self.dry_run:
            return DRY_RUN_ADDRESS
        return parse_address(name, output)

    async def destroy(self, name):
        logger.info(f"Removing machine '{name}' from '{self.via_host}'...")
        await self._run(_machine_rm_cmd(name))
