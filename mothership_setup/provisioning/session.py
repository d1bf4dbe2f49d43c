"""Remote sessions: run one shell command on a named docker-machine host."""

import logging
from abc import ABC, abstractmethod

from mothership_setup.errors import RemoteCommandError, RemoteConnectionError
from mothership_setup.provisioning.shell import run_shell_cmd

logger = logging.getLogger(__name__)

MACHINE_BIN = "docker-machine"

# ssh reserves exit status 255 for its own (connection) errors
SSH_CONNECTION_FAILURE = 255


class RemoteSession(ABC):
    """Executes commands on remote hosts.

    Every call is independent: no working directory, environment, or shell
    state carries over from one call to the next. Anything a command needs
    (e.g. ``eval $(docker-machine env ...)``) must be stated in the same
    command string.
    """

    @abstractmethod
    async def run(self, host: str, command: str, timeout: int | None = None) -> str:
        """Run *command* on *host* and return its raw stdout.

        Raises:
            RemoteConnectionError: the host could not be reached.
            RemoteCommandError: the command exited non-zero.
        """


def check_result(host, command, returncode, stdout, stderr):
    """Map a (returncode, stdout, stderr) triple to stdout or a RemoteCommandError."""
    if returncode == SSH_CONNECTION_FAILURE:
        raise RemoteConnectionError(host, command, returncode, stderr)
    if returncode != 0:
        raise RemoteCommandError(host, command, returncode, stderr)
    return stdout


class DockerMachineSession(RemoteSession):
    """Runs commands through ``docker-machine ssh <host> <command>``."""

    def __init__(self, timeout=600, dry_run=False):
        self.timeout = timeout
        self.dry_run = dry_run

    async def run(self, host, command, timeout=None):
        rc, stdout, stderr = await run_shell_cmd(
            [MACHINE_BIN, "ssh", host, command],
            dry_run=self.dry_run,
            timeout=timeout or self.timeout,
        )
        if rc != 0 and stderr:
            logger.debug(f"ssh error ({host}): {stderr.strip()}")
        return check_result(host, command, rc, stdout, stderr)
