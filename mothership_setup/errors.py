"""Error types raised by provisioning, remote execution, and the setup workflow."""


class SetupError(Exception):
    """Base class for all setup failures."""


class ProviderError(SetupError):
    """The machine provider could not create, inspect, or remove a machine."""


class MachineNotFoundError(ProviderError):
    """The provider has no machine with the given name."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Machine '{name}' does not exist")


class RemoteCommandError(SetupError):
    """A remote command exited with a non-zero status."""

    def __init__(self, host, command, returncode, stderr=""):
        self.host = host
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or command
        super().__init__(f"Command on '{host}' exited with {returncode}: {detail}")


class RemoteConnectionError(RemoteCommandError):
    """The remote host could not be reached (not booted yet, network failure)."""


class MalformedOutputError(SetupError):
    """A command succeeded but its output did not have the expected shape."""


class InvalidCredentialsError(SetupError):
    """The provider rejected the supplied credentials."""


class RetryExhaustedError(SetupError):
    """An operation failed on every allowed attempt."""

    def __init__(self, attempts, last_error):
        self.attempts = attempts
        self.last_error = last_error
        plural = "attempt" if attempts == 1 else "attempts"
        super().__init__(f"Failed after {attempts} {plural}: {last_error}")


class StepFailedError(SetupError):
    """A workflow step failed; no later step was attempted."""

    def __init__(self, step, state, cause):
        self.step = step
        self.state = state
        self.cause = cause
        super().__init__(f"Step '{step}' failed (last completed state: {state}): {cause}")
