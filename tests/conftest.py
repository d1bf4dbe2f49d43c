"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest

import mothership_setup.redact as redact_module
from mothership_setup.config import ACCESS_TOKEN_ENV_VAR
from mothership_setup.console import Prompter, ProgressReporter
from mothership_setup.errors import MachineNotFoundError, ProviderError
from mothership_setup.provisioning.machine import MachineProvider
from mothership_setup.provisioning.session import RemoteSession
from mothership_setup.provisioning.types import MachineHandle

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

SWARM_IP = "10.0.0.2"
CONTROL_IP = "10.0.0.1"


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the mothership-setup CLI as a subprocess."""

    def _run(*args, env=None):
        full_env = dict(os.environ)
        full_env.pop(ACCESS_TOKEN_ENV_VAR, None)
        full_env.update(env or {})
        result = subprocess.run(
            [sys.executable, "-m", "mothership_setup.mothership_setup", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env=full_env,
            stdin=subprocess.DEVNULL,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(autouse=True)
def _reset_redaction():
    """Secrets registered by one test must not leak into the next."""
    redact_module._registered.clear()
    redact_module._patterns = None
    yield
    redact_module._registered.clear()
    redact_module._patterns = None


# ── Fakes ───────────────────────────────────────────────────────────


class FakeProvider(MachineProvider):
    """In-memory provider that records ("provider", op, name) into a shared call log."""

    def __init__(self, calls, addresses=None):
        self.calls = calls
        self.addresses = addresses or {"mothership-paas": CONTROL_IP}
        self.create_failures = 0  # number of create calls that fail before one succeeds
        self.destroy_error = None
        self.machines = set()

    async def create(self, name, credentials):
        self.calls.append(("provider", "create", name))
        if self.create_failures > 0:
            self.create_failures -= 1
            raise ProviderError(f"droplet quota exceeded creating {name}")
        self.machines.add(name)
        return MachineHandle(name=name)

    async def get_address(self, name):
        self.calls.append(("provider", "get_address", name))
        if name not in self.machines:
            raise MachineNotFoundError(name)
        return self.addresses[name]

    async def destroy(self, name):
        self.calls.append(("provider", "destroy", name))
        if self.destroy_error is not None:
            raise self.destroy_error
        self.machines.discard(name)


class RecordingSession(RemoteSession):
    """Records ("session", host, command) and answers by substring match.

    ``failures`` and ``responses`` are lists of (substring, value); the first
    matching failure is raised, else the first matching response returned.
    """

    def __init__(self, calls):
        self.calls = calls
        self.failures = []
        self.responses = [("docker-machine ip mothership-swarm", f"{SWARM_IP}\n")]

    async def run(self, host, command, timeout=None):
        self.calls.append(("session", host, command))
        for pattern, error in self.failures:
            if pattern in command:
                raise error
        for pattern, output in self.responses:
            if pattern in command:
                return output
        return ""


class RecordingReporter(ProgressReporter):
    def __init__(self):
        self.events = []

    def section(self, title):
        self.events.append(("section", title))

    def start(self, message):
        self.events.append(("start", message))

    def succeed(self):
        self.events.append(("succeed",))

    def fail(self):
        self.events.append(("fail",))


class ScriptedPrompter(Prompter):
    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def ask(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)


@pytest.fixture
def call_log():
    """Shared, ordered log of every provider and session call."""
    return []


@pytest.fixture
def fake_provider(call_log):
    return FakeProvider(call_log)


@pytest.fixture
def recording_session(call_log):
    return RecordingSession(call_log)


@pytest.fixture
def recording_reporter():
    return RecordingReporter()


@pytest.fixture
def scripted_prompter():
    """Factory: scripted_prompter(["token", "example.com"])."""
    return ScriptedPrompter
