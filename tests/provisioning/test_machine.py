"""Unit tests for provisioning/machine: command builders, local and tunneled providers."""

import pytest

import mothership_setup.provisioning.machine as machine_module
from mothership_setup.errors import (
    MachineNotFoundError,
    MalformedOutputError,
    ProviderError,
    RemoteCommandError,
    RemoteConnectionError,
)
from mothership_setup.provisioning.machine import (
    DRY_RUN_ADDRESS,
    DockerMachineProvider,
    TunneledMachineProvider,
    _machine_create_cmd,
    _machine_ip_cmd,
    _machine_rm_cmd,
    machine_env_prefix,
    parse_address,
)

CREDS = {"digitalocean-access-token": "dop_v1_abcdef123456"}


# ── Command builders ─────────────────────────────────────────────


def test_create_cmd():
    assert _machine_create_cmd("mothership-paas", "digitalocean", CREDS) == [
        "docker-machine",
        "create",
        "--driver",
        "digitalocean",
        "--digitalocean-access-token",
        "dop_v1_abcdef123456",
        "mothership-paas",
    ]


def test_ip_and_rm_cmds():
    assert _machine_ip_cmd("node") == ["docker-machine", "ip", "node"]
    assert _machine_rm_cmd("node") == ["docker-machine", "rm", "-y", "node"]


def test_machine_env_prefix():
    assert machine_env_prefix("mothership-swarm") == "eval $(docker-machine env mothership-swarm)"


# ── parse_address ────────────────────────────────────────────────


def test_parse_address_trims_output():
    assert parse_address("node", "  167.99.1.2\n") == "167.99.1.2"


def test_parse_address_accepts_ipv6():
    assert parse_address("node", "2001:db8::1\n") == "2001:db8::1"


@pytest.mark.parametrize("output", ["", "   \n"])
def test_parse_address_empty_is_malformed(output):
    with pytest.raises(MalformedOutputError, match="No IP address"):
        parse_address("node", output)


def test_parse_address_garbage_is_malformed():
    with pytest.raises(MalformedOutputError, match="Unexpected IP address"):
        parse_address("node", "Error checking TLS connection")


# ── DockerMachineProvider ────────────────────────────────────────


@pytest.fixture
def shell_results(monkeypatch):
    """Replace run_shell_cmd in the machine module; returns (calls, results)."""
    calls = []
    results = []

    async def fake_run_shell_cmd(command, dry_run=False, timeout=600):
        calls.append((command, timeout))
        return results.pop(0) if results else (0, "", "")

    monkeypatch.setattr(machine_module, "run_shell_cmd", fake_run_shell_cmd)
    return calls, results


async def test_local_create_runs_docker_machine(shell_results):
    calls, _ = shell_results
    provider = DockerMachineProvider(create_timeout=999)

    handle = await provider.create("mothership-paas", CREDS)

    assert handle.name == "mothership-paas"
    assert handle.address is None
    assert calls == [(_machine_create_cmd("mothership-paas", "digitalocean", CREDS), 999)]


async def test_local_create_failure_raises_provider_error(shell_results):
    _, results = shell_results
    results.append((1, "", "Error creating machine: quota exceeded"))

    with pytest.raises(ProviderError, match="quota exceeded"):
        await DockerMachineProvider().create("mothership-paas", CREDS)


async def test_local_get_address(shell_results):
    calls, results = shell_results
    results.append((0, "167.99.1.2\n", ""))

    assert await DockerMachineProvider().get_address("mothership-paas") == "167.99.1.2"
    assert calls[0][0] == ["docker-machine", "ip", "mothership-paas"]


async def test_local_get_address_missing_host(shell_results):
    _, results = shell_results
    results.append((1, "", 'Host does not exist: "mothership-paas"'))

    with pytest.raises(MachineNotFoundError):
        await DockerMachineProvider().get_address("mothership-paas")


async def test_local_get_address_other_failure(shell_results):
    _, results = shell_results
    results.append((1, "", "Error: machine is not running"))

    with pytest.raises(ProviderError, match="not running") as exc_info:
        await DockerMachineProvider().get_address("mothership-paas")
    assert not isinstance(exc_info.value, MachineNotFoundError)


async def test_local_destroy(shell_results):
    calls, _ = shell_results
    await DockerMachineProvider().destroy("mothership-paas")
    assert calls[0][0] == ["docker-machine", "rm", "-y", "mothership-paas"]


async def test_local_destroy_failure(shell_results):
    _, results = shell_results
    results.append((1, "", "Error removing host"))
    with pytest.raises(ProviderError):
        await DockerMachineProvider().destroy("mothership-paas")


async def test_local_dry_run_logs_and_returns_placeholder(caplog):
    provider = DockerMachineProvider(dry_run=True)
    with caplog.at_level("INFO"):
        await provider.create("mothership-paas", CREDS)
        address = await provider.get_address("mothership-paas")
    assert address == DRY_RUN_ADDRESS
    assert "[dry-run] docker-machine create --driver digitalocean" in caplog.text
    assert "[dry-run] docker-machine ip mothership-paas" in caplog.text


# ── TunneledMachineProvider ──────────────────────────────────────


async def test_tunneled_create_runs_on_via_host(recording_session, call_log):
    provider = TunneledMachineProvider(recording_session, "mothership-paas", create_timeout=1234)

    handle = await provider.create("mothership-swarm", CREDS)

    assert handle.name == "mothership-swarm"
    assert call_log == [
        (
            "session",
            "mothership-paas",
            "docker-machine create --driver digitalocean --digitalocean-access-token dop_v1_abcdef123456 mothership-swarm",
        )
    ]


async def test_tunneled_get_address_parses_output(recording_session, call_log):
    provider = TunneledMachineProvider(recording_session, "mothership-paas")

    assert await provider.get_address("mothership-swarm") == "10.0.0.2"
    assert call_log == [("session", "mothership-paas", "docker-machine ip mothership-swarm")]


async def test_tunneled_get_address_empty_output(recording_session):
    recording_session.responses = []
    provider = TunneledMachineProvider(recording_session, "mothership-paas")

    with pytest.raises(MalformedOutputError):
        await provider.get_address("mothership-swarm")


async def test_tunneled_get_address_missing_host(recording_session):
    recording_session.failures.append(
        ("docker-machine ip", RemoteCommandError("mothership-paas", "docker-machine ip x", 1, 'Host does not exist: "x"'))
    )
    provider = TunneledMachineProvider(recording_session, "mothership-paas")

    with pytest.raises(MachineNotFoundError):
        await provider.get_address("mothership-swarm")


async def test_tunneled_get_address_unreachable_via_host(recording_session):
    recording_session.failures.append(
        ("docker-machine ip", RemoteConnectionError("mothership-paas", "docker-machine ip x", 255, "Connection refused"))
    )
    provider = TunneledMachineProvider(recording_session, "mothership-paas")

    with pytest.raises(RemoteConnectionError):
        await provider.get_address("mothership-swarm")


async def test_tunneled_destroy(recording_session, call_log):
    provider = TunneledMachineProvider(recording_session, "mothership-paas")
    await provider.destroy("mothership-swarm")
    assert call_log == [("session", "mothership-paas", "docker-machine rm -y mothership-swarm")]


async def test_tunneled_dry_run_returns_placeholder(recording_session):
    recording_session.responses = []
    provider = TunneledMachineProvider(recording_session, "mothership-paas", dry_run=True)
    assert await provider.get_address("mothership-swarm") == DRY_RUN_ADDRESS
