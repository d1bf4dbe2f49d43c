"""Provisioning workflow: bring up the control host, the swarm host, and the app stack.

The workflow is a fixed list of steps run strictly in order. Each step goes
through a RetryPolicy; only the two machine-creation steps are retried (with
the half-created machine removed between attempts). The first step that
fails ends the run. Nothing already created is torn down automatically:
``cleanup_all()`` is the explicit way to remove both hosts.

The swarm host is created *from* the control host (docker-machine runs there
over SSH), so the control host holds everything needed to manage the swarm.
"""

import logging
import shlex
from dataclasses import dataclass
from typing import Awaitable, Callable

from mothership_setup.config import InstallerConfig, validate_access_token, validate_domain
from mothership_setup.console import ConsolePrompter, LoggingProgressReporter
from mothership_setup.deploy.compose import render_descriptor
from mothership_setup.deploy.report import build_dns_records
from mothership_setup.errors import SetupError, StepFailedError
from mothership_setup.provisioning.machine import TunneledMachineProvider, machine_env_prefix
from mothership_setup.provisioning.retry import RetryPolicy
from mothership_setup.provisioning.types import MachineHandle
from mothership_setup.redact import register_secret

logger = logging.getLogger(__name__)

COMPOSE_FILE = "docker-compose.yml"
OVERLAY_NETWORK = "proxy"
SEQUELIZE = "./node_modules/.bin/sequelize"
_HEREDOC_MARKER = "MOTHERSHIP_COMPOSE_EOF"

CONTROL_SECTION = "MOTHERSHIP SETUP"
SWARM_SECTION = "MOTHERSHIP SWARM SETUP"
APP_SECTION = "MOTHERSHIP CONFIG AND START"

WORKFLOW_STATES = (
    "Init",
    "HostA.Created",
    "HostA.Addressed",
    "HostA.Tooling.Installed",
    "HostB.Created",
    "HostB.Addressed",
    "Cluster.Initialized",
    "Network.Created",
    "ListenerService.Deployed",
    "ProxyService.Deployed",
    "AppConfig.Written",
    "AppStack.Started",
    "Migrated",
    "Seeded",
    "Done",
)


# ── Remote command payloads ────────────────────────────────────────


def install_compose_cmd(version):
    return (
        f'sudo curl -L "https://github.com/docker/compose/releases/download/{version}'
        f'/docker-compose-$(uname -s)-$(uname -m)" -o /usr/local/bin/docker-compose'
        " && sudo chmod +x /usr/local/bin/docker-compose"
    )


def install_machine_cmd(version):
    return (
        f"base=https://github.com/docker/machine/releases/download/{version}"
        " && curl -L $base/docker-machine-$(uname -s)-$(uname -m) >/tmp/docker-machine"
        " && sudo mv /tmp/docker-machine /usr/local/bin/docker-machine"
        " && sudo chmod +x /usr/local/bin/docker-machine"
    )


LISTENER_SERVICE_CMD = (
    "docker service create --name swarm-listener"
    f" --network {OVERLAY_NETWORK}"
    ' --mount "type=bind,source=/var/run/docker.sock,target=/var/run/docker.sock"'
    " -e DF_NOTIFY_CREATE_SERVICE_URL=http://proxy:8080/v1/docker-flow-proxy/reconfigure"
    " -e DF_NOTIFY_REMOVE_SERVICE_URL=http://proxy:8080/v1/docker-flow-proxy/remove"
    " --constraint 'node.role==manager'"
    " dockerflow/docker-flow-swarm-listener"
)

PROXY_SERVICE_CMD = (
    "docker service create --name proxy"
    " -p 80:80"
    " -p 443:443"
    f" --network {OVERLAY_NETWORK}"
    " -e LISTENER_ADDRESS=swarm-listener"
    " dockerflow/docker-flow-proxy"
)


def write_file_cmd(path, content):
    """Overwrite *path* with *content* using a quoted heredoc (no shell expansion)."""
    body = content.rstrip("\n")
    return f"cat > {shlex.quote(path)} <<'{_HEREDOC_MARKER}'\n{body}\n{_HEREDOC_MARKER}"


# ── Workflow types ─────────────────────────────────────────────────


@dataclass
class ProvisioningStep:
    """One named unit of the workflow."""

    name: str
    description: str  # shown to the operator while the step runs
    section: str
    reaches: str  # workflow state once the step succeeds
    action: Callable[[], Awaitable]
    compensation: Callable | None = None  # runs between failed attempts
    max_attempts: int = 1


@dataclass
class ProvisioningResult:
    control: MachineHandle
    swarm: MachineHandle
    domain: str

    @property
    def app_url(self) -> str:
        return f"http://mothership.{self.domain}"

    def dns_records(self):
        return build_dns_records(self.control.address, self.swarm.address)


class ProvisioningOrchestrator:
    """Runs the two-host bring-up against an injected provider and session.

    Args:
        provider: MachineProvider used for the control host.
        session: RemoteSession used for every command on the control host.
        swarm_provider: MachineProvider for the swarm host; defaults to a
            TunneledMachineProvider that runs docker-machine on the control host.
        render: callable(domain, peer_address, manager_name=, image=) returning
            a DeploymentDescriptor.
    """

    def __init__(
        self,
        provider,
        session,
        config: InstallerConfig | None = None,
        reporter=None,
        prompter=None,
        retry_policy: RetryPolicy | None = None,
        swarm_provider=None,
        render=render_descriptor,
        dry_run=False,
    ):
        self.config = config or InstallerConfig()
        self.provider = provider
        self.session = session
        self.swarm_provider = swarm_provider or TunneledMachineProvider(
            session,
            self.config.control_node_name,
            driver=self.config.driver,
            create_timeout=self.config.create_timeout,
            dry_run=dry_run,
        )
        self.reporter = reporter or LoggingProgressReporter()
        self.prompter = prompter or ConsolePrompter()
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=self.config.max_attempts)
        self.render = render
        self.control = MachineHandle(self.config.control_node_name)
        self.swarm = MachineHandle(self.config.swarm_node_name)
        self.state = "Init"

    # ── Inputs ─────────────────────────────────────────────────────

    def resolve_inputs(self, access_token=None, domain=None):
        """Prompt for whatever was not supplied, then validate both values.

        Returns:
            (access_token, domain) tuple.

        Raises:
            ValueError: a value is empty or unsafe to embed in shell commands.
        """
        if not access_token:
            access_token = self.prompter.ask("Please enter your DigitalOcean access token")
        if not domain:
            domain = self.prompter.ask("Please enter the domain you'd like your server to run on")
        access_token = validate_access_token(access_token)
        domain = validate_domain(domain)
        register_secret(access_token)
        return access_token, domain

    def credentials(self, access_token):
        return {f"{self.config.driver}-access-token": access_token}

    # ── Workflow ───────────────────────────────────────────────────

    def build_steps(self, credentials, domain):
        """Return the workflow steps in execution order."""
        cfg = self.config
        control, swarm = self.control.name, self.swarm.name
        return [
            ProvisioningStep(
                "create-control",
                "Creating droplet for Mothership (this may take a few moments)...",
                CONTROL_SECTION,
                "HostA.Created",
                action=lambda: self.provider.create(control, credentials),
                compensation=lambda err: self.provider.destroy(control),
                max_attempts=cfg.max_attempts,
            ),
            ProvisioningStep(
                "address-control",
                "Getting IP address of Mothership node...",
                CONTROL_SECTION,
                "HostA.Addressed",
                action=self._address_control,
            ),
            ProvisioningStep(
                "install-tooling",
                "Installing docker-compose and docker-machine...",
                CONTROL_SECTION,
                "HostA.Tooling.Installed",
                action=self._install_tooling,
            ),
            ProvisioningStep(
                "create-swarm",
                "Creating droplet for Mothership swarm manager...",
                SWARM_SECTION,
                "HostB.Created",
                action=lambda: self.swarm_provider.create(swarm, credentials),
                compensation=lambda err: self.swarm_provider.destroy(swarm),
                max_attempts=cfg.max_attempts,
            ),
            ProvisioningStep(
                "address-swarm",
                "Getting IP address...",
                SWARM_SECTION,
                "HostB.Addressed",
                action=self._address_swarm,
            ),
            ProvisioningStep(
                "init-swarm",
                "Initializing swarm...",
                SWARM_SECTION,
                "Cluster.Initialized",
                action=lambda: self._on_swarm(f"docker swarm init --advertise-addr {shlex.quote(self.swarm.address)}"),
            ),
            ProvisioningStep(
                "create-network",
                "Creating overlay network...",
                SWARM_SECTION,
                "Network.Created",
                action=lambda: self._on_swarm(f"docker network create --driver overlay {OVERLAY_NETWORK}"),
            ),
            ProvisioningStep(
                "deploy-listener",
                "Creating docker-flow-swarm-listener service...",
                SWARM_SECTION,
                "ListenerService.Deployed",
                action=lambda: self._on_swarm(LISTENER_SERVICE_CMD),
            ),
            ProvisioningStep(
                "deploy-proxy",
                "Creating docker-flow-proxy service...",
                SWARM_SECTION,
                "ProxyService.Deployed",
                action=lambda: self._on_swarm(PROXY_SERVICE_CMD),
            ),
            ProvisioningStep(
                "write-config",
                f"Creating {COMPOSE_FILE} for Mothership...",
                APP_SECTION,
                "AppConfig.Written",
                action=lambda: self._write_config(domain),
            ),
            ProvisioningStep(
                "start-stack",
                "Starting Mothership server (Node.js + Postgres)...",
                APP_SECTION,
                "AppStack.Started",
                action=lambda: self._on_control("docker-compose up -d"),
            ),
            ProvisioningStep(
                "migrate",
                "Running migrations for Mothership database...",
                APP_SECTION,
                "Migrated",
                action=lambda: self._on_control(f"docker-compose run web {SEQUELIZE} db:migrate"),
            ),
            ProvisioningStep(
                "seed",
                "Seeding Mothership's database...",
                APP_SECTION,
                "Seeded",
                action=lambda: self._on_control(f"docker-compose run web {SEQUELIZE} db:seed:all"),
            ),
        ]

    async def run(self, access_token=None, domain=None) -> ProvisioningResult:
        """Run every step in order.

        Raises:
            ValueError: invalid access token or domain (before any step runs).
            StepFailedError: a step failed; later steps were not attempted and
                hosts created so far were left in place.
        """
        access_token, domain = self.resolve_inputs(access_token, domain)
        section = None
        for step in self.build_steps(self.credentials(access_token), domain):
            if step.section != section:
                section = step.section
                self.reporter.section(section)
            await self._run_step(step)
        self.state = "Done"
        return ProvisioningResult(control=self.control, swarm=self.swarm, domain=domain)

    async def _run_step(self, step):
        self.reporter.start(step.description)
        try:
            await self.retry_policy.execute(step.action, on_failure=step.compensation, max_attempts=step.max_attempts)
        except Exception as e:
            self.reporter.fail()
            raise StepFailedError(step.name, self.state, e) from e
        self.reporter.succeed()
        self.state = step.reaches

    # ── Step actions ───────────────────────────────────────────────

    async def _on_control(self, command, timeout=None):
        return await self.session.run(self.control.name, command, timeout=timeout)

    async def _on_swarm(self, command):
        # docker CLI on the control host, pointed at the swarm host for this call only
        return await self._on_control(f"{machine_env_prefix(self.swarm.name)}; {command}")

    async def _address_control(self):
        self.control.address = await self.provider.get_address(self.control.name)
        logger.info(f"Mothership IP: {self.control.address}")

    async def _install_tooling(self):
        await self._on_control(install_compose_cmd(self.config.compose_version))
        await self._on_control(install_machine_cmd(self.config.machine_version))

    async def _address_swarm(self):
        self.swarm.address = await self.swarm_provider.get_address(self.swarm.name)
        logger.info(f"Swarm manager IP: {self.swarm.address}")

    async def _write_config(self, domain):
        descriptor = self.render(
            domain,
            self.swarm.address,
            manager_name=self.swarm.name,
            image=self.config.image,
        )
        register_secret(descriptor.secret)
        await self._on_control(write_file_cmd(COMPOSE_FILE, descriptor.document))

    # ── Cleanup ────────────────────────────────────────────────────

    async def cleanup_all(self):
        """Remove the swarm host (via the control host), then the control host.

        Best-effort: each failure is reported and the next host is still tried.

        Returns:
            Names of the hosts that could not be removed.
        """
        failed = []
        for provider, name in ((self.swarm_provider, self.swarm.name), (self.provider, self.control.name)):
            self.reporter.start(f"Removing {name}...")
            try:
                await provider.destroy(name)
            except SetupError as e:
                self.reporter.fail()
                logger.error(f"Could not remove '{name}': {e}")
                failed.append(name)
                continue
            self.reporter.succeed()
        return failed
