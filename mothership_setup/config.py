"""Installer configuration: defaults, YAML overrides, and operator input validation."""

import os
import re
from dataclasses import dataclass, fields

import yaml

from mothership_setup.deploy.compose import DEFAULT_IMAGE
from mothership_setup.provisioning.machine import DEFAULT_DRIVER
from mothership_setup.provisioning.retry import DEFAULT_MAX_ATTEMPTS
from mothership_setup.redact import MIN_SECRET_LENGTH

ACCESS_TOKEN_ENV_VAR = "DIGITALOCEAN_ACCESS_TOKEN"

_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass
class InstallerConfig:
    """Everything about a run that is not a credential or the domain."""

    control_node_name: str = "mothership-paas"
    swarm_node_name: str = "mothership-swarm"
    driver: str = DEFAULT_DRIVER
    compose_version: str = "1.25.0"
    machine_version: str = "v0.16.2"
    image: str = DEFAULT_IMAGE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    command_timeout: int = 600
    create_timeout: int = 1800

    @classmethod
    def from_dict(cls, d: dict) -> "InstallerConfig":
        """Build a config from a parsed YAML mapping. Unknown keys are an error."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")
        config = cls(**d)
        if config.control_node_name == config.swarm_node_name:
            raise ValueError("control_node_name and swarm_node_name must differ")
        if config.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {config.max_attempts}")
        return config


def load_config(config_path: str | None = None) -> InstallerConfig:
    """Load an InstallerConfig from a YAML file, or the defaults when no path is given.

    Raises:
        FileNotFoundError, yaml.YAMLError, ValueError
    """
    if config_path is None:
        return InstallerConfig()
    with open(os.path.expanduser(config_path)) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file '{config_path}' must contain a mapping")
    return InstallerConfig.from_dict(raw)


def resolve_access_token(flag_value=None):
    """Return the token from the CLI flag or the environment, or None."""
    return flag_value or os.environ.get(ACCESS_TOKEN_ENV_VAR) or None


def validate_domain(domain: str) -> str:
    """Return the normalized domain, or raise ValueError if it is not a DNS name."""
    normalized = domain.strip().lower().rstrip(".")
    if not _DOMAIN_RE.match(normalized):
        raise ValueError(f"Invalid domain name: {domain!r}")
    return normalized


def validate_access_token(token: str) -> str:
    """Return the stripped token, or raise ValueError if it is too short or has unsafe characters.

    Tokens shorter than MIN_SECRET_LENGTH could not be redacted from logs.
    """
    stripped = token.strip()
    if not _TOKEN_RE.match(stripped):
        raise ValueError("Access token must contain only letters, digits, '-' and '_'")
    if len(stripped) < MIN_SECRET_LENGTH:
        raise ValueError(f"Access token must be at least {MIN_SECRET_LENGTH} characters long")
    return stripped
