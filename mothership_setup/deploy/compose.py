"""Deployment descriptor: session secret generation and docker-compose rendering."""

import secrets
from dataclasses import dataclass, field

SESSION_SECRET_BYTES = 256
DEFAULT_IMAGE = "mothershippaas/mothership:latest"
DEFAULT_MANAGER_NAME = "mothership-swarm"


@dataclass(frozen=True)
class DeploymentDescriptor:
    """Rendered compose document plus the secret embedded in it."""

    document: str
    secret: str = field(repr=False)


def generate_session_secret(nbytes=SESSION_SECRET_BYTES):
    """Return *nbytes* of cryptographically strong randomness, hex-encoded."""
    if nbytes < SESSION_SECRET_BYTES:
        raise ValueError(f"Session secret needs at least {SESSION_SECRET_BYTES} bytes, got {nbytes}")
    return secrets.token_hex(nbytes)


def render_compose(domain, manager_ip, session_secret, manager_name=DEFAULT_MANAGER_NAME, image=DEFAULT_IMAGE):
    """Build docker-compose.yml for the Mothership web app, Postgres, and Redis.

    Values are embedded verbatim; callers validate them first.
    """
    return f"""version: '3'

services:
  web:
    image: {image}
    volumes:
      - /var/run/docker.sock:/var/run/docker.sock
      - /root/.docker:/root/.docker
    environment:
      - NODE_ENV=production
      - SESSION_SECRET={session_secret}
      - REDIS_HOST=redis
      - DB_USERNAME=postgres
      - DB_NAME=paas_development
      - DB_HOST=database
      - DB_PASSWORD=password
      - MOTHERSHIP_DOMAIN={domain}
      - MOTHERSHIP_MANAGER_NAME={manager_name}
      - MOTHERSHIP_MANAGER_IP={manager_ip}
    ports:
      - "443:443"
      - "80:80"
      - "3000:3000"

  database:
    image: postgres
    environment:
      - POSTGRES_DB=paas_development
      - POSTGRES_PASSWORD=password
    volumes:
      - db_data:/var/lib/postgresql/data

  redis:
    image: redis

volumes:
  db_data:
"""


def render_descriptor(domain, peer_address, manager_name=DEFAULT_MANAGER_NAME, image=DEFAULT_IMAGE):
    """Generate a fresh session secret and render the compose document around it."""
    secret = generate_session_secret()
    document = render_compose(domain, peer_address, secret, manager_name=manager_name, image=image)
    return DeploymentDescriptor(document=document, secret=secret)
