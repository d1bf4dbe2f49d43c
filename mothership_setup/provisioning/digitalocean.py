"""DigitalOcean API preflight: check the access token before creating billable droplets."""

import logging

import httpx

from mothership_setup.errors import InvalidCredentialsError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.digitalocean.com"


async def verify_access_token(access_token, api_url=DEFAULT_API_URL, dry_run=False, transport=None):
    """Confirm DigitalOcean accepts *access_token*.

    GET /v2/account

    Args:
        transport: optional httpx transport (used by tests).

    Returns:
        The ``account`` dict, or ``None`` in dry-run mode.

    Raises:
        InvalidCredentialsError: the token was rejected (401/403).
        ProviderError: the API could not be reached or answered with an error.
    """
    url = f"{api_url}/v2/account"

    if dry_run:
        logger.info(f"[dry-run] GET {url}")
        return None

    headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
    try:
        async with httpx.AsyncClient(transport=transport) as client:
            resp = await client.get(url, headers=headers, timeout=30)
    except httpx.RequestError as e:
        raise ProviderError(f"Could not reach DigitalOcean API at {api_url}: {e}") from e

    if resp.status_code in (401, 403):
        raise InvalidCredentialsError("DigitalOcean rejected the access token")
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ProviderError(f"DigitalOcean account check failed: {e}") from e

    try:
        body = resp.json()
    except ValueError as e:
        raise ProviderError("Unexpected response from DigitalOcean account check") from e
    if not isinstance(body, dict):
        raise ProviderError("Unexpected response from DigitalOcean account check")
    account = body.get("account") or {}
    logger.info(f"Access token accepted (account status: {account.get('status', 'unknown')}).")
    return account
