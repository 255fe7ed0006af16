"""
Typed gateway for calls to external collaborators.

Every upstream service (summarizer, tag suggestions, checkout provider) is
described by an ``UpstreamConfig``: where it lives, how long a call may take,
and whether its failures are fatal to the calling operation. ``call_upstream``
is the single place that turns transport errors, timeouts, non-2xx responses
and malformed bodies into ``UpstreamUnavailableError``.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from services.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamConfig:
    """Address, deadline and failure classification of an external collaborator."""

    name: str
    base_url: str
    timeout: float
    fatal: bool = False
    content_type: str = "application/json"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"{self.name} timeout must be positive, got {self.timeout}")


def upstream_failure(
    config: UpstreamConfig,
    status_code: int | None = None,
    reason: str = "",
) -> UpstreamUnavailableError:
    """Log an upstream failure and build the error to raise for it."""
    level = logging.ERROR if config.fatal else logging.WARNING
    logger.log(
        level,
        "Upstream %s call failed (status=%s, reason=%s)",
        config.name,
        status_code,
        reason or "n/a",
    )
    return UpstreamUnavailableError(
        config.name, status_code=status_code, reason=reason, fatal=config.fatal,
    )


async def call_upstream(
    config: UpstreamConfig,
    path: str,
    json: dict[str, Any],
    headers: dict[str, str] | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    POST a JSON body to an upstream service and return its JSON object response.

    Args:
        config: The collaborator being called.
        path: Path appended to ``config.base_url``.
        json: Request body.
        headers: Extra headers (e.g. a relayed Authorization header).
        client: Optional shared client; a short-lived one is created otherwise.

    Returns:
        The decoded JSON object.

    Raises:
        UpstreamUnavailableError: On timeout, transport error, non-2xx status, or a
            body that is not a JSON object. The upstream body is never included.
    """
    url = f"{config.base_url.rstrip('/')}/{path.lstrip('/')}"
    request_headers = {"Content-Type": config.content_type, "Accept": config.content_type}
    if headers:
        request_headers.update(headers)

    try:
        async with asyncio.timeout(config.timeout):
            if client is not None:
                response = await client.post(url, json=json, headers=request_headers)
            else:
                async with httpx.AsyncClient(timeout=config.timeout) as own_client:
                    response = await own_client.post(url, json=json, headers=request_headers)
    except (TimeoutError, httpx.TimeoutException):
        raise upstream_failure(config, reason="timed out") from None
    except httpx.RequestError as e:
        raise upstream_failure(config, reason=type(e).__name__) from e

    if not response.is_success:
        raise upstream_failure(config, status_code=response.status_code)

    try:
        body = response.json()
    except ValueError:
        raise upstream_failure(
            config, status_code=response.status_code, reason="malformed body",
        ) from None
    if not isinstance(body, dict):
        raise upstream_failure(config, status_code=response.status_code, reason="malformed body")
    return body
