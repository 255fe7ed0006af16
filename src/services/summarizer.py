"""Client for the external URL summarization service."""
import logging
from typing import Protocol

import httpx

from core.config import Settings
from shared.gateway import UpstreamConfig, call_upstream, upstream_failure

logger = logging.getLogger(__name__)

SUMMARIZE_PATH = "/api/agent/summarize-url"


class Summarizer(Protocol):
    """Anything that can produce a summary for a URL."""

    async def summarize(
        self, url: str, title: str | None = None, authorization: str | None = None,
    ) -> str: ...


class SummarizationClient:
    """
    Summarizes URLs through the agent service.

    ``summarize`` returns a non-empty summary or raises
    ``UpstreamUnavailableError``; an empty or missing summary counts as a
    failure.
    """

    def __init__(self, config: UpstreamConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SummarizationClient":
        """Build a client from application settings."""
        return cls(
            UpstreamConfig(
                name="summarizer",
                base_url=settings.summarizer_url,
                timeout=settings.summarizer_timeout,
                fatal=False,
            ),
        )

    async def summarize(
        self, url: str, title: str | None = None, authorization: str | None = None,
    ) -> str:
        """
        Request a summary for ``url``.

        Args:
            url: The page to summarize.
            title: Optional title hint sent along with the URL.
            authorization: Caller's Authorization header, relayed as-is.

        Raises:
            UpstreamUnavailableError: If the service fails or returns no summary.
        """
        payload: dict[str, str] = {"url": url}
        if title:
            payload["title"] = title
        headers = {"Authorization": authorization} if authorization else None

        body = await call_upstream(
            self.config, SUMMARIZE_PATH, json=payload, headers=headers, client=self._client,
        )
        summary = body.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise upstream_failure(self.config, reason="empty summary")
        logger.debug("Summarized %s (%d chars)", url, len(summary))
        return summary.strip()
