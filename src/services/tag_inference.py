"""Client for the external tag/category suggestion service."""
import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from core.config import Settings
from shared.gateway import UpstreamConfig, call_upstream

logger = logging.getLogger(__name__)

SUGGESTIONS_PATH = "/api/agent/suggestions"


@dataclass(frozen=True)
class Suggestion:
    """Names suggested for a bookmark. Names are free-form and matched later."""

    tags: list[str] = field(default_factory=list)
    collection: str | None = None
    category: str | None = None


class TagInferrer(Protocol):
    """Anything that can suggest tags, a collection and a category for a URL."""

    async def suggest(
        self, url: str, title: str, summary: str, authorization: str | None = None,
    ) -> Suggestion: ...


def _optional_name(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class TagInferenceClient:
    """Requests tag, collection and category suggestions from the agent service."""

    def __init__(self, config: UpstreamConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "TagInferenceClient":
        """Build a client from application settings."""
        return cls(
            UpstreamConfig(
                name="tag-inference",
                base_url=settings.summarizer_url,
                timeout=settings.tag_inference_timeout,
                fatal=False,
            ),
        )

    async def suggest(
        self, url: str, title: str, summary: str, authorization: str | None = None,
    ) -> Suggestion:
        """
        Ask the agent service for suggestions.

        Non-string tag entries are ignored.

        Raises:
            UpstreamUnavailableError: If the service fails.
        """
        headers = {"Authorization": authorization} if authorization else None
        body = await call_upstream(
            self.config,
            SUGGESTIONS_PATH,
            json={"url": url, "title": title, "summary": summary},
            headers=headers,
            client=self._client,
        )
        raw_tags = body.get("tags") or []
        if not isinstance(raw_tags, list):
            raw_tags = []
        return Suggestion(
            tags=[t for t in raw_tags if isinstance(t, str) and t.strip()],
            collection=_optional_name(body.get("collection")),
            category=_optional_name(body.get("category")),
        )
