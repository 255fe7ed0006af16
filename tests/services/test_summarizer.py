"""Tests for the summarization client."""
import json

import pytest
import respx
from httpx import Response

from core.config import Settings
from services.exceptions import UpstreamUnavailableError
from services.summarizer import SUMMARIZE_PATH, SummarizationClient

BASE_URL = "http://summarizer.test"


@pytest.fixture
def client() -> SummarizationClient:
    """Client pointed at the mocked service."""
    settings = Settings(_env_file=None, SUMMARIZER_URL=BASE_URL, SUMMARIZER_TIMEOUT=3)
    return SummarizationClient.from_settings(settings)


@pytest.fixture
def mock_api() -> respx.MockRouter:
    """Mock the summarization service."""
    with respx.mock(base_url=BASE_URL) as respx_mock:
        yield respx_mock


def test__from_settings__non_fatal_with_configured_timeout(client: SummarizationClient) -> None:
    assert client.config.name == "summarizer"
    assert client.config.timeout == 3
    assert client.config.fatal is False


async def test__summarize__sends_url_title_and_authorization(
    client: SummarizationClient, mock_api: respx.MockRouter,
) -> None:
    route = mock_api.post(SUMMARIZE_PATH).mock(
        return_value=Response(200, json={"summary": "  A short summary. "}),
    )

    summary = await client.summarize("https://example.com/", "Example", "Bearer abc")

    assert summary == "A short summary."
    request = route.calls[0].request
    assert json.loads(request.content) == {"url": "https://example.com/", "title": "Example"}
    assert request.headers["authorization"] == "Bearer abc"


async def test__summarize__omits_missing_title_and_authorization(
    client: SummarizationClient, mock_api: respx.MockRouter,
) -> None:
    route = mock_api.post(SUMMARIZE_PATH).mock(return_value=Response(200, json={"summary": "S"}))

    await client.summarize("https://example.com/")

    request = route.calls[0].request
    assert json.loads(request.content) == {"url": "https://example.com/"}
    assert "authorization" not in request.headers


@pytest.mark.parametrize("body", [{"summary": ""}, {"summary": "   "}, {}, {"summary": 42}])
async def test__summarize__empty_summary_is_failure(
    client: SummarizationClient, mock_api: respx.MockRouter, body: dict,
) -> None:
    mock_api.post(SUMMARIZE_PATH).mock(return_value=Response(200, json=body))

    with pytest.raises(UpstreamUnavailableError, match="empty summary"):
        await client.summarize("https://example.com/")


async def test__summarize__upstream_error_carries_status(
    client: SummarizationClient, mock_api: respx.MockRouter,
) -> None:
    mock_api.post(SUMMARIZE_PATH).mock(
        return_value=Response(429, json={"error": "quota exceeded for key sk-123"}),
    )

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.summarize("https://example.com/")

    assert exc_info.value.status_code == 429
    assert "sk-123" not in exc_info.value.message
