"""Tests for the summarize-url, checkout and health endpoints."""
import pytest
import respx
from httpx import AsyncClient, Response

from api.dependencies import get_checkout_gateway
from api.main import app
from core.config import Settings
from services.checkout import CHECKOUTS_PATH, CheckoutGateway
from tests.factories import USER_ID, FakeSummarizer

PAYMENTS_URL = "http://payments.test"


@pytest.fixture
def gateway() -> CheckoutGateway:
    """Checkout gateway pointed at a mocked provider."""
    settings = Settings(
        _env_file=None,
        LEMONSQUEEZY_API_URL=PAYMENTS_URL,
        LEMONSQUEEZY_API_KEY="key-123",
        LEMONSQUEEZY_STORE_ID="42",
    )
    checkout_gateway = CheckoutGateway.from_settings(settings)
    app.dependency_overrides[get_checkout_gateway] = lambda: checkout_gateway
    return checkout_gateway


# =============================================================================
# Summarize URL
# =============================================================================


async def test__summarize_url__returns_summary(
    client: AsyncClient, summarizer: FakeSummarizer,
) -> None:
    response = await client.post(
        "/agent/summarize-url",
        json={"url": "https://example.com/", "title": "Example"},
        headers={"Authorization": "Bearer t"},
    )

    assert response.status_code == 200
    assert response.json() == {"summary": "A concise summary."}
    assert summarizer.calls == [("https://example.com/", "Example", "Bearer t")]


async def test__summarize_url__missing_url_is_400(client: AsyncClient) -> None:
    response = await client.post("/agent/summarize-url", json={"url": ""})

    assert response.status_code == 400
    assert response.json() == {"detail": "URL is required"}


async def test__summarize_url__upstream_failure_is_502(
    client: AsyncClient, summarizer: FakeSummarizer,
) -> None:
    summarizer.fail_status = 503

    response = await client.post("/agent/summarize-url", json={"url": "https://example.com/"})

    assert response.status_code == 502
    assert response.json() == {"detail": "summarizer unavailable (upstream status 503)"}


# =============================================================================
# Checkout
# =============================================================================


async def test__checkout__returns_provider_object(
    client: AsyncClient, gateway: CheckoutGateway,
) -> None:
    checkout = {"data": {"type": "checkouts", "id": "co_1"}}
    with respx.mock(base_url=PAYMENTS_URL) as mock_api:
        route = mock_api.post(CHECKOUTS_PATH).mock(return_value=Response(201, json=checkout))

        response = await client.post("/checkout/", json={"variantId": 777})

    assert response.status_code == 200
    assert response.json() == checkout
    assert USER_ID in route.calls[0].request.content.decode()


async def test__checkout__missing_variant_is_400(
    client: AsyncClient, gateway: CheckoutGateway,
) -> None:
    response = await client.post("/checkout/", json={})

    assert response.status_code == 400
    assert response.json() == {"detail": "Variant ID is required"}


async def test__checkout__provider_failure_is_opaque_500(
    client: AsyncClient, gateway: CheckoutGateway,
) -> None:
    with respx.mock(base_url=PAYMENTS_URL) as mock_api:
        mock_api.post(CHECKOUTS_PATH).mock(
            return_value=Response(401, json={"errors": [{"detail": "Unauthenticated."}]}),
        )

        response = await client.post("/checkout/", json={"variantId": "777"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Error"}


# =============================================================================
# Health
# =============================================================================


async def test__health__in_memory_store(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy", "store": "memory", "database": "not configured",
    }
