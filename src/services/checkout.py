"""Checkout creation for the paid plan via Lemon Squeezy."""
import logging
from typing import Any

import httpx

from core.config import Settings
from services.exceptions import InvalidInputError
from shared.gateway import UpstreamConfig, call_upstream, upstream_failure

logger = logging.getLogger(__name__)

JSON_API_CONTENT_TYPE = "application/vnd.api+json"
CHECKOUTS_PATH = "/v1/checkouts"


class CheckoutGateway:
    """
    Creates hosted checkouts with the payment provider.

    Provider failures are fatal to the request and surface to API callers as an
    opaque internal error.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        api_key: str,
        store_id: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.api_key = api_key
        self.store_id = store_id
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CheckoutGateway":
        """Build a gateway from application settings."""
        return cls(
            UpstreamConfig(
                name="checkout",
                base_url=settings.lemonsqueezy_api_url,
                timeout=settings.checkout_timeout,
                fatal=True,
                content_type=JSON_API_CONTENT_TYPE,
            ),
            api_key=settings.lemonsqueezy_api_key,
            store_id=settings.lemonsqueezy_store_id,
        )

    async def create_checkout(
        self, variant_id: str | None, user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a checkout for a product variant.

        Args:
            variant_id: The provider's variant id for the plan being bought.
            user_id: Passed as custom checkout data so the purchase can be matched
                back to the user.

        Returns:
            The provider's checkout object, unchanged.

        Raises:
            InvalidInputError: If ``variant_id`` is missing.
            UpstreamUnavailableError: If the provider is unconfigured or fails.
        """
        if variant_id is None or not str(variant_id).strip():
            raise InvalidInputError("Variant ID is required")
        if not self.api_key or not self.store_id:
            raise upstream_failure(self.config, reason="not configured")

        attributes: dict[str, Any] = {}
        if user_id:
            attributes["checkout_data"] = {"custom": {"user_id": user_id}}
        payload = {
            "data": {
                "type": "checkouts",
                "attributes": attributes,
                "relationships": {
                    "store": {"data": {"type": "stores", "id": str(self.store_id)}},
                    "variant": {"data": {"type": "variants", "id": str(variant_id).strip()}},
                },
            },
        }
        checkout = await call_upstream(
            self.config,
            CHECKOUTS_PATH,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            client=self._client,
        )
        logger.info("Created checkout for variant %s", variant_id)
        return checkout
