"""Pydantic schemas for checkout creation."""
from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    """
    Schema for starting a checkout.

    ``variantId`` may be omitted at the schema level so that a missing variant
    is reported as a 400 by the checkout gateway rather than a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    variant_id: str | int | None = Field(default=None, alias="variantId")
