"""Paid-plan checkout endpoint."""
from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_checkout_gateway, get_current_user_id
from schemas.checkout import CheckoutRequest
from services.checkout import CheckoutGateway

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/")
async def create_checkout(
    data: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    gateway: CheckoutGateway = Depends(get_checkout_gateway),
) -> dict[str, Any]:
    """
    Create a hosted checkout for a plan variant.

    Returns the provider's checkout object. Returns 400 if `variantId` is
    missing; any provider failure is reported as an opaque 500.
    """
    variant_id = None if data.variant_id is None else str(data.variant_id)
    return await gateway.create_checkout(variant_id, user_id)
