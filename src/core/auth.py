"""Request identity resolution."""
from fastapi import Depends, Header, HTTPException, status

from core.config import Settings, get_settings


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Resolve the user a request acts for.

    Authentication happens upstream of this service: the gateway forwards the
    authenticated user's id in ``X-User-Id``. In DEV_MODE every request acts as
    ``DEV_USER_ID``.

    Raises:
        HTTPException: 401 if no user id is present outside DEV_MODE.
    """
    if settings.dev_mode:
        return settings.dev_user_id
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_user_id.strip()


async def get_authorization(authorization: str | None = Header(default=None)) -> str | None:
    """Caller's Authorization header, relayed to the agent service."""
    return authorization
