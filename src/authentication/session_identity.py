"""FastAPI dependencies that turn the upstream session into a user.

Sign-in happens in front of this service. The session layer forwards the
signed-in Steam identity as ``X-Steam-Id`` (with ``X-Display-Name`` and
``X-Avatar``); the user row is created on first sight with starting gems and
only written again when the forwarded profile changes.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from src.errors import Forbidden, Unauthenticated
from src.models.schema_models import UserSchema
from src.services.container import EconomyServices

logger = logging.getLogger(__name__)


def get_services(request: Request) -> EconomyServices:
    return request.app.state.services


async def optional_user(
    x_steam_id: Optional[str] = Header(None),
    x_display_name: Optional[str] = Header(None),
    x_avatar: Optional[str] = Header(None),
    services: EconomyServices = Depends(get_services),
) -> Optional[UserSchema]:
    """Resolve the caller, or None for anonymous requests

    Args:
        x_steam_id (Optional[str]): Steam id forwarded by the session layer
        x_display_name (Optional[str]): Profile name
        x_avatar (Optional[str]): Profile picture URL

    Returns:
        Optional[UserSchema]: The stored user
    """
    steam_id = (x_steam_id or "").strip()
    if not steam_id:
        return None
    return await services.catalog.identify(steam_id, x_display_name, x_avatar)


async def current_user(user: Optional[UserSchema] = Depends(optional_user)) -> UserSchema:
    if user is None:
        raise Unauthenticated("sign in required")
    return user


async def require_admin(user: UserSchema = Depends(current_user)) -> UserSchema:
    if not user.is_admin:
        logger.warning(f"Admin route refused for {user.steam_id}")
        raise Forbidden("admin only")
    return user
