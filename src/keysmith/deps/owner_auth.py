import hmac

from fastapi import Header
from keysmith.config import settings
from keysmith.core.errors import Unauthorized


async def require_owner(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_session_token: str | None = Header(default=None, alias="X-Session-Token"),
) -> str:
    """
    The identity proxy signs users in and forwards their id. Only requests
    carrying the proxy's shared token are trusted.
    """
    expected = settings.session_proxy_token
    if not expected or not x_session_token or not hmac.compare_digest(x_session_token, expected):
        raise Unauthorized()
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized()
    return x_user_id.strip()
