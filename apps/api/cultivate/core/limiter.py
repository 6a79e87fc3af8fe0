from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from cultivate.core.auth import decode_access_token


def rate_limit_key(request: Request) -> str:
    """Signed-in callers share one bucket per user across addresses; anyone else is keyed by address."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    token = token.strip()
    user_id = decode_access_token(token) if scheme == "Bearer" and token else None
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=rate_limit_key)
