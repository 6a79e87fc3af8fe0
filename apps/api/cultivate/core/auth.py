from typing import Optional

from jose import JWTError, jwt

from cultivate.core.config import get_settings


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id (``sub``) of a valid bearer token, else None."""
    s = get_settings()
    try:
        payload = jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])
        sub = payload.get("sub")
        return str(sub) if sub is not None else None
    except JWTError:
        return None
