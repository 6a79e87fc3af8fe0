"""Core configuration, auth, and shared infrastructure."""

from cultivate.core.config import Settings, get_settings
from cultivate.core.auth import decode_access_token
from cultivate.core.limiter import limiter

__all__ = [
    "Settings",
    "get_settings",
    "decode_access_token",
    "limiter",
]
