from .chat import (
    ChatProvider,
    ChatRateLimitError,
    ChatServiceError,
    ChatTimeoutError,
    get_chat_provider,
)

__all__ = [
    "ChatProvider",
    "ChatServiceError",
    "ChatRateLimitError",
    "ChatTimeoutError",
    "get_chat_provider",
]
