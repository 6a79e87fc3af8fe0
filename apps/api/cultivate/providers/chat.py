import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from cultivate.core import get_settings

logger = logging.getLogger(__name__)


class ChatServiceError(Exception):
    """Raised when the chat/LLM API is unavailable or returns invalid or unexpected output."""


class ChatRateLimitError(ChatServiceError):
    """Raised when the chat/LLM API rate limits the request."""


class ChatTimeoutError(ChatServiceError):
    """Raised when the chat/LLM API does not answer in time."""


class ChatProvider(ABC):
    @abstractmethod
    async def _chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 4096,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> str:
        pass

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        """System + user message in, raw assistant text out."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        if not json_mode:
            return await self._chat(messages, max_tokens=max_tokens, temperature=temperature)
        try:
            return await self._chat(
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except ChatRateLimitError:
            raise
        except ChatTimeoutError:
            raise
        except ChatServiceError:
            # Some providers (e.g. Groq with certain models) return 400 for response_format
            logger.info(
                "Chat API rejected response_format=json_object, retrying without it."
            )
            return await self._chat(messages, max_tokens=max_tokens, temperature=temperature)


class OpenAICompatibleChatProvider(ChatProvider):
    """OpenAI-compatible endpoint (vLLM, etc.)."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        model: str,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        if not self.base_url.endswith("/v1"):
            self.base_url = f"{self.base_url}/v1"
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    async def _chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 4096,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature if temperature is not None else 0.2,
        }
        if response_format is not None:
            payload["response_format"] = response_format
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        retries = 3
        base_delay_s = 1.0

        for attempt in range(retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await client.post(
                        f"{self.base_url}/chat/completions",
                        json=payload,
                        headers=headers,
                    )
                    r.raise_for_status()
                    data = r.json()
                    choices = data.get("choices") or []
                    if not choices:
                        raise ChatServiceError(
                            "Chat API returned no choices (e.g. content filter)."
                        )
                    msg = choices[0].get("message") or {}
                    content = msg.get("content")
                    if content is None or not isinstance(content, str):
                        raise ChatServiceError(
                            "Chat API returned missing or non-string content."
                        )
                    return content.strip()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429:
                    if attempt < retries:
                        retry_after = e.response.headers.get("Retry-After")
                        try:
                            delay_s = float(retry_after) if retry_after else base_delay_s
                        except ValueError:
                            delay_s = base_delay_s
                        await asyncio.sleep(delay_s * (attempt + 1))
                        continue
                    raise ChatRateLimitError(
                        "Chat API rate limited the request. Please retry later."
                    ) from e
                body = getattr(e.response, "text", None) or ""
                if body:
                    logger.warning(
                        "Chat API error %s: %s",
                        e.response.status_code,
                        body[:500],
                    )
                raise ChatServiceError(
                    f"Chat API returned {e.response.status_code}. Please try again later."
                ) from e
            except httpx.TimeoutException as e:
                raise ChatTimeoutError(
                    f"Chat API timeout after {self.timeout:.0f}s."
                ) from e
            except httpx.RequestError as e:
                raise ChatServiceError(
                    "Chat service unavailable (connection error). Please try again later."
                ) from e
            except (KeyError, TypeError, IndexError, ValueError) as e:
                raise ChatServiceError("Chat API returned unexpected response format.") from e


class OpenAIChatProvider(OpenAICompatibleChatProvider):
    """Official OpenAI API."""

    def __init__(self):
        s = get_settings()
        super().__init__(
            base_url="https://api.openai.com/v1",
            api_key=s.openai_api_key,
            model=s.chat_model or _OPENAI_DEFAULT_MODEL,
            timeout=s.extraction_timeout_seconds,
        )


# Default model for OpenAI official API when CHAT_MODEL is not set
_OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
# Default model for OpenAI-compatible (vLLM, etc.) when CHAT_MODEL is not set
_OPENAI_COMPATIBLE_DEFAULT_MODEL = "Qwen/Qwen2.5-7B-Instruct"


def get_chat_provider() -> ChatProvider:
    s = get_settings()
    if s.openai_api_key and not s.chat_api_base_url:
        return OpenAIChatProvider()
    if s.chat_api_base_url:
        return OpenAICompatibleChatProvider(
            base_url=s.chat_api_base_url,
            api_key=s.chat_api_key,
            model=s.chat_model or _OPENAI_COMPATIBLE_DEFAULT_MODEL,
            timeout=s.extraction_timeout_seconds,
        )
    raise RuntimeError(
        "Chat LLM not configured. Set OPENAI_API_KEY or CHAT_API_BASE_URL (and CHAT_MODEL)."
    )
