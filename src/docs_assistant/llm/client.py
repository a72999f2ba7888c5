from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
import json
import logging

import httpx

from ..config import settings
from ..core.errors import RequestAborted, UpstreamServiceError

logger = logging.getLogger("docs.llm")

AbortCheck = Callable[[], Awaitable[bool]]


class LLMError(UpstreamServiceError):
    """Raised when the chat completion API call fails."""


class LLMClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.openai_api_key.get_secret_value()
        self.url = (base_url or str(settings.openai_base_url)).rstrip("/") + "/chat/completions"
        self.model = model or settings.chat_model
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    async def stream_chat(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.5,
        is_aborted: Optional[AbortCheck] = None,
    ) -> AsyncIterator[str]:
        """
        Stream assistant text deltas for a chat completion.

        The API answers with server-sent events:
            data: {"choices": [{"delta": {"content": "..."}}]}
            data: [DONE]

        Raises RequestAborted (closing the upstream stream) as soon as
        `is_aborted()` reports true between chunks.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                async with client.stream(
                    "POST",
                    self.url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                ) as resp:
                    if resp.is_error:
                        await resp.aread()
                        raise LLMError(
                            f"Chat completion failed with HTTP {resp.status_code}: {resp.text[:200]}"
                        )

                    async for line in resp.aiter_lines():
                        if is_aborted is not None and await is_aborted():
                            logger.info("Chat stream aborted by caller")
                            raise RequestAborted("chat stream aborted")

                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break

                        delta = self._extract_delta(json.loads(data))
                        if delta:
                            yield delta
            except httpx.HTTPError as exc:
                raise LLMError(f"Chat completion request failed: {type(exc).__name__}") from exc

    @staticmethod
    def _extract_delta(chunk: Dict[str, Any]) -> str:
        choices = chunk.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""
