from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from quoteboard.shared.errors import ShapeValidationFailed, UpstreamRejected, UpstreamTimeout

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """
You are a seasoned, friendly finance companion embedded in a market dashboard.

- Respond in a clear, encouraging and practical way; never overconfident.
- Keep messages concise. Prefer numbered steps or short bullets, at most six.
- Prefer tables for structured data.
- For trades or processes, show a simple checklist rather than an essay.
- Answers are shown beside live charts, so they must be scannable.
"""


class LLMClient:
    """Chat completions against a local OpenAI-style server or the Gemini relay."""

    def __init__(
        self,
        local_base_url: str = "http://localhost:3001",
        gemini_base_url: str = "http://localhost:3002",
        model: str = "openai/gpt-oss-20b",
        timeout: float = 60.0,
    ) -> None:
        self.local_base_url = local_base_url.rstrip("/")
        self.gemini_base_url = gemini_base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        if self.client:
            return
        self.client = httpx.AsyncClient(timeout=self.timeout, trust_env=False)

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _post(self, url: str, payload: Dict[str, Any]) -> Any:
        if not self.client:
            await self.initialize()
        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Chat backend at {url} timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamRejected(
                f"Chat backend error {status}: {exc.response.text[:200]}", status_code=status
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamRejected(f"Chat backend unreachable: {exc}") from exc

    @staticmethod
    def with_system_prompt(messages: List[Dict[str, str]], system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
        if messages and messages[0].get("role") == "system":
            return list(messages)
        return [{"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT}, *messages]

    async def chat_local(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = -1,
        system_prompt: Optional[str] = None,
    ) -> str:
        data = await self._post(
            f"{self.local_base_url}/v1/chat/completions",
            {
                "model": self.model,
                "messages": self.with_system_prompt(messages, system_prompt),
                "temperature": temperature,
                "max_tokens": max_tokens,
                "stream": False,
            },
        )
        try:
            return str(data["choices"][0]["message"]["content"])
        except (KeyError, IndexError, TypeError) as exc:
            raise ShapeValidationFailed("Invalid response from local model") from exc

    async def chat_gemini(self, messages: List[Dict[str, str]]) -> str:
        contents = [
            {
                "role": "model" if m.get("role") == "assistant" else "user",
                "parts": [{"text": m.get("content", "")}],
            }
            for m in messages
            if m.get("role") != "system"
        ]
        data = await self._post(f"{self.gemini_base_url}/v1/gemini/chat", {"messages": contents})
        try:
            return str(data["candidates"][0]["content"]["parts"][0]["text"])
        except (KeyError, IndexError, TypeError) as exc:
            raise ShapeValidationFailed("Invalid response from Gemini relay") from exc
