from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from quoteboard.config.settings import AppSettings, get_settings
from quoteboard.core.llm_client import LLMClient
from quoteboard.shared.errors import ErrorKind, NoProviderAvailable, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatReply:
    text: str
    provider: str
    ok: bool = True
    error: ErrorKind | None = None


class ChatService:
    """Routes a transcript to the local model or the Gemini relay; failures become an error reply."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def close(self) -> None:
        await self.llm.close()

    async def complete(self, history: List[Dict[str, str]], provider: str = "local") -> ChatReply:
        messages = [m for m in history if m.get("content", "").strip()]
        try:
            if provider == "local":
                text = await self.llm.chat_local(messages)
            elif provider == "cloud":
                text = await self.llm.chat_gemini(messages)
            else:
                raise NoProviderAvailable(f"Unknown chat provider: {provider}")
        except ProviderError as exc:
            logger.warning("Chat via %s failed: %s", provider, exc)
            return ChatReply(text=f"AI error: {str(exc) or 'LLM unavailable'}", provider=provider, ok=False, error=exc.kind)
        return ChatReply(text=text, provider=provider)


def build_chat_service(settings: AppSettings | None = None) -> ChatService:
    cfg = settings or get_settings()
    return ChatService(
        LLMClient(
            local_base_url=cfg.llm_base_url,
            gemini_base_url=cfg.gemini_bridge_url,
            model=cfg.llm_model,
        )
    )
