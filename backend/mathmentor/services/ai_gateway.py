# mathmentor/services/ai_gateway.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from mathmentor.services.errors import (
    AIServiceError,
    AIServiceUnavailableError,
    MissingCredentialsError,
    QuotaExhaustedError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str
    base_url: str
    model: str
    timeout: float = 60.0

    @classmethod
    def from_settings(cls, settings) -> "GatewayConfig":
        if not settings.AI_API_KEY:
            raise MissingCredentialsError()
        return cls(
            api_key=settings.AI_API_KEY,
            base_url=settings.AI_BASE_URL.rstrip("/"),
            model=settings.AI_MODEL,
            timeout=settings.AI_TIMEOUT,
        )


def text_part(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def image_part(url: str) -> Dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": url}}


class AIGateway:
    """
    Thin client for an OpenAI-compatible /chat/completions endpoint.

    One blocking request per call, no streaming and no retries: 429 and 402
    come back as their own exception kinds so the caller can decide what to do.
    """

    def __init__(self, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.api_key:
            raise MissingCredentialsError()
        self.config = config
        self._transport = transport

    async def chat(self, messages: List[Message], timeout: Optional[float] = None) -> str:
        """Send the messages and return the first choice's content ("" when absent)."""
        url = f"{self.config.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self.config.model, "messages": messages}
        wait = timeout if timeout is not None else self.config.timeout

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=wait) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("[AI] timeout after %.1fs: %s", wait, e)
            raise AIServiceUnavailableError(f"AI service timed out after {wait}s") from e
        except httpx.TransportError as e:
            logger.error("[AI] transport error: %s", e)
            raise AIServiceUnavailableError(f"AI service unreachable: {e}") from e

        if resp.status_code == 429:
            logger.warning("[AI] rate limited: %s", resp.text[:300])
            raise RateLimitedError(status_code=429, body=resp.text)
        if resp.status_code == 402:
            logger.warning("[AI] credits exhausted: %s", resp.text[:300])
            raise QuotaExhaustedError(status_code=402, body=resp.text)
        if resp.is_error:
            logger.error("[AI] gateway error %s: %s", resp.status_code, resp.text[:300])
            raise AIServiceError(f"AI service error: {resp.status_code}", status_code=resp.status_code, body=resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise AIServiceError("AI service returned a non-JSON envelope", status_code=resp.status_code, body=resp.text) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        choices = choices or []
        if not choices:
            return ""
        content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug("[AI] raw reply: %s", content[:500])
        return content
