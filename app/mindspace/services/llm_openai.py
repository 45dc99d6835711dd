"""
Purpose: Thin async client wrapper around OpenAI.
One place for auth, retries, model options, response/usage normalization.

Extensibility:
- Add other providers behind the same LLMClient interface without touching
  the local chat backend.

Testing: Mock SDK calls; assert it maps usage and errors correctly.
"""

from __future__ import annotations
import asyncio
from typing import Optional

from loguru import logger
from openai import APITimeoutError, AsyncOpenAI, RateLimitError

from ..models import LLMSettings

RETRY_DELAYS = (0.5, 1.0, 2.0, 4.0)


class OpenAILLMClient:
    def __init__(self, api_key: str, *, client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key
        if not self.api_key:
            raise RuntimeError("Missing OpenAI API key")
        self.client = client or AsyncOpenAI(api_key=self.api_key)

    async def _with_retries(self, fn, *args, **kwargs):
        for delay in RETRY_DELAYS:
            try:
                return await fn(*args, **kwargs)
            except (RateLimitError, APITimeoutError) as exc:
                logger.warning("OpenAI call failed ({}); retrying in {}s", exc, delay)
                await asyncio.sleep(delay)
        return await fn(*args, **kwargs)

    async def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]:
        payload = []
        if system:
            payload.append({"role": "system", "content": system})
        payload.extend(messages)

        async def call_cc():
            return await self.client.chat.completions.create(
                model=settings.model,
                messages=payload,
                temperature=settings.temperature,
                top_p=settings.top_p,
                max_tokens=settings.max_tokens,
                frequency_penalty=settings.frequency_penalty,
                presence_penalty=settings.presence_penalty,
            )

        cc = await self._with_retries(call_cc)
        text = cc.choices[0].message.content or ""
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return text, {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }
