"""
Abstractions for pluggable services. Inversion of control: the controller and
session store depend on these protocols, not on concrete backends. Enables
fakes in tests and swapping the remote HTTP backend for the in-process one.

Common protocols:
- ChatApi.create_session / get_history / list_sessions / send_message
- LLMClient.chat(messages, settings) -> (reply, meta)
- PromptFactory.build_system() -> str & assemble(...) -> list[dict]
- SecurityGuard.sanitize_for_prompt(text) / redact_pii(text)

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Any, Optional, Protocol

from .models import LLMSettings


class ChatApi(Protocol):
    async def create_session(self) -> str: ...

    async def get_history(self, session_id: str) -> Any: ...

    async def list_sessions(self) -> Any: ...

    async def send_message(self, session_id: str, text: str) -> Any: ...


class LLMClient(Protocol):
    async def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]: ...


class PromptFactory(Protocol):
    def build_system(self) -> str: ...

    def assemble(
        self, *, system: str, history: list[dict[str, str]], user_text: str
    ) -> list[dict[str, str]]: ...


class SecurityGuard(Protocol):
    def sanitize_for_prompt(self, text: str) -> str: ...

    def clip_input(self, text: str) -> str: ...

    def redact_pii(self, text: str) -> tuple[str, list[str]]: ...

    def prepare(self, text: str) -> tuple[str, list[str]]: ...
