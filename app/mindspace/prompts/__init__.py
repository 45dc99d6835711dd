"""Facade that keeps prompt construction behind the DefaultPromptFactory API."""

from __future__ import annotations

from . import support as _support
from .common import assemble as _assemble


class DefaultPromptFactory:
    # SUPPORT CHAT
    def build_system(self) -> str:
        return _support.build_support_system()

    def assemble(
        self, *, system: str, history: list[dict[str, str]], user_text: str
    ) -> list[dict[str, str]]:
        return _assemble(system=system, history=history, user_text=user_text)
