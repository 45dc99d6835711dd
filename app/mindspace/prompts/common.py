"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations

from ..models import Message

HISTORY_WINDOW = 20


def clip_text(s: str, max_chars: int) -> str:
    """Clip text to max_chars, adding ellipsis if clipped."""
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 1].rstrip() + "…"


def history_to_chat(
    history: list[Message], *, window: int = HISTORY_WINDOW, max_chars: int = 2000
) -> list[dict[str, str]]:
    """Most recent turns as plain role/content dicts for the model."""
    recent = history[-window:] if window else list(history)
    return [
        {"role": m.role, "content": clip_text(m.content, max_chars)}
        for m in recent
        if m.content.strip()
    ]


def assemble(
    *, system: str, history: list[dict[str, str]], user_text: str
) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        *history,
        {"role": "user", "content": user_text},
    ]
