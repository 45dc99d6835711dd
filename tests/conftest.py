from __future__ import annotations

import asyncio
from typing import Any

import pytest

from mindspace.controller import ConversationController
from mindspace.errors import FetchError, NotFoundError
from mindspace.services.stress_detector import RotatingActivityPicker


class FakeChatApi:
    """In-memory ChatApi that records calls and can be told to fail or stall."""

    def __init__(self) -> None:
        self.histories: dict[str, list[dict]] = {}
        self.summaries: list[dict] | None = None
        self.replies: list[Any] = []
        self.default_reply: Any = {"response": "Let's talk about that."}
        self.send_error: Exception | None = None
        self.list_error: Exception | None = None
        self.history_error: Exception | None = None
        self.create_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []
        self._next_id = 0

    async def create_session(self) -> str:
        self.calls.append(("create_session",))
        await asyncio.sleep(0)
        if self.create_error:
            raise self.create_error
        self._next_id += 1
        session_id = f"s{self._next_id}"
        self.histories[session_id] = []
        return session_id

    async def get_history(self, session_id: str) -> Any:
        self.calls.append(("get_history", session_id))
        if self.history_error:
            raise self.history_error
        if session_id not in self.histories:
            raise NotFoundError(session_id)
        return self.histories[session_id]

    async def list_sessions(self) -> Any:
        self.calls.append(("list_sessions",))
        if self.list_error:
            raise self.list_error
        if self.summaries is not None:
            return self.summaries
        return [
            {"sessionId": sid, "messages": msgs, "createdAt": None, "updatedAt": None}
            for sid, msgs in self.histories.items()
        ]

    async def send_message(self, session_id: str, text: str) -> Any:
        self.calls.append(("send_message", session_id, text))
        if self.gate is not None:
            await self.gate.wait()
        if self.send_error:
            raise self.send_error
        return self.replies.pop(0) if self.replies else self.default_reply

    def sent(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "send_message"]


@pytest.fixture
def api() -> FakeChatApi:
    return FakeChatApi()


@pytest.fixture
def controller(api: FakeChatApi) -> ConversationController:
    return ConversationController(api, picker=RotatingActivityPicker())


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("connection refused")
