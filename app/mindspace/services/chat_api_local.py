"""
Purpose: In-process chat backend, so the app runs without a separate server.
Keeps server-side sessions in memory and asks the LLM for a JSON reply with
coaching metadata, in the same payload shape the HTTP backend returns.

Testing: Fake LLMClient returning canned text; assert stored history and payloads.
"""

from __future__ import annotations
import uuid
from typing import Any, Optional

from loguru import logger
from openai import OpenAIError

from ..errors import FetchError, NotFoundError
from ..interfaces import LLMClient, PromptFactory, SecurityGuard
from ..models import (
    DEFAULT_GOAL,
    DEFAULT_TECHNIQUE,
    LLMSettings,
    Message,
    MessageMetadata,
    Session,
    default_analysis,
)
from ..prompts import DefaultPromptFactory
from ..prompts.common import history_to_chat
from ..utils.llm_json import extract_reply_object
from .payloads import FALLBACK_REPLY, progress_of
from .security import DefaultSecurity


class LocalChatApi:
    def __init__(
        self,
        llm: LLMClient,
        settings: LLMSettings,
        *,
        prompts: Optional[PromptFactory] = None,
        security: Optional[SecurityGuard] = None,
    ):
        self.llm: LLMClient = llm
        self.settings = settings
        self.prompts: PromptFactory = prompts or DefaultPromptFactory()
        self.security: SecurityGuard = security or DefaultSecurity()
        self._sessions: dict[str, Session] = {}

    def _get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(session_id)
        return session

    async def create_session(self) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = Session(id=session_id)
        return session_id

    async def list_sessions(self) -> list[dict]:
        return [
            {
                "sessionId": s.id,
                "messages": [m.to_dict() for m in s.transcript],
                "createdAt": s.created_at.isoformat(),
                "updatedAt": s.updated_at.isoformat(),
            }
            for s in self._sessions.values()
        ]

    async def get_history(self, session_id: str) -> list[dict]:
        return [m.to_dict() for m in self._get(session_id).transcript]

    async def send_message(self, session_id: str, text: str) -> dict[str, Any]:
        session = self._get(session_id)
        safe, redacted = self.security.prepare(text)
        if redacted:
            logger.info("Redacted {} before sending to the model", redacted)

        messages = self.prompts.assemble(
            system=self.prompts.build_system(),
            history=history_to_chat(session.transcript),
            user_text=safe,
        )
        try:
            reply_text, meta = await self.llm.chat(messages, self.settings)
        except OpenAIError as exc:
            raise FetchError(f"Model call failed: {exc}") from exc
        logger.debug(
            "Model {} used {} in / {} out tokens",
            meta.get("model"),
            meta.get("tokens_in", 0),
            meta.get("tokens_out", 0),
        )

        payload = self._to_payload(reply_text)
        session.append(Message(role="user", content=text))
        session.append(
            Message(
                role="assistant",
                content=payload["response"],
                metadata=MessageMetadata(
                    technique=payload["metadata"]["technique"],
                    goal=payload["metadata"]["currentGoal"],
                    progress=payload["metadata"]["progress"],
                    analysis=payload["analysis"],
                ),
            )
        )
        return payload

    @staticmethod
    def _to_payload(reply_text: str) -> dict[str, Any]:
        """Model JSON when it complied, otherwise its raw text as the response."""
        obj = extract_reply_object(reply_text)
        if obj is None or not str(obj.get("response") or "").strip():
            obj = {"response": (reply_text or "").strip()}
        analysis = obj.get("analysis")
        return {
            "response": str(obj["response"]).strip() or FALLBACK_REPLY,
            "metadata": {
                "technique": str(obj.get("technique") or DEFAULT_TECHNIQUE),
                "currentGoal": str(obj.get("currentGoal") or DEFAULT_GOAL),
                "progress": progress_of(obj),
            },
            "analysis": analysis if isinstance(analysis, dict) else default_analysis(),
        }
