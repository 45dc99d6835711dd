"""
Purpose: Known conversation sessions and the active session pointer.
Why: Sidebar listing, switching, and keeping transcripts between reruns.

What is inside:
SessionStore over a ChatApi collaborator with list/create/load/select.
Sessions are merged by id: a refresh never drops a session we already know
(e.g. one created a moment ago) and never shrinks a transcript.

Testing:
Fake ChatApi; assert ordering, reconcile-by-id, and error retention.
"""

from __future__ import annotations
from itertools import count
from typing import Optional

from loguru import logger

from ..errors import FetchError
from ..interfaces import ChatApi
from ..models import Message, Session, utc_now
from ..services.payloads import parse_history, parse_sessions


class SessionStore:
    def __init__(self, api: ChatApi) -> None:
        self.api = api
        self._sessions: dict[str, Session] = {}
        self._seq: dict[str, int] = {}
        self._counter = count()
        self._active_id: Optional[str] = None

    # ---- local state ----

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_session(self) -> Optional[Session]:
        return self._sessions.get(self._active_id) if self._active_id else None

    @property
    def sessions(self) -> list[Session]:
        """Most recent activity first; newest insert wins a timestamp tie."""
        return sorted(
            self._sessions.values(),
            key=lambda s: (s.updated_at, self._seq[s.id]),
            reverse=True,
        )

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def append(self, session_id: str, message: Message) -> Session:
        session = self._sessions[session_id]
        session.append(message)
        return session

    def select_session(self, session_id: str) -> bool:
        """Set the active id. False (no-op) if it is already active."""
        if session_id == self._active_id:
            return False
        if session_id not in self._sessions:
            raise KeyError(session_id)
        self._active_id = session_id
        return True

    def _register(self, session: Session) -> Session:
        self._sessions[session.id] = session
        self._seq[session.id] = next(self._counter)
        return session

    def _merge(self, incoming: Session) -> Session:
        current = self._sessions.get(incoming.id)
        if current is None:
            return self._register(incoming)
        if len(incoming.transcript) > len(current.transcript):
            current.transcript = list(incoming.transcript)
        current.updated_at = max(current.updated_at, incoming.updated_at)
        current.created_at = min(current.created_at, incoming.created_at)
        return current

    # ---- collaborator calls ----

    async def list_sessions(self) -> list[Session]:
        """
        Refresh from the backend and reconcile by id.
        On FetchError the previously known list is kept and the error re-raised.
        """
        raw = await self.api.list_sessions()
        for session in parse_sessions(raw):
            self._merge(session)
        return self.sessions

    async def create_session(self) -> Session:
        session_id = await self.api.create_session()
        if not isinstance(session_id, str) or not session_id:
            raise FetchError(f"Backend returned an invalid session id: {session_id!r}")
        now = utc_now()
        session = self._register(
            Session(id=session_id, transcript=[], created_at=now, updated_at=now)
        )
        logger.info("Created chat session {}", session_id)
        return session

    async def load_history(self, session_id: str) -> list[Message]:
        """
        Fetch the persisted transcript. NotFoundError / FetchError propagate;
        malformed payloads degrade to an empty transcript.
        """
        raw = await self.api.get_history(session_id)
        history = parse_history(raw)
        session = self._sessions.get(session_id)
        if session is None:
            updated = history[-1].timestamp if history else utc_now()
            created = history[0].timestamp if history else updated
            session = self._register(
                Session(
                    id=session_id,
                    transcript=list(history),
                    created_at=created,
                    updated_at=updated,
                )
            )
        elif len(history) > len(session.transcript):
            session.transcript = list(history)
            session.updated_at = max(session.updated_at, history[-1].timestamp)
        logger.debug("Loaded {} messages for session {}", len(history), session_id)
        return list(session.transcript)

    def ensure(self, session_id: str) -> Session:
        """Register an empty local entry for an id the backend could not serve."""
        return self._sessions.get(session_id) or self._register(Session(id=session_id))
