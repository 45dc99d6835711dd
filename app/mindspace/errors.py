"""Exception types raised by the chat collaborators and the session store."""

from __future__ import annotations


class ChatError(Exception):
    """Base exception for the chat core."""


class FetchError(ChatError):
    """Transport or network failure talking to the chat backend."""


class ParseError(FetchError):
    """Malformed JSON or an unexpected payload shape."""


class NotFoundError(ChatError):
    """The backend does not know the requested session id."""

    def __init__(self, session_id: str):
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id
