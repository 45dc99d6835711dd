"""
Purpose: Turn raw backend payloads into models.
Content: reply text + coaching metadata extraction for chat replies, and
tolerant parsing of history and session-summary lists.

Testing: Pure functions; feed dicts/strings and assert on the models.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from loguru import logger

from ..errors import ParseError
from ..models import (
    DEFAULT_GOAL,
    DEFAULT_TECHNIQUE,
    Message,
    MessageMetadata,
    Session,
    default_analysis,
    default_progress,
    utc_now,
)
from ..utils.llm_json import coerce_object

FALLBACK_REPLY = (
    "I'm here to support you. Could you tell me more about what's on your mind?"
)
CONNECTION_APOLOGY = (
    "I apologize, but I'm having trouble connecting right now. "
    "Please try again in a moment."
)
SESSION_LOAD_APOLOGY = (
    "I apologize, but I'm having trouble loading the chat session. "
    "Please try refreshing the page."
)


def _pick(primary: Mapping, secondary: Mapping, key: str) -> Any:
    value = primary.get(key)
    if value in (None, "", [], {}):
        value = secondary.get(key)
    return value


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def progress_of(*sources: Mapping) -> Any:
    """First `progress` present in `sources`; falsy values like 0 or [] count."""
    for source in sources:
        if source.get("progress") is not None:
            return source["progress"]
    return default_progress()


def parse_reply(payload: Any) -> Message:
    """
    Build the assistant message from a chat reply.
    Reply text priority: `response`, then `message`, then a supportive fallback.
    Coaching fields are read from `metadata` first, then from the top level.
    """
    data = coerce_object(payload)
    meta = data.get("metadata")
    if not isinstance(meta, Mapping):
        meta = {}

    content = _text(data.get("response")) or _text(data.get("message")) or FALLBACK_REPLY
    analysis = data.get("analysis")
    metadata = MessageMetadata(
        technique=_text(_pick(meta, data, "technique")) or DEFAULT_TECHNIQUE,
        goal=_text(_pick(meta, data, "currentGoal")) or DEFAULT_GOAL,
        progress=progress_of(meta, data),
        analysis=analysis if isinstance(analysis, dict) else default_analysis(),
    )
    return Message(role="assistant", content=content, metadata=metadata)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        # epoch milliseconds, as browsers send them
        ts = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        ts = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        return utc_now()
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _parse_metadata(raw: Any) -> Optional[MessageMetadata]:
    if not isinstance(raw, Mapping):
        return None
    return MessageMetadata(
        technique=_text(raw.get("technique")) or DEFAULT_TECHNIQUE,
        goal=_text(raw.get("currentGoal") or raw.get("goal")) or DEFAULT_GOAL,
        progress=progress_of(raw),
        analysis=raw.get("analysis") if isinstance(raw.get("analysis"), dict) else None,
    )


def parse_message(raw: Any) -> Message:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Message must be an object, got {type(raw).__name__}.")
    role = raw.get("role")
    content = raw.get("content")
    if role not in ("user", "assistant") or not isinstance(content, str):
        raise ParseError(f"Malformed message: role={role!r}")
    try:
        timestamp = parse_timestamp(raw.get("timestamp"))
    except (ValueError, OverflowError, OSError) as exc:
        raise ParseError(f"Bad message timestamp: {raw.get('timestamp')!r}") from exc
    return Message(
        role=role,
        content=content,
        timestamp=timestamp,
        metadata=_parse_metadata(raw.get("metadata")),
    )


def parse_history(raw: Any) -> list[Message]:
    """Non-list or malformed history degrades to an empty transcript."""
    if not isinstance(raw, list):
        logger.warning("History is not a list: {!r}", type(raw).__name__)
        return []
    try:
        return [parse_message(item) for item in raw]
    except ParseError as exc:
        logger.warning("Discarding malformed history: {}", exc)
        return []


def parse_session(raw: Any) -> Session:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Session must be an object, got {type(raw).__name__}.")
    session_id = raw.get("sessionId") or raw.get("id")
    if not isinstance(session_id, str) or not session_id:
        raise ParseError("Session summary without an id.")
    try:
        created_at = parse_timestamp(raw.get("createdAt"))
        updated_at = parse_timestamp(raw.get("updatedAt") or raw.get("createdAt"))
    except (ValueError, OverflowError, OSError) as exc:
        raise ParseError(f"Bad timestamps on session {session_id}") from exc
    return Session(
        id=session_id,
        transcript=parse_history(raw.get("messages") or []),
        created_at=created_at,
        updated_at=updated_at,
    )


def parse_sessions(raw: Any) -> list[Session]:
    """Strict on the container, tolerant on entries: bad summaries are skipped."""
    if not isinstance(raw, list):
        raise ParseError(f"Session list must be an array, got {type(raw).__name__}.")
    sessions: list[Session] = []
    for item in raw:
        try:
            sessions.append(parse_session(item))
        except ParseError as exc:
            logger.warning("Skipping session summary: {}", exc)
    return sessions
