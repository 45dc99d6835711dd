"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Message / MessageMetadata (one transcript entry, immutable).
- Session (id, append-only transcript, timestamps).
- Activity / StressPrompt (transient interrupt, never persisted).
- ConversationState and TranscriptView (what the UI is allowed to read).

Testing: Mostly types. Session helpers (append, title, preview) have unit tests.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


ChatRole = Literal["user", "assistant"]

DEFAULT_TECHNIQUE = "supportive"
DEFAULT_GOAL = "Provide support"


def default_progress() -> dict:
    return {"emotionalState": "neutral", "riskLevel": 0}


def default_analysis() -> dict:
    return {
        "emotionalState": "neutral",
        "riskLevel": 0,
        "themes": [],
        "recommendedApproach": "supportive",
        "progressIndicators": [],
    }


class ActivityKind(str, Enum):
    BREATHING = "breathing"
    GARDEN = "garden"
    FOREST = "forest"
    WAVES = "waves"


class ConversationState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_REPLY = "awaiting_reply"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class MessageMetadata:
    technique: str = DEFAULT_TECHNIQUE
    goal: str = DEFAULT_GOAL
    progress: Any = field(default_factory=default_progress)
    analysis: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            "technique": self.technique,
            "currentGoal": self.goal,
            "progress": self.progress,
        }
        if self.analysis is not None:
            data["analysis"] = self.analysis
        return data


@dataclass(frozen=True)
class Message:
    role: ChatRole
    content: str
    timestamp: datetime = field(default_factory=utc_now)
    metadata: Optional[MessageMetadata] = None

    def to_dict(self) -> dict:
        data = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data


@dataclass
class Session:
    id: str
    transcript: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def append(self, message: Message) -> None:
        """Append-only: messages are never edited or removed."""
        self.transcript.append(message)
        self.updated_at = max(self.updated_at, message.timestamp, utc_now())

    @property
    def message_count(self) -> int:
        return len(self.transcript)

    @property
    def title(self) -> str:
        if not self.transcript:
            return "New Session"
        return _clip(self.transcript[0].content, 25)

    @property
    def preview(self) -> str:
        if not self.transcript:
            return "No messages yet"
        return _clip(self.transcript[-1].content, 60)


@dataclass(frozen=True)
class Activity:
    kind: ActivityKind
    title: str
    description: str


@dataclass(frozen=True)
class StressPrompt:
    trigger: str
    activity: Activity


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 512
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0


@dataclass(frozen=True)
class TranscriptView:
    """Snapshot handed to the presentation layer on every state change."""

    session_id: Optional[str] = None
    messages: tuple[Message, ...] = ()
    input_enabled: bool = False
    typing: bool = False
    stress_prompt: Optional[StressPrompt] = None
    state: ConversationState = ConversationState.IDLE
    sessions: tuple[Session, ...] = ()
    loading: bool = False
    notice: Optional[str] = None
    can_complete: bool = False
    completed: bool = False


def _clip(text: str, max_chars: int) -> str:
    clean = " ".join((text or "").split())
    if len(clean) <= max_chars:
        return clean
    return clean[:max_chars].rstrip() + "…"
