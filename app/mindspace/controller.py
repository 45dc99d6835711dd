"""
Purpose: The single orchestration point for the chat page. Owns the session
store, the per-session conversation state, and the stress interrupt.
Prevents the UI from knowing how the backend, payloads or the detector work.

Key responsibilities:
- Initialize from the location's session id (or create a session).
- submit(): append the user message, gate it through the stress detector,
  send it, and merge the reply into the session the request was issued for.
- resume(): resolve a pending stress prompt and reopen input.
- select_session() / new_session(): switch and create, keeping the location in sync.
- Publish a TranscriptView to subscribers after every state change.

State machine per session:
    IDLE -> SUBMITTING -> (AWAITING_REPLY | INTERRUPTED) -> IDLE
Input is enabled only while the active session is IDLE and no create/load
call is suspended.

Testing: Pure unit tests with a fake ChatApi. Verify transcript growth,
state transitions, and that replies land on their originating session.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

from .errors import ChatError, FetchError, NotFoundError
from .interfaces import ChatApi
from .models import ConversationState, Message, Session, StressPrompt, TranscriptView
from .persistence.session_store import SessionStore
from .services.payloads import CONNECTION_APOLOGY, SESSION_LOAD_APOLOGY, parse_reply
from .services.stress_detector import ActivityPicker, detect_stress_signals

COMPLETION_THRESHOLD = 5

SUGGESTED_QUESTIONS = [
    "How can I manage my anxiety better?",
    "I've been feeling overwhelmed lately",
    "Can we talk about improving sleep?",
    "I need help with work-life balance",
]

Listener = Callable[[TranscriptView], None]


def location_for(session_id: str) -> str:
    return f"/therapy/{session_id}"


@dataclass
class SessionFlow:
    state: ConversationState = ConversationState.IDLE
    stress_prompt: Optional[StressPrompt] = None
    deferred_text: Optional[str] = None
    completed: bool = False


class ConversationController:
    def __init__(
        self,
        api: ChatApi,
        *,
        store: Optional[SessionStore] = None,
        picker: Optional[ActivityPicker] = None,
        resubmit_after_activity: bool = False,
        completion_threshold: int = COMPLETION_THRESHOLD,
        reply_timeout: Optional[float] = None,
        navigate: Optional[Callable[[str], None]] = None,
    ):
        self.api: ChatApi = api
        self.store: SessionStore = store or SessionStore(api)
        self.picker = picker
        self.resubmit_after_activity = resubmit_after_activity
        self.completion_threshold = completion_threshold
        self.reply_timeout = reply_timeout
        self.navigate = navigate

        self._flows: dict[str, SessionFlow] = {}
        self._listeners: list[Listener] = []
        self._busy: bool = False
        self._notice: Optional[str] = None
        self._placeholder: list[Message] = []

    # ---------------------------
    # Renderer contract
    # ---------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a view listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def view(self) -> TranscriptView:
        session = self.store.active_session
        if session is None:
            return TranscriptView(
                messages=tuple(self._placeholder),
                sessions=tuple(self.store.sessions),
                loading=self._busy,
                notice=self._notice,
            )
        flow = self.flow(session.id)
        return TranscriptView(
            session_id=session.id,
            messages=tuple(session.transcript),
            input_enabled=not self._busy and flow.state is ConversationState.IDLE,
            typing=flow.state
            in (ConversationState.SUBMITTING, ConversationState.AWAITING_REPLY),
            stress_prompt=flow.stress_prompt,
            state=flow.state,
            sessions=tuple(self.store.sessions),
            loading=self._busy,
            notice=self._notice,
            can_complete=self._can_complete(session, flow),
            completed=flow.completed,
        )

    def flow(self, session_id: str) -> SessionFlow:
        return self._flows.setdefault(session_id, SessionFlow())

    def _notify(self) -> None:
        view = self.view
        for listener in list(self._listeners):
            listener(view)

    def _activate(self, session_id: str) -> None:
        if self.store.select_session(session_id) and self.navigate:
            self.navigate(session_id)
        self._placeholder = []

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def initialize(self, location_id: Optional[str] = None) -> None:
        """Bind to the session named by the location, creating one if needed."""
        self._busy = True
        self._notify()
        try:
            if not location_id or location_id == "new":
                session = await self.store.create_session()
                self._activate(session.id)
            else:
                try:
                    await self.store.load_history(location_id)
                except ChatError as exc:
                    logger.warning("Error loading chat history: {}", exc)
                    self.store.ensure(location_id)
                self._activate(location_id)
        except Exception:
            logger.exception("Failed to initialize chat")
            self._placeholder = [
                Message(role="assistant", content=SESSION_LOAD_APOLOGY)
            ]
        finally:
            self._busy = False
        await self.refresh_sessions()

    async def refresh_sessions(self) -> None:
        """Reload the session list; on failure keep whatever we had."""
        try:
            await self.store.list_sessions()
        except ChatError as exc:
            logger.warning("Failed to load sessions: {}", exc)
        self._notify()

    # ---------------------------
    # Chat flow
    # ---------------------------
    async def submit(self, text: str) -> bool:
        """
        Handle one user message. Returns False when the submission was ignored
        (blank text, no active session, busy, or the session is not idle).
        """
        text = (text or "").strip()
        session = self.store.active_session
        if not text or session is None or self._busy:
            return False
        flow = self.flow(session.id)
        if flow.state is not ConversationState.IDLE:
            logger.debug("Submission blocked: session {} is {}", session.id, flow.state)
            return False

        session_id = session.id
        flow.state = ConversationState.SUBMITTING
        self._notice = None
        self.store.append(session_id, Message(role="user", content=text))
        self._notify()

        prompt = detect_stress_signals(text, picker=self.picker)
        if prompt is not None:
            logger.info(
                "Stress signal {!r} in session {}; offering {}",
                prompt.trigger,
                session_id,
                prompt.activity.kind.value,
            )
            flow.state = ConversationState.INTERRUPTED
            flow.stress_prompt = prompt
            flow.deferred_text = text
            self._notify()
            return True

        await self._dispatch(session_id, text)
        return True

    async def _send(self, session_id: str, text: str) -> Any:
        call = self.api.send_message(session_id, text)
        if self.reply_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.reply_timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(f"No reply within {self.reply_timeout}s") from exc

    async def _dispatch(self, session_id: str, text: str) -> None:
        """Send and merge the reply into `session_id`, whatever is active by then."""
        flow = self.flow(session_id)
        flow.state = ConversationState.AWAITING_REPLY
        self._notify()
        try:
            reply = parse_reply(await self._send(session_id, text))
        except Exception:
            logger.exception("Error in chat for session {}", session_id)
            reply = Message(role="assistant", content=CONNECTION_APOLOGY)
        self.store.append(session_id, reply)
        flow.state = ConversationState.IDLE
        self._notify()
        await self.refresh_sessions()

    async def resume(self) -> bool:
        """The stress activity was completed or dismissed; reopen the chat."""
        session = self.store.active_session
        if session is None:
            return False
        flow = self.flow(session.id)
        if flow.state is not ConversationState.INTERRUPTED:
            return False
        text = flow.deferred_text
        flow.stress_prompt = None
        flow.deferred_text = None
        flow.state = ConversationState.IDLE
        self._notify()
        if self.resubmit_after_activity and text:
            await self._dispatch(session.id, text)
        return True

    async def ask_suggested(self, text: str) -> bool:
        if self.store.active_session is None:
            await self.new_session()
        return await self.submit(text)

    def _can_complete(self, session: Session, flow: SessionFlow) -> bool:
        if flow.completed:
            return False
        user_turns = sum(1 for m in session.transcript if m.role == "user")
        return user_turns >= self.completion_threshold

    def complete_session(self) -> bool:
        """Mark the active session completed once enough turns were taken."""
        session = self.store.active_session
        if session is None:
            return False
        flow = self.flow(session.id)
        if not self._can_complete(session, flow):
            return False
        flow.completed = True
        logger.info("Session {} completed", session.id)
        self._notify()
        return True

    # ---------------------------
    # Sessions
    # ---------------------------
    async def select_session(self, session_id: str) -> bool:
        """Switch the active session. No-op for the current one."""
        if session_id == self.store.active_id or self._busy:
            return False
        self._busy = True
        self._notify()
        switched = False
        try:
            await self.store.load_history(session_id)
            self._notice = None
            switched = True
        except NotFoundError as exc:
            logger.warning("Failed to load session: {}", exc)
            self._notice = "That conversation could not be found."
        except FetchError as exc:
            logger.warning("Failed to load history for {}: {}", session_id, exc)
            self.store.ensure(session_id)
            self._notice = "Earlier messages for this conversation could not be loaded."
            switched = True
        except Exception:
            logger.exception("Unexpected error opening session {}", session_id)
            self._notice = "That conversation could not be opened. Please try again."
        finally:
            self._busy = False
        if switched:
            self._activate(session_id)
        self._notify()
        return switched

    async def new_session(self) -> Optional[Session]:
        """Create and activate a session. Ignored while another call is pending."""
        if self._busy:
            return None
        self._busy = True
        self._notify()
        session = None
        try:
            session = await self.store.create_session()
        except Exception:
            logger.exception("Failed to create new session")
            self._notice = "A new session could not be started. Please try again."
        finally:
            self._busy = False
        if session is not None:
            self._notice = None
            self._activate(session.id)
        self._notify()
        return session
