"""
UI layer
Purpose: Streamlit-only glue. Renders the session sidebar, the transcript, the
stress activity card and the chat input, and delegates all work to the
controller. Reads nothing but controller.view so the logic can be unit tested
without Streamlit.
"""

import asyncio
from datetime import datetime, timezone

import streamlit as st
from loguru import logger

from mindspace.bootstrap import build_controller
from mindspace.config import get_settings
from mindspace.controller import SUGGESTED_QUESTIONS, location_for
from mindspace.models import ActivityKind, Message, TranscriptView

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="Mindspace",
    page_icon="🌿",
    layout="wide",
    initial_sidebar_state="expanded",
)
# ---------------------------
# UI constants
# ---------------------------
ACTIVITY_ICONS = {
    ActivityKind.BREATHING: "🫁",
    ActivityKind.GARDEN: "🪴",
    ActivityKind.FOREST: "🌲",
    ActivityKind.WAVES: "🌊",
}
SESSION_PARAM = "session"

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
if "settings" not in st_session:
    st_session.settings = get_settings()
if "loop" not in st_session:
    # one loop per browser session, kept across reruns
    st_session.loop = asyncio.new_event_loop()
st_session.setdefault("controller", None)
st_session.setdefault("api_key", "")
st_session.setdefault("celebrated", set())


# ---------------------------
# Helpers
# ---------------------------
def run(coro):
    """Drive a controller coroutine on this browser session's event loop."""
    return st_session.loop.run_until_complete(coro)


def navigate(session_id: str) -> None:
    """Keep the URL in sync with the active session, without a page reload."""
    st.query_params[SESSION_PARAM] = session_id
    logger.debug("Navigated to {}", location_for(session_id))


def get_controller():
    """Return the controller object."""
    return st_session.get("controller")


def init_controller() -> None:
    """Build the controller once per browser session and bind it to the URL."""
    settings = st_session.settings
    try:
        controller = build_controller(
            settings, api_key=st_session.api_key or None, navigate=navigate
        )
    except RuntimeError as e:
        st.warning(str(e))
        return
    st_session.controller = controller
    with st.spinner("Loading your conversation…"):
        run(controller.initialize(st.query_params.get(SESSION_PARAM)))


def format_ago(ts: datetime) -> str:
    """Rough 'x minutes ago' for the sidebar."""
    seconds = max(0, int((datetime.now(tz=timezone.utc) - ts).total_seconds()))
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} h ago"
    return f"{hours // 24} d ago"


def render_message(msg: Message) -> None:
    with st.chat_message(msg.role):
        st.markdown(msg.content)
        if msg.role == "assistant" and msg.metadata is not None:
            st.caption(f"{msg.metadata.technique} · {msg.metadata.goal}")


def render_stress_prompt(view: TranscriptView) -> None:
    prompt = view.stress_prompt
    activity = prompt.activity
    with st.container(border=True):
        st.markdown(f"### {ACTIVITY_ICONS[activity.kind]} {activity.title}")
        st.write(
            f"I noticed you mentioned **{prompt.trigger}**. "
            "Would you like to take a short break?"
        )
        st.caption(activity.description)
        c1, c2 = st.columns([1, 1])
        done = c1.button("I've finished the activity", type="primary")
        skip = c2.button("Skip for now")
    if done or skip:
        run(get_controller().resume())
        st.rerun()


def on_new_session() -> None:
    controller = get_controller()
    if controller and run(controller.new_session()) is None:
        st.toast("Could not start a new session.", icon="⚠️")


def on_select_session(session_id: str) -> None:
    controller = get_controller()
    if controller:
        run(controller.select_session(session_id))


# ---------------------------
# Sidebar
# ---------------------------
with st.sidebar:
    settings = st_session.settings
    if settings.backend == "local" and not settings.openai_api_key:
        st.markdown("## Settings")
        user_api_key = st.text_input(
            "OpenAI API key",
            type="password",
            value=st_session.api_key,
            help="Used only for this browser session.",
        )
        if user_api_key and user_api_key != st_session.api_key:
            st_session.api_key = user_api_key
            st_session.controller = None
        if not st_session.api_key:
            st.warning("Please enter your API key in the sidebar to continue.")

    if get_controller() is None and (
        settings.backend == "http" or settings.openai_api_key or st_session.api_key
    ):
        init_controller()

    controller = get_controller()
    view = controller.view if controller else TranscriptView()

    st.markdown("## Your Sessions")
    st.button(
        "Start New Session",
        type="primary",
        on_click=on_new_session,
        disabled=controller is None or view.loading,
        use_container_width=True,
    )
    for session in view.sessions:
        active = session.id == view.session_id
        st.button(
            f"{'▶ ' if active else ''}{session.title}",
            key=f"session_{session.id}",
            on_click=on_select_session,
            args=(session.id,),
            disabled=active or view.loading,
            use_container_width=True,
        )
        st.caption(
            f"{session.preview}  \n"
            f"{session.message_count} messages · {format_ago(session.updated_at)}"
        )

# ---------------------------
# Chat area
# ---------------------------
st.title("🌿 Mindspace")
controller = get_controller()
if controller is None:
    st.stop()

view = controller.view
if view.notice:
    st.info(view.notice)

if not view.messages:
    st.markdown("#### Hi, I'm here to listen. What would you like to talk about?")
    cols = st.columns(2)
    for i, question in enumerate(SUGGESTED_QUESTIONS):
        if cols[i % 2].button(question, key=f"suggested_{i}", disabled=view.loading):
            with st.spinner("Thinking…"):
                run(controller.ask_suggested(question))
            st.rerun()
else:
    st.caption(f"{len(view.messages)} messages")
    for msg in view.messages:
        render_message(msg)

if view.stress_prompt is not None:
    render_stress_prompt(view)

if view.can_complete and st.button("Complete session"):
    controller.complete_session()
    st.rerun()

if view.completed and view.session_id not in st_session.celebrated:
    st_session.celebrated.add(view.session_id)
    st.balloons()
    st.success("Session complete. Take a moment to notice how you feel.")

placeholder = (
    "Complete the activity to continue..."
    if view.stress_prompt
    else "Ask me anything..."
)
raw = st.chat_input(placeholder, disabled=not view.input_enabled)
if raw is not None:
    if not raw.strip():
        st.toast("Please enter a non-empty message.", icon="⚠️")
    else:
        try:
            with st.spinner("Thinking…"):
                run(controller.submit(raw))
        except Exception:
            logger.exception("Chat flow failed")
            st.toast("Something went wrong. Please try again.", icon="⚠️")
        st.rerun()
