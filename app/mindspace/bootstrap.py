"""Wire settings into a chat backend and a ready-to-use controller."""

from __future__ import annotations
from typing import Callable, Optional

from .config import Settings
from .controller import ConversationController
from .interfaces import ChatApi
from .services.chat_api_http import HttpChatApi
from .services.chat_api_local import LocalChatApi
from .services.llm_openai import OpenAILLMClient
from .services.stress_detector import make_picker


def build_chat_api(settings: Settings, *, api_key: Optional[str] = None) -> ChatApi:
    if settings.backend == "http":
        return HttpChatApi(
            settings.api_base_url,
            token=settings.api_token,
            timeout_seconds=settings.request_timeout_seconds,
        )
    key = api_key or settings.openai_api_key
    if not key:
        raise RuntimeError("An OpenAI API key is required for the local backend")
    return LocalChatApi(OpenAILLMClient(key), settings.llm_settings())


def build_controller(
    settings: Settings,
    *,
    api: Optional[ChatApi] = None,
    api_key: Optional[str] = None,
    navigate: Optional[Callable[[str], None]] = None,
) -> ConversationController:
    return ConversationController(
        api or build_chat_api(settings, api_key=api_key),
        picker=make_picker(settings.activity_selection, seed=settings.activity_seed),
        resubmit_after_activity=settings.resubmit_after_activity,
        completion_threshold=settings.completion_threshold,
        reply_timeout=settings.reply_timeout_seconds,
        navigate=navigate,
    )
