import pytest

from mindspace.bootstrap import build_chat_api, build_controller
from mindspace.config import Settings
from mindspace.services.chat_api_http import HttpChatApi
from mindspace.services.chat_api_local import LocalChatApi
from mindspace.services.stress_detector import RotatingActivityPicker


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MINDSPACE_BACKEND", "http")
    monkeypatch.setenv("MINDSPACE_API_BASE_URL", "http://backend.test/api")
    monkeypatch.setenv("MINDSPACE_RESUBMIT_AFTER_ACTIVITY", "true")
    settings = Settings(_env_file=None)
    assert settings.backend == "http"
    assert settings.api_base_url == "http://backend.test/api"
    assert settings.resubmit_after_activity is True
    assert settings.completion_threshold == 5


def test_http_backend_is_built_from_settings() -> None:
    settings = Settings(_env_file=None, backend="http", api_base_url="http://x.test")
    assert isinstance(build_chat_api(settings), HttpChatApi)


def test_local_backend_requires_a_key() -> None:
    settings = Settings(_env_file=None, backend="local", openai_api_key=None)
    with pytest.raises(RuntimeError):
        build_chat_api(settings)


def test_local_backend_uses_key_from_ui() -> None:
    settings = Settings(_env_file=None, backend="local", model="gpt-4o")
    api = build_chat_api(settings, api_key="sk-test")
    assert isinstance(api, LocalChatApi)
    assert api.settings.model == "gpt-4o"


def test_controller_follows_conversation_settings() -> None:
    settings = Settings(
        _env_file=None,
        backend="http",
        activity_selection="rotate",
        resubmit_after_activity=True,
        completion_threshold=3,
        reply_timeout_seconds=12.5,
    )
    controller = build_controller(settings)
    assert isinstance(controller.picker, RotatingActivityPicker)
    assert controller.resubmit_after_activity is True
    assert controller.completion_threshold == 3
    assert controller.reply_timeout == 12.5
