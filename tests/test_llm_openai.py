from types import SimpleNamespace

import httpx
import openai
import pytest

from mindspace.models import LLMSettings
from mindspace.services import llm_openai
from mindspace.services.llm_openai import RETRY_DELAYS, OpenAILLMClient

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
SETTINGS = LLMSettings(model="gpt-4o-mini")


def _completion(text="I'm listening.", usage=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        model="gpt-4o-mini",
        usage=usage,
    )


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(*outcomes):
    completions = FakeCompletions(outcomes)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAILLMClient("sk-test", client=fake), completions


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    delays: list[float] = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(llm_openai.asyncio, "sleep", fake_sleep)
    return delays


def _rate_limited():
    response = httpx.Response(429, request=REQUEST)
    return openai.RateLimitError("slow down", response=response, body=None)


def test_missing_key_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        OpenAILLMClient("")


@pytest.mark.asyncio
async def test_system_prompt_is_prepended_and_usage_normalized(sleeps) -> None:
    usage = SimpleNamespace(prompt_tokens=12, completion_tokens=3)
    llm, completions = _client(_completion(usage=usage))

    text, meta = await llm.chat(
        [{"role": "user", "content": "hi"}], SETTINGS, system="Be kind."
    )

    assert text == "I'm listening."
    assert meta == {"model": "gpt-4o-mini", "tokens_in": 12, "tokens_out": 3}
    sent = completions.calls[0]
    assert sent["messages"] == [
        {"role": "system", "content": "Be kind."},
        {"role": "user", "content": "hi"},
    ]
    assert sent["model"] == "gpt-4o-mini"
    assert sleeps == []


@pytest.mark.asyncio
async def test_missing_usage_counts_as_zero(sleeps) -> None:
    llm, completions = _client(_completion(text=None, usage=None))
    text, meta = await llm.chat([{"role": "user", "content": "hi"}], SETTINGS)
    assert text == ""
    assert meta["tokens_in"] == 0
    assert meta["tokens_out"] == 0
    assert completions.calls[0]["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [_rate_limited(), openai.APITimeoutError(request=REQUEST)]
)
async def test_transient_errors_are_retried(sleeps, error) -> None:
    llm, completions = _client(error, error, _completion())
    text, _ = await llm.chat([{"role": "user", "content": "hi"}], SETTINGS)
    assert text == "I'm listening."
    assert len(completions.calls) == 3
    assert sleeps == list(RETRY_DELAYS[:2])


@pytest.mark.asyncio
async def test_retries_run_out(sleeps) -> None:
    llm, completions = _client(openai.APITimeoutError(request=REQUEST))
    with pytest.raises(openai.APITimeoutError):
        await llm.chat([{"role": "user", "content": "hi"}], SETTINGS)
    assert len(completions.calls) == len(RETRY_DELAYS) + 1
    assert sleeps == list(RETRY_DELAYS)


@pytest.mark.asyncio
async def test_other_errors_are_not_retried(sleeps) -> None:
    llm, completions = _client(openai.APIConnectionError(request=REQUEST))
    with pytest.raises(openai.APIConnectionError):
        await llm.chat([{"role": "user", "content": "hi"}], SETTINGS)
    assert len(completions.calls) == 1
    assert sleeps == []
