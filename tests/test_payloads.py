import json
from datetime import timezone

import pytest

from mindspace.errors import ParseError
from mindspace.models import default_progress
from mindspace.services.payloads import (
    FALLBACK_REPLY,
    parse_history,
    parse_reply,
    parse_timestamp,
)
from mindspace.utils.llm_json import coerce_object, extract_reply_object


def test_response_field_wins_over_message() -> None:
    reply = parse_reply({"response": "A", "message": "B"})
    assert reply.role == "assistant"
    assert reply.content == "A"


def test_message_field_used_when_response_missing() -> None:
    assert parse_reply({"message": "B"}).content == "B"


def test_blank_fields_fall_back_to_supportive_text() -> None:
    assert parse_reply({"response": "  ", "message": None}).content == FALLBACK_REPLY


def test_metadata_defaults_when_absent() -> None:
    meta = parse_reply({"response": "ok"}).metadata
    assert meta.technique == "supportive"
    assert meta.goal == "Provide support"
    assert meta.progress == {"emotionalState": "neutral", "riskLevel": 0}
    assert meta.analysis["recommendedApproach"] == "supportive"


def test_top_level_coaching_fields_are_accepted() -> None:
    meta = parse_reply(
        {"response": "ok", "technique": "grounding", "currentGoal": "Slow down"}
    ).metadata
    assert meta.technique == "grounding"
    assert meta.goal == "Slow down"


def test_json_string_payload_is_decoded() -> None:
    payload = json.dumps({"response": "hi", "metadata": {"currentGoal": "Listen"}})
    reply = parse_reply(payload)
    assert reply.content == "hi"
    assert reply.metadata.goal == "Listen"


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", 42, None, ["response"]])
def test_unusable_payloads_raise_parse_error(payload) -> None:
    with pytest.raises(ParseError):
        parse_reply(payload)


def test_coerce_object_accepts_bytes() -> None:
    assert coerce_object(b'{"a": 1}') == {"a": 1}


def test_reply_object_found_in_fences_and_prose() -> None:
    assert extract_reply_object('```json\n{"response": "x"}\n```') == {"response": "x"}
    assert extract_reply_object('Sure! {"response": "x"} Hope that helps.') == {"response": "x"}
    assert extract_reply_object("no json here") is None
    assert extract_reply_object("[1, 2]") is None


@pytest.mark.parametrize("progress", [0, [], ""])
def test_falsy_progress_is_kept(progress) -> None:
    reply = parse_reply({"response": "ok", "metadata": {"progress": progress}})
    assert reply.metadata.progress == progress

    history = parse_history(
        [{"role": "assistant", "content": "ok", "metadata": {"progress": progress}}]
    )
    assert history[0].metadata.progress == progress


def test_missing_progress_gets_default() -> None:
    reply = parse_reply({"response": "ok", "progress": None})
    assert reply.metadata.progress == default_progress()


def test_parse_timestamp_variants() -> None:
    iso = parse_timestamp("2024-05-01T10:00:00Z")
    assert iso.tzinfo is not None and iso.year == 2024
    millis = parse_timestamp(1714557600000)
    assert millis.tzinfo == timezone.utc
    naive = parse_timestamp("2024-05-01T10:00:00")
    assert naive.tzinfo == timezone.utc


def test_history_with_bad_timestamp_degrades_to_empty() -> None:
    assert parse_history([{"role": "user", "content": "x", "timestamp": "yesterday"}]) == []
