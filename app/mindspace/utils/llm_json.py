"""JSON helpers for model output and backend reply payloads."""

from __future__ import annotations
import json
import re
from typing import Any, Optional

from ..errors import ParseError

_FENCED = re.compile(r"^```[\w-]*\s*(.*?)\s*```$", re.DOTALL)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def extract_reply_object(text: str) -> Optional[dict]:
    """
    Pull the structured reply the support prompt asks the model for.
    Models sometimes wrap it in ```json fences or a sentence of prose, so the
    fenced body is tried first, then the outermost {...} span.
    Returns None when no JSON object decodes; the local backend then uses the
    whole text as the reply.
    """
    if not text:
        return None
    body = text.strip()
    fenced = _FENCED.match(body)
    if fenced:
        body = fenced.group(1)
    span = _OBJECT.search(body)
    candidates = [body] + ([span.group(0)] if span else [])
    for candidate in candidates:
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def coerce_object(payload: Any) -> dict:
    """
    Strict: accept a mapping or a JSON-encoded string of one.
    Raises ParseError for anything else.
    """
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError(f"Reply is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}.")
    return payload
