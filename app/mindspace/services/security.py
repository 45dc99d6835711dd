"""
Purpose: Guardrails applied before user text reaches the language model.
Content: strip control characters, clip oversized input, redact PII so that
emails or card numbers typed into a wellness chat are not forwarded verbatim.
"""

import re

EMAIL = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.I)
PHONE = re.compile(r"\+?\d[\d\s().-]{7,}\d")
CCARD = re.compile(r"\b(?:\d[ -]*?){13,19}\b")
SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")

MAX_INPUT_CHARS = 8000


class DefaultSecurity:
    def sanitize_for_prompt(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()

    def clip_input(self, text: str) -> str:
        if len(text) > MAX_INPUT_CHARS:
            text = text[:MAX_INPUT_CHARS]
        return text

    def redact_pii(self, text: str):
        found = []

        def _redact(rx, label):
            nonlocal text, found
            if rx.search(text):
                found.append(label)
                text = rx.sub(f"[{label}]", text)

        _redact(EMAIL, "EMAIL")
        _redact(CCARD, "CARD")
        _redact(SSN, "SSN")
        _redact(PHONE, "PHONE")
        return text, found

    def prepare(self, text: str) -> tuple[str, list[str]]:
        """Sanitize, clip and redact in one pass; returns (text, redacted labels)."""
        return self.redact_pii(self.clip_input(self.sanitize_for_prompt(text)))
