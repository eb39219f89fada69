"""Input sanitization helpers and redaction of bodies bound for the audit log."""

from __future__ import annotations

import json
import re
import unicodedata
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")

REDACTION_MARKER = "***REDACTED***"
SENSITIVE_KEYS = frozenset({"password", "old_password", "new_password", "api_token"})
TRUNCATION_SUFFIX = "...[truncated]"

# key: value or key=value pairs in bodies that did not parse; the value may be unterminated.
_SENSITIVE_PAIR_RE = re.compile(
    r"(?P<key>[\"']?\b(?:old_password|new_password|password|api_token)[\"']?\s*[:=]\s*)"
    r"(?P<value>\"(?:[^\"\\]|\\.)*\"?|'(?:[^'\\]|\\.)*'?|[^,&}\s]*)",
    re.IGNORECASE,
)


def _strip_control_chars(value: str) -> str:
    return "".join(ch for ch in value if unicodedata.category(ch) != "Cc")


def clean_single_line(value: str | None) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    value = _strip_control_chars(value.replace("\r", " ").replace("\n", " ")).strip()
    return _WHITESPACE_RE.sub(" ", value)


def clean_email(value: str | None) -> str:
    return clean_single_line(value).lower()


def _redact(node: Any) -> Any:
    if isinstance(node, dict):
        return {
            key: REDACTION_MARKER if str(key).lower() in SENSITIVE_KEYS else _redact(value)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_redact(item) for item in node]
    return node


def _mask_pair(match: re.Match[str]) -> str:
    value = match.group("value")
    if value[:1] in ("\"", "'"):
        return f'{match.group("key")}"{REDACTION_MARKER}"'
    return match.group("key") + REDACTION_MARKER


def redact_body(raw: bytes | str | None) -> str | None:
    """Replace sensitive JSON fields with the redaction marker.

    A body that does not parse (malformed JSON, form encoding) has the
    values of sensitive key/value pairs masked in place instead.
    """
    if raw is None:
        return None
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return _SENSITIVE_PAIR_RE.sub(_mask_pair, text)
    return json.dumps(_redact(parsed), ensure_ascii=False)


def truncate_body(text: str | None, max_bytes: int) -> str | None:
    if text is None:
        return None
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + TRUNCATION_SUFFIX
