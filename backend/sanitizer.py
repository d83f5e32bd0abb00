"""
Recursive normalization of untrusted submission values.

Defense in depth only: this is not an HTML parser, and anything that renders
submitted values must still escape them.
"""

import re
import unicodedata
from typing import Any

RE_CTRL = re.compile(r"[\u0000-\u001F\u007F]")
RE_BIDI = re.compile(r"[\u200E\u200F\u202A-\u202E\u2066-\u2069]")
RE_TAG = re.compile(r"<[^>]*?>")
RE_ANGLE = re.compile(r"[<>]")
RE_EVENT_ATTR = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
RE_JS_URI = re.compile(r"javascript\s*:", re.IGNORECASE)


def _sanitize_once(s: str) -> str:
    s = unicodedata.normalize("NFKC", s)
    s = RE_CTRL.sub(" ", s)
    s = RE_BIDI.sub("", s)
    s = RE_TAG.sub("", s)
    s = RE_ANGLE.sub("", s)
    s = RE_EVENT_ATTR.sub("", s)
    s = RE_JS_URI.sub("", s)
    return s.strip()


def sanitize_string(s: str) -> str:
    # Stripping can splice a new match together ("javajavascript:script:"), so run to a fixed point.
    # Every pass after the first only removes characters, so this terminates.
    out = _sanitize_once(s)
    while True:
        again = _sanitize_once(out)
        if again == out:
            return out
        out = again


def sanitize(value: Any) -> Any:
    """Sanitize strings; recurse into lists and dicts; return anything else unchanged."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize(v) for k, v in value.items()}
    return value
