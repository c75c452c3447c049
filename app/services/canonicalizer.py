"""Extracts a well-formed HTML document from raw model output.

Models frequently wrap the page in a markdown fence or open with a sentence of
commentary. ``canonicalize`` removes both and normalises the doctype marker so
the result always starts at ``<!DOCTYPE html>`` when the marker is present.
"""

import re

DOCTYPE_MARKER = "<!DOCTYPE html>"

_FENCE_OPENER = re.compile(r"^(?:```html\s*)+")
_FENCE_CLOSER = re.compile(r"(?:\s*```)+\s*$")
_DOCTYPE = re.compile(re.escape(DOCTYPE_MARKER), re.IGNORECASE)


def canonicalize(raw: str) -> str:
    """Return ``raw`` without fences or leading commentary.

    The function is pure and idempotent. Text without a doctype marker is only
    unfenced and trimmed.
    """
    text = raw.strip()
    text = _FENCE_OPENER.sub("", text, count=1)
    text = _FENCE_CLOSER.sub("", text, count=1)

    match = _DOCTYPE.search(text)
    if match:
        text = DOCTYPE_MARKER + text[match.end() :]

    return text.strip()
