"""
Input Sanitization

Strips executable and markup content from free text before any schema sees it.

sanitize() walks strings, lists/tuples and dicts recursively and leaves every
other value untouched. For each string leaf it:
- removes <script>...</script> blocks together with their content
- strips all remaining tags and comments (bleach, no allowed tags)
- decodes HTML entities
- trims surrounding whitespace

The string transform is repeated until the text stops changing, so markup
that only appears after a pass (entity-encoded tags, tags split by a script
block) is removed too and sanitize(sanitize(x)) == sanitize(x).
"""

import html
import re
from typing import Any

import bleach

_SCRIPT_BLOCK = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
    re.IGNORECASE,
)


def _clean_once(text: str) -> str:
    text = _SCRIPT_BLOCK.sub("", text)
    text = bleach.clean(text, tags=set(), attributes={}, strip=True, strip_comments=True)
    return html.unescape(text).strip()


def sanitize_text(text: str) -> str:
    """Sanitize a single string, repeating until the text settles."""
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def sanitize(value: Any) -> Any:
    """Recursively sanitize strings inside a payload."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [sanitize(item) for item in value]
    return value


__all__ = ["sanitize", "sanitize_text"]
