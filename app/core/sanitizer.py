"""Markup stripping for free-text form fields before they are stored."""
from typing import Any, Dict

import nh3

# No tags or attributes survive; text content is kept, script/style bodies are dropped.
_ALLOWED_TAGS: set = set()
_ALLOWED_ATTRIBUTES: dict = {}


def sanitize(text: Any) -> Any:
    """Strip every tag and attribute from text. Empty or non-string input is returned as is."""
    if not text or not isinstance(text, str):
        return text
    return nh3.clean(text, tags=_ALLOWED_TAGS, attributes=_ALLOWED_ATTRIBUTES)


def sanitize_record(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Sanitize every string value of a form payload; other values pass through."""
    if not fields:
        return fields
    return {
        key: sanitize(value) if isinstance(value, str) else value
        for key, value in fields.items()
    }
