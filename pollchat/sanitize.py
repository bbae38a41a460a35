import html

import bleach

from .errors import ValidationError

# entity-encoded markup ("&lt;b&gt;") needs a second pass once decoded
MAX_PASSES = 5


def clean_text(value) -> str:
    """Strip every HTML tag and surrounding whitespace from ``value``.

    Plain characters such as ``&`` or ``<`` survive as typed; bleach's
    escaping is undone after each pass.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    for _ in range(MAX_PASSES):
        cleaned = html.unescape(bleach.clean(value, tags=set(), attributes={}, strip=True))
        if cleaned == value:
            break
        value = cleaned
    return value.strip()


def require_text(value, field: str) -> str:
    cleaned = clean_text(value)
    if not cleaned:
        raise ValidationError(f'"{field}" is not allowed to be empty')
    return cleaned
