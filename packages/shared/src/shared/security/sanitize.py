from __future__ import annotations

import html
import re

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_free_text(value: str, max_length: int = 500) -> bool:
    if not value.strip() or len(value) > max_length:
        return False
    return _CONTROL_CHARS.search(value) is None


def sanitize_html_text(value: str) -> str:
    return html.escape(value, quote=True)
