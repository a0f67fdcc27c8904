"""
FrameChain Unicode Utilities

Text cleanup for model output before it is parsed or used as a prompt.
"""

import re

# Zero-width, word joiner, soft hyphen, bidi controls and BOM
_INVISIBLE_RE = re.compile('[\u200b-\u200f\u2060-\u2064\u00ad\u202a-\u202e\u2066-\u2069\ufeff]')

# C0 controls except tab and newline, plus DEL
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def strip_invisible(text: str) -> str:
    """
    Remove characters that are invisible but break parsing.

    Removes:
    - Zero-width and bidi formatting characters
    - The byte order mark
    - Control characters (except newline, carriage return and tab)
    - The Unicode replacement character
    """
    text = _INVISIBLE_RE.sub('', text)
    text = _CONTROL_RE.sub('', text)
    return text.replace('\ufffd', '')


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to max_length characters, suffix included."""
    if len(text) <= max_length:
        return text
    return text[:max(max_length - len(suffix), 0)] + suffix


def safe_key_segment(value: str) -> str:
    """Make a name usable as one segment of a storage key."""
    cleaned = re.sub(r'[^\w\-]+', '_', value, flags=re.UNICODE).strip('_')
    return cleaned or "unnamed"
