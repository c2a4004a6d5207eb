"""
Free-text sanitisation for user supplied values that may later be rendered.
"""

import re

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*>")
_ANGLE = re.compile(r"[<>]")


def purify(text: str | None) -> str:
    """
    Remove markup from ``text``.

    Script blocks are dropped together with their content, every other tag is
    stripped while its inner text is kept, leftover angle brackets from
    malformed markup are removed and the result is trimmed.

    Examples:
        >>> purify("<script>alert(1)</script><b>12 Main St</b> ")
        '12 Main St'
        >>> purify(None)
        ''
    """
    if not text:
        return ""

    text = _SCRIPT_BLOCK.sub("", text)
    text = _TAG.sub("", text)
    text = _ANGLE.sub("", text)
    return text.strip()


__all__ = ["purify"]
