"""Review text canonicalization for duplicate comparison."""

import re
from typing import Optional

_WS = re.compile(r"\s+")
_PUNCT = re.compile(r"[^\w\s]")


def normalize(text: Optional[str]) -> str:
    """Return the comparison key for a review text.

    Lowercases, strips punctuation and collapses whitespace. Whitespace is
    collapsed after punctuation removal so that ``normalize`` is idempotent.
    The key is only used for comparison; review text is never rewritten.
    """
    if not text:
        return ""
    key = _WS.sub(" ", text.strip()).lower()
    key = _PUNCT.sub("", key)
    return _WS.sub(" ", key).strip()
