"""
Keyword inference of bear actions from free-text replies.

Best-effort heuristic for the record-and-upload path, where the model
cannot call a tool. First table entry with a matching keyword wins.
"""

from __future__ import annotations

import re
from typing import Optional

from spec import BEAR_ACTION_KEYWORDS


# Word-start match: "play" hits "playing", not "display"
_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (
        action,
        re.compile(
            r"\b(?:" + "|".join(re.escape(word) for word in keywords) + r")",
            re.IGNORECASE,
        ),
    )
    for action, keywords in BEAR_ACTION_KEYWORDS
)


def infer_bear_action(text: str) -> Optional[str]:
    """Return the first action whose keyword appears in `text`, else None."""
    if not text:
        return None
    for action, pattern in _PATTERNS:
        if pattern.search(text):
            return action
    return None
