"""
import_engine.similarity - Header normalisation and keyword similarity.

Scores (after normalisation):
    1.0  exact match
    0.8  one string contains the other
    0.6 × matching-word ratio   when words overlap (equal or substring)
    0.0  otherwise
"""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[_\-\s]+")
_PARENS = re.compile(r"[()]")


def normalize(text) -> str:
    """Lower-case, drop parentheses, collapse _ / - / whitespace runs, trim."""
    s = _PARENS.sub("", str(text or "").lower())
    return _SEPARATORS.sub(" ", s).strip()


def similarity(a, b) -> float:
    s1 = normalize(a)
    s2 = normalize(b)
    if not s1 or not s2:
        return 0.0

    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8

    words1 = s1.split(" ")
    words2 = s2.split(" ")
    matching = [
        w for w in words1
        if any(w == w2 or w2 in w or w in w2 for w2 in words2)
    ]
    if matching:
        return 0.6 * (len(matching) / max(len(words1), len(words2)))
    return 0.0
