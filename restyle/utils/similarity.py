from __future__ import annotations

from difflib import SequenceMatcher
from typing import Iterable


def similarity(left: str, right: str) -> float:
    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    return SequenceMatcher(a=left.lower(), b=right.lower()).ratio()


def closest_match(value: str, options: Iterable[str], threshold: float = 0.8) -> str | None:
    """Returns the option most similar to ``value`` when it clears ``threshold``."""

    best: str | None = None
    best_score = threshold
    for option in options:
        score = similarity(value, option)
        if score >= best_score and (best is None or score > best_score):
            best = option
            best_score = score
    return best
