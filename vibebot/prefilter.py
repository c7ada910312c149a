"""Lexical pre-filtering of routing candidates."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vibebot.scene import Character

__all__ = ["pre_filter", "tokenize"]

_ALNUM_RUN = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    """Lowercase and split on non-alphanumeric runs, dropping tokens under 3 chars."""
    return [word for word in _ALNUM_RUN.findall(text.lower()) if len(word) >= 3]


def _overlap(event_words: list[str], candidate: Character) -> int:
    # Substring match either way lets simple stem variations count.
    cand_words = tokenize(candidate.name + " " + " ".join(candidate.capabilities))
    if not cand_words:
        return 0
    return sum(
        1
        for ew in event_words
        if any(cw in ew or ew in cw for cw in cand_words)
    )


def pre_filter(
    event_text: str, candidates: Sequence[Character], k: int = 0
) -> list[Character]:
    """Rank candidates by overlap between the event text and their name and tags.

    Returns the top ``k`` (when ``k`` > 0) or every candidate with a positive
    score, ties in input order. With no overlap at all, every candidate is
    returned unchanged.
    """
    if not candidates:
        return list(candidates)
    event_words = tokenize(event_text)
    if not event_words:
        return list(candidates)

    scores = [_overlap(event_words, c) for c in candidates]
    if sum(scores) == 0:
        return list(candidates)

    ranked = sorted(zip(scores, candidates), key=lambda item: -item[0])
    out = [c for score, c in ranked if score > 0]
    if k > 0:
        out = out[:k]
    return out