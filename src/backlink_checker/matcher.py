"""Logic for matching expected anchor text against link text found on a page."""
from __future__ import annotations

from typing import List

from .models import AnchorMatch, MatchType
from .normalization import normalize_anchor_text

MIN_WORD_LENGTH = 3

_NO_MATCH = AnchorMatch(is_match=False, kind=MatchType.NONE)


def _significant_words(text: str) -> List[str]:
    return [word for word in text.split(" ") if len(word) >= MIN_WORD_LENGTH]


def _all_words_present(words: List[str], other: List[str]) -> bool:
    return bool(words) and all(word in other for word in words)


def anchor_matches(expected: str | None, observed: str | None) -> AnchorMatch:
    """Classify how closely ``observed`` link text matches ``expected``.

    Rules are tried in order: exact equality, expected text contained in the
    observed text, then word containment in either direction (short words are
    ignored) to tolerate reordering and truncated anchors.
    """
    target = normalize_anchor_text(expected)
    found = normalize_anchor_text(observed)
    if not target or not found:
        return _NO_MATCH

    if target == found:
        return AnchorMatch(is_match=True, kind=MatchType.EXACT)

    if target in found:
        return AnchorMatch(is_match=True, kind=MatchType.PARTIAL)

    target_words = target.split(" ")
    found_words = found.split(" ")
    if _all_words_present(_significant_words(target), found_words) or _all_words_present(
        _significant_words(found), target_words
    ):
        return AnchorMatch(is_match=True, kind=MatchType.WORD_BASED)

    return _NO_MATCH
