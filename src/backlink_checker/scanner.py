"""Locate a target link among the anchors of a fetched page."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag
from bs4.exceptions import ParserRejectedMarkup

from .matcher import anchor_matches
from .models import MatchType, ScanResult
from .normalization import urls_match

logger = logging.getLogger(__name__)

MAX_CONTEXT_LENGTH = 300
SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")

# Candidate strength; the permissive fallback ranks below every real match.
_STRENGTH = {
    MatchType.EXACT: 4,
    MatchType.PARTIAL: 3,
    MatchType.WORD_BASED: 2,
}
_FALLBACK_STRENGTH = 1


@dataclass
class _Candidate:
    href: str
    text: str
    match_type: str
    strength: int
    context: str


def _link_text(anchor: Tag) -> str:
    text = anchor.get_text().strip()
    if text:
        return text
    title = (anchor.get("title") or "").strip()
    if title:
        return title
    image = anchor.find("img", alt=True)
    if image is not None:
        return (image.get("alt") or "").strip()
    return ""


def _context_for(anchor: Tag, text: str, href: str) -> str:
    parent = anchor.parent
    context = parent.get_text().strip() if parent is not None else ""
    if not context:
        context = f'Link found: "{text}" -> {href}'
    return context[:MAX_CONTEXT_LENGTH]


def _resolve(href: str, base_url: str) -> str:
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


class LinkScanner:
    """Walk every anchor on a page and pick the best link to the target URL.

    A link to the right URL counts as found when its text matches the expected
    anchor, or, more permissively, whenever it has any text at all (reported as
    a ``partial`` match). The reported match comes from the strongest candidate
    in document order; the reported context is the longest one seen.
    """

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser

    def scan(self, page_html: str, base_url: str, target_url: str, target_anchor: str) -> ScanResult:
        try:
            soup = BeautifulSoup(page_html or "", self.parser)
        except ParserRejectedMarkup as exc:
            logger.warning("Could not parse HTML from %s: %s", base_url, exc)
            return ScanResult(found=False, degraded=True)

        candidates = list(self._candidates(soup, base_url, target_url, target_anchor))
        if not candidates:
            return ScanResult(found=False)

        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.strength > best.strength:
                best = candidate
        context = candidates[0].context
        for candidate in candidates[1:]:
            if len(candidate.context) > len(context):
                context = candidate.context

        return ScanResult(
            found=True,
            match_type=best.match_type,
            context=context,
            href=best.href,
            anchor_text=best.text,
        )

    def _candidates(
        self, soup: BeautifulSoup, base_url: str, target_url: str, target_anchor: str
    ) -> Iterator[_Candidate]:
        for anchor in soup.find_all("a", href=True):
            raw_href = (anchor.get("href") or "").strip()
            if not raw_href or raw_href.lower().startswith(SKIPPED_SCHEMES):
                continue
            href = _resolve(raw_href, base_url)
            if not urls_match(target_url, href):
                continue

            text = _link_text(anchor)
            match = anchor_matches(target_anchor, text)
            if match.is_match:
                match_type, strength = match.kind, _STRENGTH[match.kind]
            elif text:
                match_type, strength = MatchType.PARTIAL, _FALLBACK_STRENGTH
            else:
                logger.debug("Skipping textless link to %s", href)
                continue

            logger.debug("Candidate link %s (%r) matched as %s", href, text, match_type)
            candidate = _Candidate(
                href=href,
                text=text,
                match_type=match_type,
                strength=strength,
                context=_context_for(anchor, text, href),
            )
            yield candidate
            if strength == _STRENGTH[MatchType.EXACT] and len(candidate.context) >= MAX_CONTEXT_LENGTH:
                # Nothing later can beat this candidate on either criterion.
                return


__all__ = ["LinkScanner"]
