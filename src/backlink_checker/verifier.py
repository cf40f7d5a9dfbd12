"""High-level orchestrator for a single backlink verification."""
from __future__ import annotations

import logging

from .fetcher import PageFetcher
from .models import (
    BacklinkRecord,
    CheckStatus,
    FailureKind,
    FetchedPage,
    FetchFailure,
    MatchType,
    VerificationResult,
)
from .scanner import LinkScanner

logger = logging.getLogger(__name__)

LINK_NOT_FOUND = "Target link not found on page"
UNPARSEABLE_PAGE = "Page HTML could not be parsed"


def describe_http_status(status_code: int, reason: str = "") -> str:
    """Human-readable explanation of a non-200 page response."""
    if status_code == 404:
        return "Page not found (404)"
    if 300 <= status_code < 400:
        return f"Redirect ({status_code}) - Check redirect destination"
    detail = f"HTTP {status_code}"
    if reason:
        detail += f" - {reason}"
    return detail


class BacklinkVerifier:
    """Coordinates fetching, scanning and classification of one placement."""

    def __init__(self, fetcher: PageFetcher | None = None, scanner: LinkScanner | None = None):
        self.fetcher = fetcher or PageFetcher()
        self.scanner = scanner or LinkScanner()

    def verify(self, record: BacklinkRecord) -> VerificationResult:
        """Check whether ``record``'s link is still present on its live page.

        Fetch and parse problems are reported through the returned result and
        never raised; only a malformed record raises ``InvalidRecordError``.
        """
        record.validate()
        logger.info(
            "Checking %s for %s with anchor %r",
            record.live_link,
            record.target_url,
            record.target_anchor,
        )
        outcome = self.fetcher.fetch(record.live_link.strip())
        if isinstance(outcome, FetchFailure):
            result = self._unreachable(outcome)
        elif outcome.status_code == 200:
            result = self._scan_page(record, outcome)
        else:
            result = self._remote_error(outcome)

        logger.info(
            "Checked %s: status=%s link_found=%s match=%s",
            record.live_link,
            result.status,
            result.link_found,
            result.match_type,
        )
        return result

    @staticmethod
    def _unreachable(failure: FetchFailure) -> VerificationResult:
        return VerificationResult(
            status=CheckStatus.UNREACHABLE,
            context=failure.message,
            error_detail=failure.message,
            failure=FailureKind.TRANSPORT_UNREACHABLE,
        )

    @staticmethod
    def _remote_error(page: FetchedPage) -> VerificationResult:
        detail = describe_http_status(page.status_code, page.reason)
        return VerificationResult(
            status=CheckStatus.ERROR,
            http_status=page.status_code,
            context=detail,
            error_detail=detail,
            failure=FailureKind.REMOTE_ERROR,
            final_url=page.url,
        )

    def _scan_page(self, record: BacklinkRecord, page: FetchedPage) -> VerificationResult:
        scan = self.scanner.scan(
            page.body,
            base_url=page.url,
            target_url=record.target_url.strip(),
            target_anchor=record.target_anchor.strip(),
        )
        if scan.found:
            return VerificationResult(
                status=CheckStatus.LIVE,
                http_status=page.status_code,
                link_found=True,
                match_type=scan.match_type,
                context=scan.context,
                final_url=page.url,
            )

        detail = UNPARSEABLE_PAGE if scan.degraded else LINK_NOT_FOUND
        return VerificationResult(
            status=CheckStatus.LIVE,
            http_status=page.status_code,
            link_found=False,
            match_type=MatchType.NONE,
            context=detail,
            error_detail=detail,
            failure=FailureKind.PARSE_DEGRADED if scan.degraded else FailureKind.LINK_ABSENT,
            final_url=page.url,
        )


__all__ = ["BacklinkVerifier", "describe_http_status", "LINK_NOT_FOUND"]
