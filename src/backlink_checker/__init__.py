"""Backlink presence verification toolkit."""

from .fetcher import PageFetcher
from .matcher import anchor_matches
from .models import (
    AnchorMatch,
    BacklinkRecord,
    CheckStatus,
    FailureKind,
    InvalidRecordError,
    MatchType,
    ScanResult,
    VerificationResult,
    next_retry_count,
)
from .normalization import normalize_url, urls_match
from .scanner import LinkScanner
from .scheduling import BatchSummary, RecheckPolicy, run_batch
from .verifier import BacklinkVerifier

__all__ = [
    "AnchorMatch",
    "BacklinkRecord",
    "BacklinkVerifier",
    "BatchSummary",
    "CheckStatus",
    "FailureKind",
    "InvalidRecordError",
    "LinkScanner",
    "MatchType",
    "PageFetcher",
    "RecheckPolicy",
    "ScanResult",
    "VerificationResult",
    "anchor_matches",
    "next_retry_count",
    "normalize_url",
    "run_batch",
    "urls_match",
]
