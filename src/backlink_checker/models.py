"""Data models for backlink verification workflows."""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional


class CheckStatus:
    PENDING = "pending"
    LIVE = "live"
    ERROR = "error"
    UNREACHABLE = "unreachable"

    FAILURES = frozenset({ERROR, UNREACHABLE})


class MatchType:
    EXACT = "exact"
    PARTIAL = "partial"
    WORD_BASED = "word-based"
    NONE = "none"


class FailureKind:
    TRANSPORT_UNREACHABLE = "transport-unreachable"
    REMOTE_ERROR = "remote-error"
    PARSE_DEGRADED = "parse-degraded"
    LINK_ABSENT = "link-absent"


class InvalidRecordError(ValueError):
    """Raised when a backlink record is missing a required field."""


def next_retry_count(previous: int, status: str) -> int:
    """Consecutive-failure counter after a check that ended in ``status``."""
    if status in CheckStatus.FAILURES:
        return (previous or 0) + 1
    return 0


@dataclass
class BacklinkRecord:
    """A claimed link placement plus the state of its most recent check."""

    live_link: str
    target_url: str
    target_anchor: str
    retry_count: int = 0
    id: Optional[int] = None
    status: str = CheckStatus.PENDING
    last_checked: Optional[datetime] = None
    link_found: bool = False
    link_context: Optional[str] = None
    http_status: Optional[int] = None
    match_type: Optional[str] = None
    last_error: Optional[str] = None

    def validate(self) -> "BacklinkRecord":
        """Ensure the placement fields are usable; returns ``self`` for chaining."""
        for name in ("live_link", "target_url", "target_anchor"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidRecordError(f"Backlink record is missing {name}")
        if self.retry_count < 0:
            raise InvalidRecordError("retry_count must be non-negative")
        return self

    @property
    def is_failing(self) -> bool:
        return self.status in CheckStatus.FAILURES

    def with_result(self, result: "VerificationResult", checked_at: datetime) -> "BacklinkRecord":
        """Return a copy of the record updated with the outcome of one check."""
        failed = result.status in CheckStatus.FAILURES
        return replace(
            self,
            status=result.status,
            link_found=result.link_found,
            link_context=result.context,
            http_status=result.http_status,
            match_type=result.match_type,
            last_error=result.error_detail if failed else None,
            retry_count=next_retry_count(self.retry_count, result.status),
            last_checked=checked_at,
        )


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a single verification attempt."""

    status: str
    link_found: bool = False
    match_type: str = MatchType.NONE
    context: str = ""
    http_status: Optional[int] = None
    error_detail: Optional[str] = None
    failure: Optional[str] = None
    final_url: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnchorMatch:
    is_match: bool
    kind: str


@dataclass(frozen=True)
class ScanResult:
    """Best link located on a page for a given target."""

    found: bool
    match_type: str = MatchType.NONE
    context: str = ""
    href: Optional[str] = None
    anchor_text: Optional[str] = None
    degraded: bool = False


@dataclass(frozen=True)
class FetchedPage:
    url: str
    status_code: int
    body: str = ""
    reason: str = ""


@dataclass(frozen=True)
class FetchFailure:
    """Transport-level failure: no HTTP response was received."""

    kind: str
    message: str

    DNS = "dns"
    CONNECT = "connect"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
