"""Normalization helpers for comparing URLs and anchor text."""
from __future__ import annotations

from urllib.parse import urlparse
import re

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_url(value: str | None) -> str:
    """Return the canonical ``host/path`` form of a URL.

    The scheme, leading ``www.`` labels, query, fragment, port and trailing
    slashes are dropped and the host is lowercased. Input that cannot be
    parsed is cleaned up textually instead; this function never raises.
    """
    if not value:
        return ""
    raw = value.strip()
    if not raw:
        return ""
    candidate = raw if _SCHEME_RE.match(raw) else f"https://{raw}"
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname
    except ValueError:
        host = None
    if not host:
        return _fallback_normalize(raw)
    return _strip_www(host) + parsed.path.rstrip("/")


def _fallback_normalize(raw: str) -> str:
    return _strip_www(_SCHEME_RE.sub("", raw.lower())).rstrip("/")


def _strip_www(host: str) -> str:
    while host.startswith("www."):
        host = host[4:]
    return host


def urls_match(target_url: str | None, found_url: str | None) -> bool:
    """Decide whether ``found_url`` points at ``target_url``.

    Besides exact canonical equality, a link on the same domain counts when
    either side is a homepage (domain-only) URL.
    """
    if not target_url or not found_url:
        return False
    target = normalize_url(target_url)
    found = normalize_url(found_url)
    if not target or not found:
        return False
    if target == found:
        return True

    if target.split("/")[0] != found.split("/")[0]:
        return False
    # Canonical forms never end in "/", so a path boundary means domain-only.
    return "/" not in target or "/" not in found


def normalize_anchor_text(value: str | None) -> str:
    """Lowercase, trim and collapse whitespace runs to a single space."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip().lower()
