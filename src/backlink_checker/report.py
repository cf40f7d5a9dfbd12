"""Text reporting utilities for verification results."""
from __future__ import annotations

from .models import BacklinkRecord, VerificationResult
from .scheduling import BatchSummary


def render_result(record: BacklinkRecord, result: VerificationResult) -> str:
    """Return a human-readable report for one checked backlink."""

    lines = [
        "Backlink Check Report",
        f"Page: {record.live_link}",
        f"Target: {record.target_url}",
        f"Anchor: {record.target_anchor}",
        f"Status: {result.status.upper()}",
    ]
    if result.http_status is not None:
        lines.append(f"HTTP status: {result.http_status}")
    if result.final_url and result.final_url != record.live_link:
        lines.append(f"Final URL: {result.final_url}")

    if result.link_found:
        lines.append(f"Link found ({result.match_type} match)")
        if result.context:
            lines.append(f"Context: {result.context}")
    elif result.error_detail:
        lines.append(f"[{(result.failure or 'error').upper()}] {result.error_detail}")
    return "\n".join(lines)


def render_batch_summary(summary: BatchSummary) -> str:
    lines = [
        "Backlink Recheck Summary",
        f"Selected: {summary.total}",
        f"Processed: {summary.processed}",
        f"Errors: {summary.errors}",
    ]
    if summary.skipped:
        lines.append(f"Skipped: {summary.skipped}")
    if not summary.total:
        lines.append("No backlinks were due for a check.")
    return "\n".join(lines)
