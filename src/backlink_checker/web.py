"""FastAPI service exposing backlink checks.

Run with:
    uvicorn backlink_checker.web:app --reload
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, field_validator

from .config import Settings
from .db import get_connection, init_db, list_backlinks, save_check
from .models import BacklinkRecord
from .scheduling import run_batch, utc_now
from .verifier import BacklinkVerifier

logger = logging.getLogger(__name__)

app = FastAPI(title="Backlink Checker", description="Verify that backlinks are still live")


class LinkCheckRequest(BaseModel):
    live_link: str
    target_url: str
    target_anchor: str

    @field_validator("live_link", "target_url", "target_anchor")
    @classmethod
    def require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


def get_settings() -> Settings:
    return Settings.from_env()


def get_verifier(settings: Settings = Depends(get_settings)) -> Iterator[BacklinkVerifier]:
    verifier = settings.build_verifier()
    try:
        yield verifier
    finally:
        verifier.fetcher.close()


@app.post("/api/test-link")
def check_link(
    payload: LinkCheckRequest, verifier: BacklinkVerifier = Depends(get_verifier)
) -> Dict[str, Any]:
    """Check one placement on demand without storing the outcome."""

    record = BacklinkRecord(
        live_link=payload.live_link,
        target_url=payload.target_url,
        target_anchor=payload.target_anchor,
    )
    return verifier.verify(record).as_dict()


def require_cron_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.cron_secret:
        raise HTTPException(status_code=403, detail="Cron secret not configured")
    if authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.post("/api/cron/check-links", dependencies=[Depends(require_cron_secret)])
def cron_check_links(
    settings: Settings = Depends(get_settings),
    verifier: BacklinkVerifier = Depends(get_verifier),
) -> Dict[str, Any]:
    """Recheck the stored placements that are due, for use by a scheduler."""

    conn = get_connection(settings.db_path)
    try:
        init_db(conn)
        records = settings.recheck_policy().select_due(
            list_backlinks(conn), limit=settings.batch_limit
        )
        logger.info("Found %d backlinks to check", len(records))
        summary = run_batch(
            records,
            verifier,
            on_result=lambda record, _result: save_check(conn, record),
            workers=settings.workers,
        )
    finally:
        conn.close()

    return {
        "success": True,
        "processed": summary.processed,
        "errors": summary.errors,
        "skipped": summary.skipped,
        "total_found": summary.total,
        "timestamp": utc_now().isoformat(),
    }


def main() -> None:
    """Run the FastAPI app using uvicorn."""

    import uvicorn

    uvicorn.run("backlink_checker.web:app", host="0.0.0.0", port=8000, reload=False)


__all__ = ["app", "main"]
