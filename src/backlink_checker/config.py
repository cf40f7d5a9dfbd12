"""Runtime settings loaded from the environment (and a local ``.env`` file)."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from .fetcher import DEFAULT_MAX_REDIRECTS, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, PageFetcher
from .scheduling import RecheckPolicy
from .verifier import BacklinkVerifier

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    db_path: Path = Path("data/backlinks.db")
    request_timeout: float = DEFAULT_TIMEOUT
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 3
    retry_cooldown_hours: float = 2
    recheck_interval_hours: float = 24
    batch_limit: int = 50
    workers: int = 1
    cron_secret: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            db_path=Path(os.getenv("BACKLINK_DB_PATH", "data/backlinks.db")),
            request_timeout=_env_float("BACKLINK_REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
            max_redirects=_env_int("BACKLINK_MAX_REDIRECTS", DEFAULT_MAX_REDIRECTS),
            user_agent=os.getenv("BACKLINK_USER_AGENT") or DEFAULT_USER_AGENT,
            max_retries=_env_int("BACKLINK_MAX_RETRIES", 3),
            retry_cooldown_hours=_env_float("BACKLINK_RETRY_COOLDOWN_HOURS", 2),
            recheck_interval_hours=_env_float("BACKLINK_RECHECK_INTERVAL_HOURS", 24),
            batch_limit=_env_int("BACKLINK_BATCH_LIMIT", 50),
            workers=_env_int("BACKLINK_WORKERS", 1),
            cron_secret=os.getenv("CRON_SECRET", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def recheck_policy(self) -> RecheckPolicy:
        return RecheckPolicy(
            max_retries=self.max_retries,
            retry_cooldown=timedelta(hours=self.retry_cooldown_hours),
            recheck_interval=timedelta(hours=self.recheck_interval_hours),
        )

    def build_fetcher(self) -> PageFetcher:
        return PageFetcher(
            timeout=self.request_timeout,
            max_redirects=self.max_redirects,
            user_agent=self.user_agent,
        )

    def build_verifier(self) -> BacklinkVerifier:
        return BacklinkVerifier(fetcher=self.build_fetcher())


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once; later calls only adjust the level."""
    numeric = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))


__all__ = ["Settings", "configure_logging"]
