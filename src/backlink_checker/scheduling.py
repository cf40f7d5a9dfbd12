"""Recheck policy and the batch driver that runs verifications over a backlog."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .models import BacklinkRecord, CheckStatus, InvalidRecordError, VerificationResult, next_retry_count
from .verifier import BacklinkVerifier

logger = logging.getLogger(__name__)

MAX_WORKERS = 8

ResultCallback = Callable[[BacklinkRecord, VerificationResult], None]


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how check times are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_checkable(record: BacklinkRecord) -> bool:
    """Log and reject stored records that cannot be verified."""
    try:
        record.validate()
    except InvalidRecordError as exc:
        logger.warning("Skipping backlink %s: %s", record.id, exc)
        return False
    return True


@dataclass
class RecheckPolicy:
    """Decides when a record should be checked again.

    Failing records get a short cooldown while they are below ``max_retries``
    consecutive failures, then fall back to the regular interval so that dead
    pages are still watched for recovery without being hammered.
    """

    max_retries: int = 3
    retry_cooldown: timedelta = field(default_factory=lambda: timedelta(hours=2))
    recheck_interval: timedelta = field(default_factory=lambda: timedelta(days=1))

    def interval_for(self, record: BacklinkRecord) -> timedelta:
        if record.is_failing and record.retry_count < self.max_retries:
            return self.retry_cooldown
        return self.recheck_interval

    def is_due(self, record: BacklinkRecord, now: datetime) -> bool:
        if record.last_checked is None:
            return True
        return record.last_checked <= now - self.interval_for(record)

    @staticmethod
    def priority_key(record: BacklinkRecord) -> Tuple[int, int, datetime]:
        """Never-checked first, then fewest failures, then oldest check."""
        checked = record.last_checked
        return (
            0 if checked is None else 1,
            record.retry_count,
            checked if checked is not None else datetime.min,
        )

    def select_due(
        self,
        records: Iterable[BacklinkRecord],
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        force_all: bool = False,
    ) -> List[BacklinkRecord]:
        now = now or utc_now()
        selected = [
            r for r in records if (force_all or self.is_due(r, now)) and is_checkable(r)
        ]
        selected.sort(key=self.priority_key)
        if limit is not None:
            selected = selected[: max(limit, 0)]
        return selected


@dataclass
class BatchSummary:
    total: int
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    cancelled: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def run_batch(
    records: List[BacklinkRecord],
    verifier: BacklinkVerifier,
    on_result: ResultCallback,
    workers: int = 1,
    time_budget: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = utc_now,
) -> BatchSummary:
    """Verify ``records`` and hand each updated record to ``on_result``.

    Records are independent; a failed check never stops the batch. Before
    each fetch the cancel event and the time budget (seconds) are consulted,
    and records that were not started are counted as skipped, as are records
    that fail validation. ``on_result`` always runs on the calling thread; an
    exception from it aborts the batch.
    """
    summary = BatchSummary(total=len(records))
    stop_at = time.monotonic() + time_budget if time_budget is not None else None
    abort = threading.Event()
    stopped = threading.Event()
    runnable = [record for record in records if is_checkable(record)]
    summary.skipped = len(records) - len(runnable)

    def should_stop() -> bool:
        if abort.is_set():
            return True
        if (cancel_event is not None and cancel_event.is_set()) or (
            stop_at is not None and time.monotonic() >= stop_at
        ):
            stopped.set()
            return True
        return False

    def complete(record: BacklinkRecord, result: VerificationResult) -> None:
        on_result(record.with_result(result, clock()), result)
        summary.processed += 1
        if result.status in CheckStatus.FAILURES:
            summary.errors += 1

    def check(record: BacklinkRecord) -> Tuple[BacklinkRecord, Optional[VerificationResult]]:
        if should_stop():
            return record, None
        return record, verifier.verify(record)

    workers = max(1, min(workers, MAX_WORKERS))
    if workers == 1:
        for index, record in enumerate(runnable):
            if should_stop():
                summary.skipped += len(runnable) - index
                break
            complete(record, verifier.verify(record))
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(check, record) for record in runnable]
            try:
                for future in as_completed(futures):
                    record, result = future.result()
                    if result is None:
                        summary.skipped += 1
                    else:
                        complete(record, result)
            except BaseException:
                # Unstarted checks see the flag and return without fetching.
                abort.set()
                raise

    summary.cancelled = stopped.is_set()
    logger.info(
        "Batch finished: %d processed, %d errors, %d skipped of %d",
        summary.processed,
        summary.errors,
        summary.skipped,
        summary.total,
    )
    return summary


__all__ = [
    "BatchSummary",
    "RecheckPolicy",
    "is_checkable",
    "next_retry_count",
    "run_batch",
    "utc_now",
]
