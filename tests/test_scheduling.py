import threading
from datetime import datetime, timedelta

import pytest

from backlink_checker.models import BacklinkRecord, CheckStatus, VerificationResult
from backlink_checker.scheduling import RecheckPolicy, next_retry_count, run_batch

NOW = datetime(2024, 5, 1, 12, 0, 0)


def _record(id, status=CheckStatus.PENDING, retry_count=0, last_checked=None):
    return BacklinkRecord(
        id=id,
        live_link=f"https://blog.example.org/{id}",
        target_url="https://example.com",
        target_anchor="My Site",
        status=status,
        retry_count=retry_count,
        last_checked=last_checked,
    )


class StubVerifier:
    def __init__(self, statuses=None, on_verify=None):
        self.statuses = statuses or {}
        self.on_verify = on_verify
        self.seen = []
        self._lock = threading.Lock()

    def verify(self, record):
        with self._lock:
            self.seen.append(record.id)
        if self.on_verify:
            self.on_verify(record)
        status = self.statuses.get(record.id, CheckStatus.LIVE)
        return VerificationResult(status=status, link_found=status == CheckStatus.LIVE)


def test_retry_count_increments_on_failure_and_resets_on_success():
    assert next_retry_count(2, CheckStatus.ERROR) == 3
    assert next_retry_count(0, CheckStatus.UNREACHABLE) == 1
    assert next_retry_count(3, CheckStatus.LIVE) == 0


def test_never_checked_records_are_always_due():
    assert RecheckPolicy().is_due(_record(1), NOW)


def test_failing_records_use_short_cooldown_below_retry_ceiling():
    policy = RecheckPolicy()
    failing = _record(1, CheckStatus.ERROR, retry_count=1, last_checked=NOW - timedelta(hours=3))
    recent = _record(2, CheckStatus.ERROR, retry_count=1, last_checked=NOW - timedelta(hours=1))

    assert policy.is_due(failing, NOW)
    assert not policy.is_due(recent, NOW)


def test_records_at_retry_ceiling_wait_for_regular_interval():
    policy = RecheckPolicy(max_retries=3)
    exhausted = _record(1, CheckStatus.UNREACHABLE, retry_count=3, last_checked=NOW - timedelta(hours=3))
    stale = _record(2, CheckStatus.UNREACHABLE, retry_count=3, last_checked=NOW - timedelta(hours=25))

    assert not policy.is_due(exhausted, NOW)
    assert policy.is_due(stale, NOW)


def test_healthy_records_are_due_daily():
    policy = RecheckPolicy()
    fresh = _record(1, CheckStatus.LIVE, last_checked=NOW - timedelta(hours=23))
    stale = _record(2, CheckStatus.LIVE, last_checked=NOW - timedelta(hours=24))

    assert not policy.is_due(fresh, NOW)
    assert policy.is_due(stale, NOW)


def test_select_due_orders_by_priority_and_applies_limit():
    records = [
        _record(1, CheckStatus.LIVE, last_checked=NOW - timedelta(days=2)),
        _record(2, CheckStatus.ERROR, retry_count=2, last_checked=NOW - timedelta(days=5)),
        _record(3),
        _record(4, CheckStatus.LIVE, last_checked=NOW - timedelta(days=3)),
        _record(5, CheckStatus.LIVE, last_checked=NOW - timedelta(hours=1)),
    ]
    policy = RecheckPolicy()

    assert [r.id for r in policy.select_due(records, now=NOW)] == [3, 4, 1, 2]
    assert [r.id for r in policy.select_due(records, now=NOW, limit=2)] == [3, 4]


def test_priority_key_orders_unchecked_then_fewest_failures():
    unchecked = _record(1)
    failing_old = _record(2, CheckStatus.ERROR, retry_count=1, last_checked=NOW - timedelta(days=2))
    healthy_recent = _record(3, CheckStatus.LIVE, last_checked=NOW - timedelta(hours=3))

    ordered = sorted([failing_old, healthy_recent, unchecked], key=RecheckPolicy.priority_key)

    assert [r.id for r in ordered] == [1, 3, 2]


def test_select_due_drops_records_that_cannot_be_checked():
    blank_anchor = _record(1)
    blank_anchor.target_anchor = "  "
    records = [blank_anchor, _record(2)]

    assert [r.id for r in RecheckPolicy().select_due(records, now=NOW)] == [2]


def test_select_due_force_all_ignores_schedule():
    records = [_record(1, CheckStatus.LIVE, last_checked=NOW - timedelta(minutes=5))]

    assert RecheckPolicy().select_due(records, now=NOW) == []
    assert len(RecheckPolicy().select_due(records, now=NOW, force_all=True)) == 1


def test_run_batch_updates_each_record_and_counts_errors():
    records = [_record(1, retry_count=0), _record(2, CheckStatus.ERROR, retry_count=2), _record(3)]
    verifier = StubVerifier({2: CheckStatus.ERROR, 3: CheckStatus.UNREACHABLE})
    saved = []

    summary = run_batch(records, verifier, lambda record, _: saved.append(record), clock=lambda: NOW)

    assert summary.total == 3
    assert summary.processed == 3
    assert summary.errors == 2
    assert summary.skipped == 0
    assert not summary.cancelled
    by_id = {record.id: record for record in saved}
    assert by_id[1].status == CheckStatus.LIVE and by_id[1].retry_count == 0
    assert by_id[2].retry_count == 3
    assert by_id[3].retry_count == 1
    assert all(record.last_checked == NOW for record in saved)


def test_run_batch_with_workers_processes_everything():
    records = [_record(i) for i in range(1, 11)]
    verifier = StubVerifier()
    saved = []
    caller = threading.get_ident()
    threads = set()

    def on_result(record, _):
        threads.add(threading.get_ident())
        saved.append(record.id)

    summary = run_batch(records, verifier, on_result, workers=4)

    assert summary.processed == 10
    assert sorted(saved) == list(range(1, 11))
    assert threads == {caller}


def test_cancel_event_skips_remaining_records():
    cancel = threading.Event()
    records = [_record(i) for i in range(1, 5)]
    verifier = StubVerifier(on_verify=lambda record: cancel.set())

    summary = run_batch(records, verifier, lambda *_: None, cancel_event=cancel)

    assert verifier.seen == [1]
    assert summary.processed == 1
    assert summary.skipped == 3
    assert summary.cancelled


def test_exhausted_time_budget_starts_nothing():
    records = [_record(1), _record(2)]
    verifier = StubVerifier()

    summary = run_batch(records, verifier, lambda *_: None, time_budget=0)

    assert verifier.seen == []
    assert summary.skipped == 2
    assert summary.cancelled


def test_result_handler_failure_aborts_batch():
    records = [_record(1), _record(2)]

    def on_result(record, _):
        raise RuntimeError("database is locked")

    with pytest.raises(RuntimeError):
        run_batch(records, StubVerifier(), on_result)


@pytest.mark.parametrize("workers", [1, 3])
def test_invalid_records_are_skipped_without_stopping_the_batch(workers):
    blank_anchor = _record(2)
    blank_anchor.target_anchor = ""
    records = [_record(1), blank_anchor, _record(3)]
    verifier = StubVerifier()
    saved = []

    summary = run_batch(records, verifier, lambda record, _: saved.append(record.id), workers=workers)

    assert sorted(saved) == [1, 3]
    assert sorted(verifier.seen) == [1, 3]
    assert summary.processed == 2
    assert summary.skipped == 1
    assert not summary.cancelled
