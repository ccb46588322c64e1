from __future__ import annotations

import pytest

from tutoring_ledger.common import retry
from tutoring_ledger.common.retry import configure_retry, retry_transient
from tutoring_ledger.core.exceptions import SlotConflict, TransientStorageFailure


@pytest.fixture(autouse=True)
def default_backoff(monkeypatch):
    monkeypatch.setattr(retry, "_default_backoff", 0.2)


def _capture_sleeps(monkeypatch, op):
    calls = []
    monkeypatch.setattr(op.retry, "sleep", calls.append)
    return calls


def _flaky(failures, exc=TransientStorageFailure):
    state = {"calls": 0}

    @retry_transient()
    def op():
        state["calls"] += 1
        if state["calls"] <= failures:
            raise exc("lock wait timeout")
        return "ok"

    return op, state


def test_one_transient_failure_is_retried(monkeypatch):
    op, state = _flaky(1)
    sleeps = _capture_sleeps(monkeypatch, op)
    assert op() == "ok"
    assert state["calls"] == 2
    assert sleeps == [0.2]


def test_persistent_failure_surfaces_after_one_retry(monkeypatch):
    op, state = _flaky(5)
    _capture_sleeps(monkeypatch, op)
    with pytest.raises(TransientStorageFailure):
        op()
    assert state["calls"] == 2


def test_other_domain_errors_are_not_retried(monkeypatch):
    op, state = _flaky(1, exc=SlotConflict)
    sleeps = _capture_sleeps(monkeypatch, op)
    with pytest.raises(SlotConflict):
        op()
    assert state["calls"] == 1
    assert sleeps == []


def test_backoff_doubles(monkeypatch):
    calls = {"n": 0}

    @retry_transient(attempts=3, backoff=0.5)
    def op():
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientStorageFailure("deadlock")
        return calls["n"]

    sleeps = _capture_sleeps(monkeypatch, op)
    assert op() == 3
    assert sleeps == [0.5, 1.0]


def test_configured_default_backoff(monkeypatch):
    op, _ = _flaky(1)
    sleeps = _capture_sleeps(monkeypatch, op)
    configure_retry(backoff=0.0)
    op()
    assert sleeps == [0.0]

    with pytest.raises(ValueError):
        configure_retry(backoff=-1)


def test_retry_is_logged(monkeypatch, caplog):
    op, _ = _flaky(1)
    _capture_sleeps(monkeypatch, op)
    with caplog.at_level("WARNING", logger="tutoring_ledger.common.retry"):
        op()
    assert any("Retrying" in r.getMessage() for r in caplog.records)
