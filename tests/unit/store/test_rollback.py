"""Unit tests for audit-trail rollback."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest
from structlog.testing import capture_logs

from core.errors import LedgerNotFoundError
from core.types import LedgerState
from ingest.ingest_engine import ingest
from store.rollback import rollback
from tests.ledger_factories import make_record

DAY = date(2024, 3, 1)


@pytest.mark.parametrize("strategy", ["replace", "merge", "append"])
def test_rollback_restores_state_before_upload(strategy: str) -> None:
    """Rolling back an upload should restore every map exactly."""
    seeded = ingest([make_record("A"), make_record("B")], "seed.csv", "merge", DAY, LedgerState())
    before = seeded.state
    batch = [make_record("A", price=700.0), make_record("C")]
    after = ingest(batch, "next.csv", strategy, DAY, before)

    restored = rollback(after.audit_record.audit_id, after.state)

    assert restored.snapshot() == before.snapshot()


def test_rollback_keeps_audit_trail() -> None:
    """Rollback should not remove audit records, newer ones included."""
    first = ingest([make_record("A")], "one.csv", "merge", DAY, LedgerState())
    second = ingest([make_record("B")], "two.csv", "merge", DAY, first.state)

    restored = rollback(first.audit_record.audit_id, second.state)

    assert restored.upload_history == second.state.upload_history


def test_rollback_raises_for_unknown_audit_id() -> None:
    """Unknown ids should raise not-found."""
    with pytest.raises(LedgerNotFoundError):
        rollback("missing", LedgerState())


def test_rollback_raises_when_snapshot_missing() -> None:
    """Records without a snapshot cannot be rolled back."""
    result = ingest([make_record("A")], "one.csv", "merge", DAY, LedgerState())
    stripped = replace(result.audit_record, snapshot=None)
    state = replace(result.state, upload_history=(stripped,))

    with pytest.raises(LedgerNotFoundError):
        rollback(stripped.audit_id, state)


def test_rollback_logs_applied_event() -> None:
    """Rollback should emit an event naming the audit id."""
    result = ingest([make_record("A")], "one.csv", "merge", DAY, LedgerState())

    with capture_logs() as captured:
        rollback(result.audit_record.audit_id, result.state)

    assert captured[0]["audit_id"] == result.audit_record.audit_id
