"""Audit-trail rollback.

This module restores the ledger maps from the snapshot embedded in an
audit record. The audit trail itself is left untouched, including
records newer than the rollback target.
"""

from __future__ import annotations

from dataclasses import replace

from core.errors import LedgerNotFoundError
from core.logging_config import get_logger
from core.types import AuditRecord, LedgerState

_LOGGER = get_logger(__name__)


def rollback(audit_id: str, state: LedgerState) -> LedgerState:
    """Restore state to what it was before the given upload.

    Args:
        audit_id: Audit record id to roll back to.
        state: Current ledger state.

    Returns:
        State whose maps equal the audit record snapshot.

    Raises:
        LedgerNotFoundError: If the record or its snapshot is missing.
    """
    record = find_audit_record(state, audit_id)
    if record is None or record.snapshot is None:
        raise LedgerNotFoundError(
            f"Cannot roll back to upload '{audit_id}': snapshot not found or invalid. "
            "List uploads to find a rollback target that is still retained."
        )
    snapshot = record.snapshot
    restored = replace(
        state,
        miners=tuple(snapshot.miners),
        price_history=dict(snapshot.price_history),
        known_miners=frozenset(snapshot.known_miners),
        miner_specs=dict(snapshot.miner_specs),
        max_prices=dict(snapshot.max_prices),
        previous_prices=dict(snapshot.previous_prices),
    )
    _LOGGER.info(
        "rollback_applied",
        audit_id=audit_id,
        file_name=record.file_name,
        upload_timestamp=record.timestamp.isoformat(),
        restored_miner_count=len(restored.miners),
    )
    return restored


def find_audit_record(state: LedgerState, audit_id: str) -> AuditRecord | None:
    """Return the audit record with the given id, if retained."""
    for record in state.upload_history:
        if record.audit_id == audit_id:
            return record
    return None
