"""Ledger state persistence.

This module maps the ledger state onto logical keys of a byte-oriented
key-value store, gates the one-time legacy history migration, and
owns the full-reset operation.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable

from core.constants import (
    ALL_STORAGE_KEYS,
    STORAGE_KEY_KNOWN_MINERS,
    STORAGE_KEY_LAST_SAVED,
    STORAGE_KEY_MAX_PRICES,
    STORAGE_KEY_MIGRATION_DONE,
    STORAGE_KEY_MINER_SPECS,
    STORAGE_KEY_MINERS,
    STORAGE_KEY_PREVIOUS_PRICES,
    STORAGE_KEY_PRICE_HISTORY,
    STORAGE_KEY_UPLOAD_HISTORY,
    STORAGE_KEY_VERSION,
    STORAGE_SCHEMA_VERSION,
)
from core.errors import LedgerStoreError
from core.logging_config import get_logger
from core.timestamps import format_instant, parse_instant
from core.types import LedgerState
from store.kv_store import KeyValueStore
from store.state_codec import (
    audit_record_from_payload,
    audit_record_to_payload,
    decode_json,
    encode_json,
    miner_from_payload,
    miner_to_payload,
    price_history_from_payload,
    price_history_to_payload,
    prices_from_payload,
    specs_from_payload,
    specs_to_payload,
)
from transforms.legacy_migration import migrate_legacy

_LOGGER = get_logger(__name__)


class LedgerStore:
    """Key-value backed persistence for the ledger state."""

    def __init__(self, kv_store: KeyValueStore) -> None:
        """Create ledger store over a key-value store.

        Args:
            kv_store: Byte-oriented key-value store.
        """
        self._kv = kv_store

    def load_state(self) -> LedgerState:
        """Load the persisted ledger state, empty when nothing is stored.

        Returns:
            Loaded state.

        Raises:
            LedgerStoreError: If a stored payload is unreadable.
        """
        stored_version = self.stored_version()
        if stored_version and stored_version != STORAGE_SCHEMA_VERSION:
            _LOGGER.warning(
                "storage_version_mismatch",
                stored_version=stored_version,
                current_version=STORAGE_SCHEMA_VERSION,
            )
        try:
            return LedgerState(
                miners=tuple(
                    miner_from_payload(item) for item in self._read(STORAGE_KEY_MINERS, [])
                ),
                price_history=price_history_from_payload(
                    self._read(STORAGE_KEY_PRICE_HISTORY, {})
                ),
                known_miners=frozenset(
                    str(name) for name in self._read(STORAGE_KEY_KNOWN_MINERS, [])
                ),
                miner_specs=specs_from_payload(self._read(STORAGE_KEY_MINER_SPECS, {})),
                max_prices=prices_from_payload(self._read(STORAGE_KEY_MAX_PRICES, {})),
                previous_prices=prices_from_payload(
                    self._read(STORAGE_KEY_PREVIOUS_PRICES, {})
                ),
                upload_history=tuple(
                    audit_record_from_payload(item)
                    for item in self._read(STORAGE_KEY_UPLOAD_HISTORY, [])
                ),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as error:
            raise LedgerStoreError(
                f"Failed to load ledger state: malformed stored payload ({error}). "
                "Restore from an export or clear the ledger."
            ) from error

    def save_state(self, state: LedgerState) -> None:
        """Persist every ledger key.

        Args:
            state: State to persist.

        Raises:
            LedgerStoreError: If any key fails to write.
        """
        writes: list[tuple[str, Callable[[], object]]] = [
            (STORAGE_KEY_MINERS, lambda: [miner_to_payload(miner) for miner in state.miners]),
            (STORAGE_KEY_PRICE_HISTORY, lambda: price_history_to_payload(state.price_history)),
            (STORAGE_KEY_KNOWN_MINERS, lambda: sorted(state.known_miners)),
            (STORAGE_KEY_MINER_SPECS, lambda: specs_to_payload(state.miner_specs)),
            (
                STORAGE_KEY_UPLOAD_HISTORY,
                lambda: [audit_record_to_payload(record) for record in state.upload_history],
            ),
            (STORAGE_KEY_MAX_PRICES, lambda: dict(state.max_prices)),
            (STORAGE_KEY_PREVIOUS_PRICES, lambda: dict(state.previous_prices)),
            (STORAGE_KEY_VERSION, lambda: STORAGE_SCHEMA_VERSION),
        ]
        for key, build_payload in writes:
            try:
                self._kv.set(key, encode_json(build_payload()))
            except LedgerStoreError as error:
                _LOGGER.error("state_save_failed", key=key, error=str(error))
                raise
        saved_at = datetime.now(timezone.utc)
        self._kv.set(STORAGE_KEY_LAST_SAVED, encode_json(format_instant(saved_at)))
        _LOGGER.info(
            "state_saved",
            miner_count=len(state.miners),
            history_count=len(state.price_history),
            upload_count=len(state.upload_history),
            size_bytes=self._kv.approximate_size_bytes(),
        )

    def migration_done(self) -> bool:
        """Return whether the legacy history migration has completed."""
        return bool(self._read(STORAGE_KEY_MIGRATION_DONE, False))

    def run_legacy_migration(self, today: date | None = None) -> bool:
        """Migrate a flat legacy history payload once.

        Args:
            today: Date for legacy entries lacking one; today when omitted.

        Returns:
            ``True`` when stored history was rewritten.

        Raises:
            LedgerStoreError: If reading or writing the store fails.
        """
        if self.migration_done():
            return False
        stored_history = self._read(STORAGE_KEY_PRICE_HISTORY, {})
        if not isinstance(stored_history, dict):
            raise LedgerStoreError(
                "Failed to migrate price history: stored value is not an object. "
                "Restore from an export or clear the ledger."
            )
        migrated = migrate_legacy(stored_history, today=today)
        if migrated is not None:
            self._kv.set(STORAGE_KEY_PRICE_HISTORY, encode_json(migrated))
        self._kv.set(STORAGE_KEY_MIGRATION_DONE, encode_json(True))
        return migrated is not None

    def clear_all(self) -> None:
        """Remove every ledger key, including the migration flag.

        Raises:
            LedgerStoreError: If a key cannot be removed.
        """
        for key in ALL_STORAGE_KEYS:
            self._kv.remove(key)
        self._kv.set(STORAGE_KEY_VERSION, encode_json(STORAGE_SCHEMA_VERSION))
        _LOGGER.info("ledger_cleared")

    def stored_version(self) -> str | None:
        """Return the schema version recorded in the store."""
        version = self._read(STORAGE_KEY_VERSION, None)
        return str(version) if version else None

    def last_saved(self) -> datetime | None:
        """Return the instant of the last successful save."""
        value = self._read(STORAGE_KEY_LAST_SAVED, None)
        return parse_instant(value) if value else None

    def size_bytes(self) -> int:
        """Return the approximate size of the backing store."""
        return self._kv.approximate_size_bytes()

    def _read(self, key: str, default: Any) -> Any:
        raw = self._kv.get(key)
        if raw is None:
            return default
        return decode_json(raw, key)
