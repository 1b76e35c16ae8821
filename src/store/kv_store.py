"""Byte-oriented key-value stores.

This module defines the blocking key-value contract the ledger
persists through, with a directory-backed implementation and an
in-memory implementation. Both support an optional capacity limit;
writes that would exceed it fail with ``LedgerStoreError``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from core.constants import KV_FILE_SUFFIX, STORAGE_KEY_PREFIX
from core.errors import LedgerStoreError


class KeyValueStore(Protocol):
    """Blocking key-value store consumed by the ledger."""

    def get(self, key: str) -> bytes | None:
        """Return stored bytes, or ``None`` when the key is absent."""

    def set(self, key: str, value: bytes) -> None:
        """Store bytes under a key, replacing any previous value."""

    def remove(self, key: str) -> None:
        """Delete a key; absent keys are ignored."""

    def approximate_size_bytes(self) -> int:
        """Return the approximate number of bytes held by the store."""


class FileKeyValueStore:
    """Directory-backed store writing one file per key."""

    def __init__(self, root: Path, quota_bytes: int | None = None) -> None:
        """Create store rooted at a directory.

        Args:
            root: Directory holding key files.
            quota_bytes: Optional capacity limit.

        Raises:
            LedgerStoreError: If the directory cannot be created.
        """
        self._root = root
        self._quota_bytes = quota_bytes
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise LedgerStoreError(
                f"Failed to create store directory {root}: {error}. "
                "Check MINERLEDGER_DATA_ROOT and directory permissions."
            ) from error

    def get(self, key: str) -> bytes | None:
        path = self._key_path(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as error:
            raise LedgerStoreError(
                f"Failed to read store key '{key}' at {path}: {error}."
            ) from error

    def set(self, key: str, value: bytes) -> None:
        path = self._key_path(key)
        _check_quota(
            self._quota_bytes,
            self.approximate_size_bytes(),
            self._entry_size(key),
            key,
            value,
        )
        temp_path = path.with_name(path.name + ".tmp")
        try:
            temp_path.write_bytes(value)
            os.replace(temp_path, path)
        except OSError as error:
            raise LedgerStoreError(
                f"Failed to write store key '{key}' at {path}: {error}. "
                "Check available disk space and write permissions."
            ) from error

    def remove(self, key: str) -> None:
        path = self._key_path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            raise LedgerStoreError(
                f"Failed to remove store key '{key}' at {path}: {error}."
            ) from error

    def approximate_size_bytes(self) -> int:
        total = 0
        for path in self._root.glob(f"*{KV_FILE_SUFFIX}"):
            total += path.stat().st_size + len(path.stem)
        return total

    def _entry_size(self, key: str) -> int:
        path = self._key_path(key)
        return path.stat().st_size + len(key) if path.exists() else 0

    def _key_path(self, key: str) -> Path:
        if not key.startswith(STORAGE_KEY_PREFIX) or "/" in key or "\\" in key:
            raise LedgerStoreError(
                f"Invalid store key '{key}': keys must start with '{STORAGE_KEY_PREFIX}' "
                "and contain no path separators."
            )
        return self._root / f"{key}{KV_FILE_SUFFIX}"


class MemoryKeyValueStore:
    """Process-local store, used for previews and tests."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, bytes] = {}
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> bytes | None:
        return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        current = self._items.get(key)
        existing_size = len(current) + len(key) if current is not None else 0
        _check_quota(self._quota_bytes, self.approximate_size_bytes(), existing_size, key, value)
        self._items[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def approximate_size_bytes(self) -> int:
        return sum(len(key) + len(value) for key, value in self._items.items())


def _check_quota(
    quota_bytes: int | None,
    current_size: int,
    replaced_size: int,
    key: str,
    value: bytes,
) -> None:
    """Fail when writing ``value`` under ``key`` would exceed the quota."""
    if quota_bytes is None:
        return
    projected = current_size - replaced_size + len(key) + len(value)
    if projected > quota_bytes:
        raise LedgerStoreError(
            f"Store quota exceeded writing '{key}': {projected} of {quota_bytes} bytes. "
            "Run compaction, export and clear data, or raise MINERLEDGER_STORE_QUOTA_BYTES."
        )
