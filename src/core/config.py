"""Runtime configuration model for minerledger.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_AUDIT_CAP,
    DEFAULT_DATA_ROOT,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_RETENTION_DAYS,
)
from core.errors import LedgerConfigError


@dataclass(frozen=True)
class LedgerConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local directory backing the key-value store.
        retention_days: Intraday retention window used by compaction.
        audit_cap: Number of audit records compaction keeps.
        max_upload_bytes: Largest accepted upload file size.
        store_quota_bytes: Optional capacity limit for the key-value store.
        power_table_path: Optional YAML file overriding the power table.
    """

    data_root: Path
    retention_days: int
    audit_cap: int
    max_upload_bytes: int
    store_quota_bytes: int | None
    power_table_path: Path | None

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            LedgerConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("MINERLEDGER_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        quota_value = os.getenv("MINERLEDGER_STORE_QUOTA_BYTES")
        power_table_value = os.getenv("MINERLEDGER_POWER_TABLE")
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            retention_days=_parse_positive_int(
                "MINERLEDGER_RETENTION_DAYS",
                os.getenv("MINERLEDGER_RETENTION_DAYS", str(DEFAULT_RETENTION_DAYS)),
            ),
            audit_cap=_parse_positive_int(
                "MINERLEDGER_AUDIT_CAP",
                os.getenv("MINERLEDGER_AUDIT_CAP", str(DEFAULT_AUDIT_CAP)),
            ),
            max_upload_bytes=_parse_positive_int(
                "MINERLEDGER_MAX_UPLOAD_BYTES",
                os.getenv("MINERLEDGER_MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES)),
            ),
            store_quota_bytes=(
                _parse_positive_int("MINERLEDGER_STORE_QUOTA_BYTES", quota_value)
                if quota_value
                else None
            ),
            power_table_path=(
                Path(power_table_value).expanduser().resolve() if power_table_value else None
            ),
        )


def _parse_positive_int(variable_name: str, raw_value: str) -> int:
    """Parse a strictly positive integer environment value.

    Args:
        variable_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        LedgerConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise LedgerConfigError(
            f"Invalid {variable_name} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a numeric value."
        ) from error
    if value <= 0:
        raise LedgerConfigError(
            f"Invalid {variable_name} value: expected a positive integer, got {value}. "
            f"Set {variable_name} to a value greater than zero."
        )
    return value
