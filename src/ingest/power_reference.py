"""Static power reference table.

This module maps known miner names to rated power draw in watts.
The normalizer consults it only when an upload row omits power.
An operator YAML file can extend or override the built-in entries.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from core.errors import LedgerConfigError, LedgerDependencyError

BUILTIN_POWER_TABLE: Mapping[str, int] = {
    # Antminer S21, S23 and T21
    "Antminer S21e XP Hyd 3U - 860 TH/s": 11180,
    "Antminer S23 Hyd - 580 TH/s": 5510,
    "Antminer S23 Hyd 3U - 1160 TH/s": 11020,
    "Antminer S19 XP Hyd - 512 TH/s": 10600,
    "Antminer S21 XP+ Hyd - 500 TH/s": 5500,
    "Antminer S19XP Hyd（Mix） - 473TH/s": 5676,
    "Antminer S19XP Hyd - 473TH/s": 5676,
    "Antminer S21 XP Hyd - 473 TH/s": 5676,
    "Antminer S21XP Hydro - 470 TH/s": 5676,
    "Antminer S21 Hyd - 395 TH/s": 6320,
    "Antminer S21+ Hydro - 395 TH/s": 6320,
    "Antminer S21+ Hydro - 358 TH/s": 5728,
    "Antminer S21 Hyd - 358 TH/s": 5728,
    "Antminer S21+ Hydro - 338 TH/s": 5574,
    "Antminer S21 Hydro - 335 TH/s": 5360,
    "Antminer S21 Hydro - 319 TH/s": 5104,
    "Antminer S21 Hydro - 302 TH/s": 4832,
    "Antminer S19XP+ Hyd - 293 TH/s": 5301,
    "Bitmain Antminer S21e Hyd - 288 TH/s": 4896,
    "Antminer S19 XP+ Hyd - 279 TH/s": 5301,
    "Antminer S21XP - 270 TH/s": 3645,
    "Antminer S21xp（Mix） - 270 TH/s": 3645,
    "Antminer S19 XP Hyd - 257 TH/s": 5345,
    "Antminer S19XP Hyd - 246 TH/s": 5346,
    "Antminer T21 - 233 TH/s": 3610,
    "Antminer S21+ - 235 TH/s": 3877,
    "Antminer S21 Pro（Mix） - 234 TH/s": 3510,
    "Antminer S21 Pro - 234 TH/s": 3510,
    "Antminer S21 Pro - 245 TH/s": 3675,
    "Antminer S21+ - 225 TH/s": 3712,
    "Antminer S21+ - 216 TH/s": 3564,
    "Antminer S21 Pro - 220 TH/s": 3300,
    "Antminer S21 - 200 TH/s": 3500,
    "Antminer S21 - 188 TH/s": 3290,
    "Antminer T21 - 190 TH/s": 3610,
    "Antminer T21 - 186 TH/s": 3534,
    "Antminer T21 - 180 TH/s": 3420,
    "Antminer S21 - 20 TH/s - shared": 350,
    # Antminer S19
    "Antminer S19pro+ hyd - 198 TH/s": 5445,
    "Antminer S19pro hyd - 184 TH/s": 5060,
    "Antminer S19pro+ hyd - 191 TH/s": 5252,
    "Antminer S19 Pro+ Hyd - 177 TH/s": 5221,
    "Antminer S19j XP - 151 TH/s": 3247,
    "Antminer S19 XP - 134 TH/s": 2881,
    "Antminer S19 XP - 141 TH/s": 3010,
    "Antminer S19jpro+ - 120 TH/s": 3300,
    "Antminer S19J PRO+ - 117 TH/s": 3300,
    "Antminer S19 kpro - 115 TH/s": 2645,
    "Antminer S19 kpro - 110 TH/s": 2420,
    "BITMAIN ANTMINER S19jpro - 110 TH/s": 3250,
    "Antminer S19pro - 110 TH/s": 3250,
    "Antminer S19pro - 104 TH/s": 3068,
    "Antminer S19pro - 100 TH/s": 2950,
    "Antminer S19 j pro - 104 TH/s": 3068,
    "Antminer S19J PRO - 96 TH/s": 2832,
    "BITMAIN ANTMINER S19K Pro - 95 TH/s": 2760,
    "Antminer S19 - 95 TH/s": 3250,
    "Antminer S19 - 90 TH/s": 3420,
    "Antminer S19 - 86 TH/s": 3100,
    "Antminer S19 - 82 TH/s": 2950,
    "Antminer S19 - 78 TH/s": 2808,
    # Whatsminer
    "Whatsminer M63S++ - 478 TH/s": 10000,
    "Whatsminer M66S++ - 356 TH/s": 5514,
    "Whatsminer M66S+ - 318 TH/s": 5406,
    "Whatsminer M66S - 298 TH/s": 5364,
    "Whatsminer M66 - 280 TH/s": 5492,
    "Whatsminer M63 - 334 TH/s": 6680,
    "Whatsminer M63S - 390 TH/s": 7800,
    "Whatsminer M63s - 406 TH/s": 7308,
    "Whatsminer M63 - 360 TH/s": 7200,
    "Whatsminer M66s - 310 TH/s": 5580,
    "Whatsminer M61 - 208 TH/s": 7072,
    "Whatsminer M60S（MIX） - 178 TH/s": 3204,
    "Whatsminer M60S++ - 220 TH/s": 3410,
    "Whatsminer M60S+ - 190 TH/s": 3230,
    "Whatsminer M60s - 184 TH/s": 3404,
    "Whatsminer M60 - 170 TH/s": 3383,
    "WHATSMINER M50S+ - 138 TH/s": 3312,
    "Whatsminer M50S+ - 138 TH/s": 3312,
    "WHATSMINER M50 - 124 TH/s": 3224,
    "Whatsminer M50 - 124 TH/s": 3224,
    "WHATSMINER M30S++ - 96 TH/s": 3456,
    "Whatsminer M30S++ - 96 TH/s": 3456,
    "WHATSMINER M30S++ - 90 TH/s": 3456,
    "Whatsminer M30S++ - 90 TH/s": 3456,
    "WHATSMINER M30S++ - 85 TH/s": 3456,
    "Whatsminer M30S++ - 85 TH/s": 3456,
    "Whatsminer M50S - 134 TH/s": 3484,
    "Whatsminer M50S - 132 TH/s": 3432,
    "Whatsminer M50S - 128 TH/s": 3328,
    "WHATSMINER M50 - 118 TH/s": 3304,
    "Whatsminer M50s++ - 160 TH/s": 3520,
    "Whatsminer M53s - 260 TH/s": 6760,
    "Whatsminer M53 - 230 TH/s": 6670,
    "WHATSMINER M30S+ - 100 TH/s": 3400,
    "WHATSMINER M30S++ - 112 TH/s": 3472,
    # Avalon
    "Avalon A1566I - 249 TH/s": 4500,
    "Avalon A1566 - 203 TH/s": 3755,
    "Avalon A1566 - 200 TH/s": 3700,
    "Avalon A1566 - 197 TH/s": 3649,
    "Avalon A1566 - 194 TH/s": 3588,
    "Avalon A1566 - 191 TH/s": 3534,
    "Avalon A1566 - 185 TH/s": 3420,
    "Avalon A1566 - 188 TH/s": 3476,
    "Avalon A1566 - 182 TH/s": 3364,
    "Avalon A15XP-206T - 206 TH/s": 3667,
    "Avalon A15 Pro - 218 TH/s": 3662,
    "Avalon A15XP - 206 TH/s": 3667,
    "Avalon A15 - 194 TH/s": 3647,
    "Avalon A1466 - 150 TH/s": 3230,
    "Avalon A1366 - 130 TH/s": 3250,
    "Avalon A1366I - 122 TH/s": 3570,
    "Avalon A1346 - 107 TH/s": 3300,
    "Avalon A1346 - 110 TH/s": 3300,
    "Avalon A1246 - 85 TH/s": 3420,
    "Avalon Mini 3 - 37.5 TH/s": 800,
    "Avalon Nano 3S - 6 TH/s": 140,
    "Avalon Nano 3 - 4 TH/s": 140,
    # SealMiner
    "SealMiner A2 - 234 TH/s": 3861,
    "SealMiner A2 - 232 TH/s": 3828,
    "SealMiner A2 - 230 TH/s": 3795,
    "SealMiner A2 - 228 TH/s": 3762,
    "SealMiner A2 - 226 TH/s": 3729,
    "SealMiner A2 - 224 TH/s": 3696,
    "SealMiner A2 - 222 TH/s": 3663,
    "SealMiner A2 - 220 TH/s": 3630,
    "Bitdeer SealMiner A2 - 226 TH/s": 3729,
    "Bitdeer SealMiner A2 Hyd - 446 TH/s": 7359,
    "Bitdeer SealMiner A2 Pro Air - 255 TH/s": 3790,
    "Bitdeer SealMiner A2 Pro Hyd - 500 TH/s": 7450,
    # Home and lottery miners
    "Bitaxe Gamma 601 - Lucky miner - 1.2 TH/s": 17,
    "Bitaxe Gamma 601": 17,
    "Bitaxe Touch": 22,
    "Bitaxe Supra Hex 701": 90,
    "Lucky Miner LV07": 25,
    "Lucky Miner LV08": 120,
    "NerdMiner NerdQaxe++": 72,
}


def load_power_table(override_path: Path | None = None) -> dict[str, int]:
    """Return the power table, merged with an optional YAML override.

    Args:
        override_path: Optional YAML file mapping miner names to watts.

    Returns:
        Name to watts mapping.

    Raises:
        LedgerDependencyError: If PyYAML is unavailable for an override.
        LedgerConfigError: If the override file is missing or malformed.
    """
    table = dict(BUILTIN_POWER_TABLE)
    if override_path is None:
        return table
    table.update(_load_override(override_path))
    return table


def lookup_power(table: Mapping[str, int], name: str) -> int | None:
    """Find rated power by exact name, then by whitespace-normalized name."""
    if name in table:
        return table[name]
    normalized_name = normalize_miner_name(name)
    if normalized_name in table:
        return table[normalized_name]
    for table_name, watts in table.items():
        if normalize_miner_name(table_name) == normalized_name:
            return watts
    return None


def normalize_miner_name(name: str) -> str:
    """Collapse whitespace runs and trim a miner name."""
    return " ".join(name.split())


def _load_override(override_path: Path) -> dict[str, int]:
    try:
        import yaml
    except ImportError as error:
        raise LedgerDependencyError(
            "Power table overrides require PyYAML, but it is not installed. "
            "Install pyyaml or unset MINERLEDGER_POWER_TABLE."
        ) from error
    if not override_path.exists():
        raise LedgerConfigError(
            f"Power table override not found at {override_path}. "
            "Fix MINERLEDGER_POWER_TABLE or create the file."
        )
    try:
        payload = yaml.safe_load(override_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise LedgerConfigError(
            f"Failed to parse power table override at {override_path}: {error}. "
            "Fix the YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise LedgerConfigError(
            f"Invalid power table override at {override_path}: "
            "expected a mapping of miner name to watts."
        )
    overrides: dict[str, int] = {}
    for name, watts in payload.items():
        if isinstance(watts, bool) or not isinstance(watts, (int, float)) or watts <= 0:
            raise LedgerConfigError(
                f"Invalid power value for '{name}' in {override_path}: "
                f"expected positive number of watts, got {watts!r}."
            )
        overrides[str(name)] = int(watts)
    return overrides
