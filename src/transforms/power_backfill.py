"""Power reference backfill and efficiency recalculation.

This module applies researched power ratings to snapshot miners whose
efficiency is unknown or whose power disagrees with the reference
table, recomputes efficiency from power and hashrate across the whole
snapshot, and propagates the corrected values into specs and history.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping

from core.logging_config import get_logger
from core.types import LedgerState, MinerHistory, MinerRecord, MinerSpec
from ingest.power_reference import lookup_power

_LOGGER = get_logger(__name__)


def apply_power_reference(
    state: LedgerState,
    power_table: Mapping[str, int],
) -> tuple[LedgerState, int]:
    """Correct power and efficiency of snapshot miners from a reference table.

    Args:
        state: Current ledger state.
        power_table: Name to watts table.

    Returns:
        Pair of next state and number of miners changed.
    """
    miners: list[MinerRecord] = []
    changed: dict[str, MinerRecord] = {}
    for miner in state.miners:
        watts = lookup_power(power_table, miner.name)
        if watts and (not miner.efficiency or miner.power_consumption != watts):
            corrected = replace(miner, power_consumption=watts, efficiency=watts / miner.hashrate)
            miners.append(corrected)
            changed[miner.name] = corrected
            continue
        miners.append(miner)
    if not changed:
        return state, 0
    _LOGGER.info("power_reference_applied", changed_count=len(changed))
    return _with_corrections(state, miners, changed), len(changed)


def recalculate_efficiency(
    state: LedgerState,
    power_table: Mapping[str, int],
) -> tuple[LedgerState, int]:
    """Recompute efficiency as power / hashrate for every snapshot miner.

    Table power takes precedence over the stored value. Miners without
    any known power keep their current efficiency.

    Args:
        state: Current ledger state.
        power_table: Name to watts table.

    Returns:
        Pair of next state and number of miners whose values changed.
    """
    miners: list[MinerRecord] = []
    changed: dict[str, MinerRecord] = {}
    for miner in state.miners:
        watts = lookup_power(power_table, miner.name) or miner.power_consumption
        if not watts or miner.hashrate <= 0:
            miners.append(miner)
            continue
        corrected = replace(miner, power_consumption=watts, efficiency=watts / miner.hashrate)
        miners.append(corrected)
        if corrected != miner:
            changed[miner.name] = corrected
    if not changed:
        return state, 0
    _LOGGER.info("efficiency_recalculated", changed_count=len(changed))
    return _with_corrections(state, miners, changed), len(changed)


def _with_corrections(
    state: LedgerState,
    miners: list[MinerRecord],
    changed: Mapping[str, MinerRecord],
) -> LedgerState:
    miner_specs = dict(state.miner_specs)
    price_history = dict(state.price_history)
    for name, miner in changed.items():
        spec = miner_specs.get(name, MinerSpec())
        miner_specs[name] = replace(
            spec,
            power_consumption=miner.power_consumption,
            efficiency=miner.efficiency,
        )
        if name in price_history:
            price_history[name] = _rewrite_history(price_history[name], miner)
    return replace(
        state,
        miners=tuple(miners),
        miner_specs=miner_specs,
        price_history=price_history,
    )


def _rewrite_history(history: MinerHistory, miner: MinerRecord) -> MinerHistory:
    def corrected(entries):
        return tuple(
            replace(
                entry,
                power_consumption=miner.power_consumption,
                efficiency=miner.efficiency,
            )
            for entry in entries
        )

    return MinerHistory(daily=corrected(history.daily), intraday=corrected(history.intraday))
