"""Derived price and efficiency metrics.

This module computes per-miner price movement from the max-price and
previous-price maps, and aggregate statistics over the snapshot.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from core.constants import EFFICIENCY_BUCKETS, EFFICIENT_THRESHOLD_W_PER_TH
from core.types import EfficiencyBucket, MinerRecord, PriceChanges, SnapshotStats


def calculate_price_changes(
    miner: MinerRecord,
    max_prices: Mapping[str, float],
    previous_prices: Mapping[str, float],
) -> PriceChanges:
    """Compute percent distance from max price and from the previous price.

    Args:
        miner: Snapshot miner.
        max_prices: Highest ingested price per name.
        previous_prices: Price overwritten by the latest update per name.

    Returns:
        Price changes rounded to one decimal.
    """
    current_price = miner.price
    max_price = max_prices.get(miner.name) or current_price
    change_from_max = (current_price - max_price) / max_price * 100 if max_price > 0 else 0.0
    previous_price = previous_prices.get(miner.name)
    change_from_previous: float | None = None
    if previous_price and previous_price != current_price:
        change_from_previous = round((current_price - previous_price) / previous_price * 100, 1)
    return PriceChanges(
        change_from_max=round(change_from_max, 1),
        change_from_previous=change_from_previous,
    )


def summarize_snapshot(miners: Sequence[MinerRecord]) -> SnapshotStats:
    """Aggregate counts, averages, and the efficiency distribution."""
    rated = [miner.efficiency for miner in miners if has_efficiency(miner)]
    total = len(miners)
    return SnapshotStats(
        total_miners=total,
        efficient_miners=sum(1 for value in rated if value <= EFFICIENT_THRESHOLD_W_PER_TH),
        without_efficiency=total - len(rated),
        avg_price=round(sum(miner.price for miner in miners) / (total or 1), 2),
        avg_hashrate=round(sum(miner.hashrate for miner in miners) / (total or 1), 2),
        avg_efficiency=round(sum(rated) / (len(rated) or 1), 2),
        efficiency_distribution=efficiency_distribution(rated),
    )


def efficiency_distribution(efficiencies: Sequence[float]) -> tuple[EfficiencyBucket, ...]:
    """Count efficiencies per bucket, omitting empty buckets."""
    counts = [0] * len(EFFICIENCY_BUCKETS)
    for value in efficiencies:
        for index, (_, upper_bound) in enumerate(EFFICIENCY_BUCKETS):
            if value < upper_bound:
                counts[index] += 1
                break
    return tuple(
        EfficiencyBucket(label=label, count=count)
        for (label, _), count in zip(EFFICIENCY_BUCKETS, counts)
        if count > 0
    )


def miners_without_efficiency(miners: Sequence[MinerRecord]) -> list[MinerRecord]:
    """Return snapshot miners that lack a usable efficiency rating."""
    return [miner for miner in miners if not has_efficiency(miner)]


def has_efficiency(miner: MinerRecord) -> bool:
    """Return whether a miner carries a positive efficiency value."""
    efficiency = miner.efficiency
    return efficiency is not None and efficiency == efficiency and efficiency > 0
