"""
Aggregator -- merges raw signals from every source into one ranked snapshot.

Classification is by rank alone: ranks 1-10 are surface trends, 11-20 are
deep trends, anything beyond rank 20 is dropped for the cycle.
"""

import logging
from typing import Iterable, Optional

from trend_radar.models import (
    AggregatedTrend, RawSignal, Snapshot, SURFACE_SIZE, DEEP_SIZE, utc_now_iso,
)
from trend_radar.normalizer import normalize_tag

logger = logging.getLogger(__name__)


def aggregate(signals: Iterable[RawSignal],
              generated_at: Optional[str] = None) -> Snapshot:
    """
    Group signals by normalized tag, sum weights, rank and split.

    Ties in count keep first-seen order. Velocity is left at 0; see
    velocity.apply_velocity.
    """
    totals = {}  # tag -> count, insertion order == first-seen order
    rejected = 0

    for signal in signals:
        tag = normalize_tag(signal.tag)
        if tag is None:
            rejected += 1
            continue
        totals[tag] = totals.get(tag, 0) + max(int(signal.weight), 0)

    if rejected:
        logger.debug(f"Dropped {rejected} signals with no usable tag")

    # sorted() is stable, so equal counts stay in first-seen order
    ranked = sorted(totals.items(), key=lambda item: -item[1])

    surface = [AggregatedTrend(tag=t, count=c) for t, c in ranked[:SURFACE_SIZE]]
    deep = [
        AggregatedTrend(tag=t, count=c)
        for t, c in ranked[SURFACE_SIZE:SURFACE_SIZE + DEEP_SIZE]
    ]

    logger.info(
        f"Aggregated {len(totals)} unique tags: "
        f"{len(surface)} surface, {len(deep)} deep"
    )

    return Snapshot(
        generated_at=generated_at or utc_now_iso(),
        surface=surface,
        deep=deep,
    )
