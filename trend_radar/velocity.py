"""
Velocity calculator -- per-tag change in count since the previous snapshot.
"""

import logging
from dataclasses import replace
from typing import Optional

from trend_radar.models import Snapshot

logger = logging.getLogger(__name__)


def apply_velocity(current: Snapshot, previous: Optional[Snapshot]) -> Snapshot:
    """
    Return a copy of current with velocity filled in from previous.

    velocity = current.count - previous.count, looked up by exact tag over
    the previous surface+deep union. A tag absent from previous (or no
    previous snapshot at all) gets velocity 0: a debut is treated as
    baseline equal to its own count, not as growth from zero.
    """
    baseline = previous.counts_by_tag() if previous is not None else {}

    def _with_velocity(trend):
        prior = baseline.get(trend.tag)
        velocity = trend.count - prior if prior is not None else 0
        return replace(trend, velocity=velocity)

    result = replace(
        current,
        surface=[_with_velocity(t) for t in current.surface],
        deep=[_with_velocity(t) for t in current.deep],
    )

    if previous is None:
        logger.info("No previous snapshot -- all velocities start at 0")
    else:
        moved = sum(1 for t in result.all_trends() if t.velocity != 0)
        logger.info(
            f"Velocity vs snapshot {previous.generated_at}: {moved} tags moved"
        )

    return result
