"""
Data contracts shared by scrapers, the aggregator and the snapshot store.

Snapshots are immutable. Serialized form is the public read contract:

    {
        "generated_at": "2026-10-17T12:00:00+00:00",
        "surface": [{"tag": "#AI", "count": 100, "velocity": 30}, ...],
        "deep":    [{"tag": "#LORA", "count": 12, "velocity": 0}, ...],
    }
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from trend_radar.normalizer import is_canonical

SURFACE_SIZE = 10
DEEP_SIZE = 10


class SnapshotFormatError(ValueError):
    """Raised when a persisted document does not match the Snapshot shape."""
    pass


@dataclass(frozen=True)
class RawSignal:
    """One (tag, weight, source) record produced by a scraper."""
    tag: str
    weight: int
    source: str                         # "google_trends", "trends24", ...


@dataclass(frozen=True)
class AggregatedTrend:
    tag: str
    count: int
    velocity: int = 0

    def to_dict(self) -> Dict:
        return {"tag": self.tag, "count": self.count, "velocity": self.velocity}


@dataclass(frozen=True)
class Snapshot:
    """One ingestion cycle's ranked result set."""
    generated_at: str
    surface: List[AggregatedTrend] = field(default_factory=list)
    deep: List[AggregatedTrend] = field(default_factory=list)

    def all_trends(self) -> List[AggregatedTrend]:
        return list(self.surface) + list(self.deep)

    def counts_by_tag(self) -> Dict[str, int]:
        """Tag -> count across surface and deep."""
        return {t.tag: t.count for t in self.all_trends()}

    def generated_at_dt(self) -> Optional[datetime]:
        try:
            return parse_ts(self.generated_at)
        except ValueError:
            return None

    def to_dict(self) -> Dict:
        return {
            "generated_at": self.generated_at,
            "surface": [t.to_dict() for t in self.surface],
            "deep": [t.to_dict() for t in self.deep],
        }

    @classmethod
    def from_dict(cls, data) -> "Snapshot":
        """
        Build a Snapshot from its serialized form, enforcing every invariant.

        Raises:
            SnapshotFormatError: If the document is malformed in any way.
        """
        if not isinstance(data, dict):
            raise SnapshotFormatError("Snapshot document must be an object")

        generated_at = data.get("generated_at")
        if not isinstance(generated_at, str) or not generated_at:
            raise SnapshotFormatError("Snapshot is missing generated_at")
        try:
            parse_ts(generated_at)
        except ValueError as e:
            raise SnapshotFormatError(f"Bad generated_at {generated_at!r}") from e

        surface = _parse_side(data.get("surface"), "surface", SURFACE_SIZE)
        deep = _parse_side(data.get("deep"), "deep", DEEP_SIZE)

        tags = [t.tag for t in surface + deep]
        if len(tags) != len(set(tags)):
            raise SnapshotFormatError("Snapshot has duplicate tags across surface/deep")

        if surface and deep and surface[-1].count < deep[0].count:
            raise SnapshotFormatError("Deep trend outranks a surface trend")

        return cls(generated_at=generated_at, surface=surface, deep=deep)


def _parse_side(items, name: str, limit: int) -> List[AggregatedTrend]:
    if not isinstance(items, list):
        raise SnapshotFormatError(f"Snapshot '{name}' must be a list")
    if len(items) > limit:
        raise SnapshotFormatError(f"Snapshot '{name}' has {len(items)} > {limit} items")

    trends = []
    for item in items:
        if not isinstance(item, dict):
            raise SnapshotFormatError(f"Snapshot '{name}' item is not an object")
        tag = item.get("tag")
        count = item.get("count")
        velocity = item.get("velocity", 0)
        if not is_canonical(tag):
            raise SnapshotFormatError(f"Snapshot '{name}' has invalid tag {tag!r}")
        if not _is_int(count) or count < 0:
            raise SnapshotFormatError(f"Snapshot '{name}' tag {tag} has bad count {count!r}")
        if not _is_int(velocity):
            raise SnapshotFormatError(
                f"Snapshot '{name}' tag {tag} has bad velocity {velocity!r}"
            )
        trends.append(AggregatedTrend(tag=tag, count=count, velocity=velocity))

    counts = [t.count for t in trends]
    if counts != sorted(counts, reverse=True):
        raise SnapshotFormatError(f"Snapshot '{name}' is not sorted by count")

    return trends


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_ts(ts_str: str) -> datetime:
    """Parse an ISO 8601 timestamp string to a UTC datetime."""
    dt = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
