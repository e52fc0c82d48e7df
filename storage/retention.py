"""
Retention Sweeper — bounded snapshot history in the primary store.

Keeps the "latest" pointer plus the N most recent history documents and
deletes everything else under the trends prefix. Best-effort: a failed
delete is logged and the sweep moves on.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from storage import SnapshotBackend, StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    kept: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class RetentionSweeper:
    """Deletes history documents beyond a retention count."""

    def __init__(self, backend: SnapshotBackend, prefix: str, latest_key: str):
        self.backend = backend
        self.prefix = prefix
        self.latest_key = latest_key

    def sweep(self, keep_count: int = 24) -> SweepReport:
        """
        Delete all but the newest keep_count history documents.

        Args:
            keep_count: History entries to retain, not counting the latest pointer.
        """
        if keep_count < 0:
            raise ValueError(f"keep_count must be >= 0, got {keep_count}")

        report = SweepReport()

        try:
            objects = self.backend.list(self.prefix)
        except StoreUnavailable as e:
            logger.warning(f"Retention sweep skipped, cannot list snapshots: {e}")
            return report

        if any(o.key == self.latest_key for o in objects):
            report.kept.append(self.latest_key)

        # Newest first; the key embeds the timestamp, so it breaks upload-time ties
        history = sorted(
            (o for o in objects if o.key != self.latest_key),
            key=lambda o: (o.uploaded_at, o.key),
            reverse=True,
        )

        report.kept.extend(o.key for o in history[:keep_count])

        for obj in history[keep_count:]:
            try:
                self.backend.delete(obj)
                report.deleted.append(obj.key)
            except StoreUnavailable as e:
                logger.error(f"Failed to delete old snapshot {obj.key}: {e}")
                report.failed.append(obj.key)

        logger.info(
            f"Cleaned up old trend data: kept {len(report.kept)}, "
            f"deleted {len(report.deleted)}, failed {len(report.failed)}"
        )
        return report
