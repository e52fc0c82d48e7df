"""
Tiered Snapshot Store — persists snapshots and reads them back with fallback.

Write path:
  1. timestamped history document in the primary store
  2. overwrite of the single "latest" pointer (only after 1 succeeded)
  3. local flat-file copy, attempted even when the primary store fails

Read path (first success wins):
  1. primary store "latest" pointer
  2. local flat file from the most recent ingestion
  3. hardcoded sample snapshot, so readers never get a hard failure

Velocity baseline: the newer of tiers 1 and 2, never the sample.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from typing import Optional, Tuple

import config
from storage import SnapshotBackend, StoreUnavailable
from trend_radar.models import Snapshot, parse_ts

logger = logging.getLogger(__name__)

TIER_PRIMARY = "primary"
TIER_LOCAL = "local"
TIER_SAMPLE = "sample"

SAMPLE_SNAPSHOT = {
    "generated_at": "1970-01-01T00:00:00+00:00",
    "surface": [
        {"tag": "#AI", "count": 95, "velocity": 0},
        {"tag": "#MACHINELEARNING", "count": 85, "velocity": 0},
        {"tag": "#DATASCIENCE", "count": 75, "velocity": 0},
        {"tag": "#PYTHON", "count": 65, "velocity": 0},
        {"tag": "#JAVASCRIPT", "count": 55, "velocity": 0},
    ],
    "deep": [
        {"tag": "#TRANSFORMERS", "count": 45, "velocity": 0},
        {"tag": "#NEURALNETWORKS", "count": 35, "velocity": 0},
        {"tag": "#NLP", "count": 5, "velocity": 0},
    ],
}


def sample_snapshot() -> Snapshot:
    """The last-resort snapshot served when nothing has been ingested yet."""
    return Snapshot.from_dict(SAMPLE_SNAPSHOT)


@dataclass(frozen=True)
class SaveReport:
    history_key: Optional[str]
    primary_ok: bool
    local_ok: bool


class TieredSnapshotStore:
    """Primary backend + local flat file + built-in sample."""

    def __init__(self, backend: Optional[SnapshotBackend], local_path=None,
                 prefix: str = None):
        self.backend = backend
        self.local_path = Path(local_path or config.LOCAL_SNAPSHOT_PATH)
        self.prefix = prefix if prefix is not None else config.TRENDS_PREFIX
        self._write_lock = threading.Lock()

    @property
    def latest_key(self) -> str:
        return f"{self.prefix}{config.LATEST_TRENDS_FILENAME}"

    def history_key(self, snapshot: Snapshot) -> str:
        """Key that sorts lexicographically by generation time."""
        dt = parse_ts(snapshot.generated_at)
        stamp = dt.astimezone(timezone.utc)
        return f"{self.prefix}trends_{stamp.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.json"

    # ── Write path ──

    def save(self, snapshot: Snapshot) -> SaveReport:
        """
        Persist a snapshot to every writable tier.

        Never raises for storage failures; the report says what succeeded.
        """
        body = json.dumps(snapshot.to_dict(), indent=2)

        with self._write_lock:
            history_key = None
            primary_ok = False

            try:
                if self.backend is None:
                    logger.warning("No primary snapshot store configured")
                else:
                    key = self.history_key(snapshot)
                    try:
                        self.backend.put(key, body)
                        history_key = key
                        self.backend.put(self.latest_key, body)
                        primary_ok = True
                    except StoreUnavailable as e:
                        logger.warning(f"Primary store write failed ({self.backend.name}): {e}")
            finally:
                # Runs even if the primary write raised
                local_ok = self._write_local(body)

        return SaveReport(history_key=history_key, primary_ok=primary_ok, local_ok=local_ok)

    def _write_local(self, body: str) -> bool:
        """Atomically replace the local flat file."""
        tmp_name = None
        try:
            self.local_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=str(self.local_path.parent), suffix=".tmp", delete=False
            ) as tmp:
                tmp.write(body)
                tmp_name = tmp.name
            os.replace(tmp_name, self.local_path)
            logger.info(f"Saved trend data to {self.local_path}")
            return True
        except OSError as e:
            logger.warning(f"Local snapshot write failed: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

    # ── Read path ──

    def load_latest(self) -> Tuple[Snapshot, str]:
        """Return (snapshot, tier). Always succeeds thanks to the sample tier."""
        snapshot = self._read_primary()
        if snapshot is not None:
            return snapshot, TIER_PRIMARY

        snapshot = self._read_local()
        if snapshot is not None:
            return snapshot, TIER_LOCAL

        logger.info("No stored trends available, serving sample snapshot")
        return sample_snapshot(), TIER_SAMPLE

    def load_previous(self) -> Optional[Snapshot]:
        """
        Velocity baseline: the last persisted real snapshot, or None on a
        first run. The sample snapshot is never used as a baseline.

        Both tiers are read and the later generated_at wins, so a cycle whose
        primary write failed but whose local write succeeded is still the
        baseline for the next one. Ties go to the primary copy.
        """
        candidates = [s for s in (self._read_primary(), self._read_local()) if s is not None]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.generated_at_dt())

    def _read_primary(self) -> Optional[Snapshot]:
        if self.backend is None:
            return None
        try:
            body = self.backend.get(self.latest_key)
        except StoreUnavailable as e:
            logger.warning(f"Primary store unavailable ({self.backend.name}): {e}")
            return None
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Primary store returned garbage ({self.backend.name}): {e!r}")
            return None

        if body is None:
            logger.info(f"Latest trends not found in {self.backend.name} store")
            return None
        return _parse(body, f"{self.backend.name}:{self.latest_key}")

    def _read_local(self) -> Optional[Snapshot]:
        if not self.local_path.exists():
            return None
        try:
            body = self.local_path.read_text()
        except OSError as e:
            logger.warning(f"Error reading local snapshot {self.local_path}: {e}")
            return None
        return _parse(body, str(self.local_path))


def _parse(body: str, where: str) -> Optional[Snapshot]:
    try:
        return Snapshot.from_dict(json.loads(body))
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError and SnapshotFormatError are both ValueErrors
        logger.warning(f"Malformed snapshot at {where}: {e}")
        return None
