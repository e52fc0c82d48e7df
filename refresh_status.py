"""
Refresh status tracking for ingestion cycles.

A refresh is fire-and-forget for whoever triggered it, so the outcome of
the most recent cycle is recorded in a small JSON file that the dashboard
(or anyone else) can poll.
"""

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import config

logger = logging.getLogger(__name__)


class RefreshStatus:
    """Tracks ingestion progress in a JSON status file."""

    def __init__(self, status_file=None):
        self.status_file = Path(status_file or config.REFRESH_STATUS_PATH)
        self.start_time = None

    def start(self, sources: Optional[List[str]] = None):
        """Mark a cycle as running."""
        self.start_time = time.time()
        self._write({
            "status": "running",
            "start_time": self.start_time,
            "message": "Scraping trend sources...",
            "sources": sources or [],
        })
        logger.info("Refresh status: running")

    def update(self, message: str):
        """Replace the status message of the running cycle."""
        data = self.read()
        if data is None:
            logger.warning("Refresh status file doesn't exist, cannot update")
            return
        data["message"] = message
        self._write(data)

    def complete(self, stats: Dict):
        """Mark the cycle as completed with its stats."""
        end_time = time.time()
        data = self.read() or {"start_time": self.start_time or end_time}
        data.update({
            "status": "completed",
            "end_time": end_time,
            "message": "Refresh complete",
            "stats": stats,
        })
        self._write(data)

        duration = end_time - (self.start_time or end_time)
        logger.info(f"Refresh completed in {duration:.1f}s")

    def error(self, error_message: str):
        """Mark the cycle as failed."""
        end_time = time.time()
        data = self.read() or {"start_time": self.start_time or end_time}
        data.update({
            "status": "error",
            "end_time": end_time,
            "error": error_message,
            "message": "Refresh failed",
        })
        self._write(data)
        logger.error(f"Refresh failed: {error_message}")

    def read(self) -> Optional[Dict]:
        """Return the current status document, or None if there is none."""
        if not self.status_file.exists():
            return None
        try:
            with open(self.status_file, "r") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read refresh status: {e}")
            return None

    def _write(self, data: Dict):
        try:
            self.status_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.status_file, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to write refresh status: {e}")
