"""
Trends service — the read and refresh contract handed to the web layer.

Handlers return (payload, http_status) pairs so any framework can expose
them as GET /trends and GET /refresh:

    payload, status = service.get_trends()
    return jsonify(payload), status
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from refresh_worker import RefreshWorker
from storage.snapshot_store import TieredSnapshotStore

logger = logging.getLogger(__name__)


class TrendsService:
    """Serves the latest snapshot and triggers background refreshes."""

    def __init__(self, store: TieredSnapshotStore, worker: Optional[RefreshWorker] = None):
        self.store = store
        self.worker = worker

    def get_trends(self) -> Tuple[Dict, int]:
        """
        Return the latest snapshot. Missing data is never an error: the
        store falls back to the sample snapshot. Only an internal fault
        (e.g. a payload that cannot be serialized) yields a 500.
        """
        try:
            snapshot, tier = self.store.load_latest()
            payload = snapshot.to_dict()
            json.dumps(payload)
        except Exception as e:
            logger.error(f"Error in trends API: {e}")
            return {"error": "Failed to fetch trend data"}, 500

        logger.debug(f"Serving trends generated at {snapshot.generated_at} from {tier}")
        return payload, 200

    def request_refresh(self) -> Tuple[Dict, int]:
        """Queue an ingestion cycle and return immediately."""
        timestamp = datetime.now(timezone.utc).isoformat()

        if self.worker is None:
            return {
                "success": False,
                "error": "Refresh is not configured",
                "timestamp": timestamp,
            }, 503

        logger.info(f"Manual refresh triggered at {timestamp}")
        queued = self.worker.submit()
        return {
            "success": True,
            "message": "Manual refresh initiated" if queued else "Refresh already pending",
            "timestamp": timestamp,
            "queued": queued,
        }, 202


def create_service(argv=None) -> TrendsService:
    """
    Wire a TrendsService with a refresh worker from config and CLI-style args.

    Raises:
        seed_loader.ConfigurationMissing: If ingestion inputs are absent.
    """
    import main

    runtime = main.build_runtime(main.parse_args(argv or []))
    worker = RefreshWorker(lambda: main.run_pipeline(**runtime))
    return TrendsService(store=runtime["store"], worker=worker)
