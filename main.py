"""
Trend Radar — Ingestion Cycle

Runs one full ingestion cycle:
  1. Scrape every configured source, sequentially, under the politeness policy
  2. Normalize and aggregate signals into ranked surface/deep trends
  3. Compute velocity against the previously persisted snapshot
  4. Persist (history -> latest pointer -> local file)
  5. Sweep snapshot history beyond the retention count

Usage:
  python main.py                              # sources from SCRAPE_SOURCES
  python main.py --simulate                   # offline, simulated source only
  python main.py --delay-ms 1000 --keep 48    # faster manual refresh, longer history
  python main.py --show                       # print current trends and exit
"""

import argparse
import functools
import json
import logging
import sys
import threading
import time
from typing import List, Optional

import config
from refresh_status import RefreshStatus
from scrapers import BaseScraper
from scrapers.orchestrator import ScrapeOrchestrator, create_scrapers
from seed_loader import (
    ConfigurationMissing, PolitenessPolicy, SeedConfig, load_politeness, load_seeds,
)
from storage import create_backend
from storage.blob import BlobBackend
from storage.retention import RetentionSweeper
from storage.snapshot_store import TieredSnapshotStore
from trend_radar.aggregator import aggregate
from trend_radar.velocity import apply_velocity

CYCLE_BUSY = "cycle already running"

# At most one cycle at a time, so two cycles never race on the latest pointer
_cycle_lock = threading.Lock()


def setup_logging():
    """Configure console logging with timestamps."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv=None):
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Trend Radar — surface and deep hashtag trends"
    )
    parser.add_argument(
        "--seeds",
        default=None,
        help=f"Seed file (JSON or YAML). Default: {config.SEED_PATH}",
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=None,
        help="Politeness delay after each source, in milliseconds",
    )
    parser.add_argument(
        "--keep",
        type=int,
        default=config.RETENTION_KEEP_COUNT,
        help="History snapshots to retain besides the latest pointer",
    )
    parser.add_argument(
        "--sources",
        default=None,
        help="Comma-separated sources in scrape order (e.g. google_trends,trends24)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use the offline simulated source instead of live scraping",
    )
    parser.add_argument(
        "--backend",
        choices=["blob", "sqlite"],
        default=None,
        help="Primary snapshot store (overrides STORE_BACKEND)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Print the current trends (tiered read) and exit",
    )
    return parser.parse_args(argv)


def with_refresh_status(func):
    """
    Decorator that records the cycle outcome in the refresh status file.

    A cycle that was skipped because another one is running leaves the
    status of the running cycle untouched.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger("radar")
        status = kwargs.pop("_status", None) or RefreshStatus()

        try:
            result = func(*args, **kwargs, _status=status)
        except Exception as e:
            logger.error(f"Ingestion cycle failed with exception: {e}")
            status.error(str(e))
            return {"error": str(e)}

        if result.get("error") == CYCLE_BUSY:
            return result
        if result.get("error"):
            status.error(result["error"])
        else:
            status.complete(result)
        return result

    return wrapper


@with_refresh_status
def run_pipeline(seeds: SeedConfig, policy: PolitenessPolicy,
                 store: TieredSnapshotStore, scrapers: List[BaseScraper],
                 keep_count: Optional[int] = None, _status=None):
    """
    Run one ingestion cycle.

    Can be called from the CLI (main()) or from the refresh worker.
    Returns a dict with cycle stats, or {"error": ...}.
    """
    logger = logging.getLogger("radar")

    if not _cycle_lock.acquire(blocking=False):
        logger.warning("Another ingestion cycle is running, skipping this one")
        return {"error": CYCLE_BUSY}

    try:
        start_time = time.time()
        logger.info("=" * 60)
        logger.info("TREND RADAR INGESTION")
        logger.info("=" * 60)
        _status.start(sources=[s.SOURCE_ID for s in scrapers])

        # ── 1. Scrape ──
        report = ScrapeOrchestrator(scrapers).run(policy, seeds)

        # ── 2. Aggregate ──
        _status.update("Aggregating trends...")
        snapshot = aggregate(report.signals)

        # ── 3. Velocity ──
        previous = store.load_previous()
        snapshot = apply_velocity(snapshot, previous)

        # ── 4. Persist ──
        _status.update("Saving snapshot...")
        saved = store.save(snapshot)
        if not saved.primary_ok and not saved.local_ok:
            return {"error": "Snapshot could not be saved to any store"}

        # ── 5. Retention ──
        swept = None
        if saved.primary_ok and keep_count is not None:
            sweeper = RetentionSweeper(store.backend, store.prefix, store.latest_key)
            swept = sweeper.sweep(keep_count)

        duration = round(time.time() - start_time, 1)
        logger.info(
            f"Cycle done in {duration}s: {len(snapshot.surface)} surface, "
            f"{len(snapshot.deep)} deep trends"
        )

        return {
            "generated_at": snapshot.generated_at,
            "signals": len(report.signals),
            "signals_by_source": report.signals_by_source(),
            "failed_sources": report.failed_sources,
            "surface": len(snapshot.surface),
            "deep": len(snapshot.deep),
            "history_key": saved.history_key,
            "primary_ok": saved.primary_ok,
            "local_ok": saved.local_ok,
            "deleted_snapshots": len(swept.deleted) if swept else 0,
            "duration_seconds": duration,
        }
    finally:
        _cycle_lock.release()


def create_store(backend_kind: Optional[str] = None,
                 require_primary: bool = False) -> TieredSnapshotStore:
    """
    Build the tiered store for the configured primary backend.

    Raises:
        ConfigurationMissing: If require_primary and the blob token is missing.
    """
    backend = create_backend(backend_kind)
    if require_primary and isinstance(backend, BlobBackend) and not backend.token:
        raise ConfigurationMissing(
            "BLOB_READ_WRITE_TOKEN environment variable is required "
            "for the blob snapshot store (or use --backend sqlite)"
        )
    return TieredSnapshotStore(backend)


def build_runtime(args) -> dict:
    """
    Load every startup input of an ingestion cycle.

    Raises:
        ConfigurationMissing: On any absent or invalid seed/policy/store input.
    """
    seeds = load_seeds(args.seeds)
    policy = load_politeness(args.delay_ms)

    if args.simulate:
        source_names = ["simulated"]
    elif args.sources:
        source_names = [s.strip() for s in args.sources.split(",") if s.strip()]
    else:
        source_names = config.SCRAPE_SOURCES

    return {
        "seeds": seeds,
        "policy": policy,
        "store": create_store(args.backend, require_primary=True),
        "scrapers": create_scrapers(source_names),
        "keep_count": args.keep,
    }


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    logger = logging.getLogger("radar")

    if args.show:
        snapshot, tier = create_store(args.backend).load_latest()
        logger.info(f"Serving trends from the {tier} tier")
        print(json.dumps(snapshot.to_dict(), indent=2))
        return 0

    try:
        runtime = build_runtime(args)
    except ConfigurationMissing as e:
        logger.error(f"Configuration error: {e}")
        return 2

    result = run_pipeline(**runtime)
    if result.get("error"):
        logger.error(f"Ingestion failed: {result['error']}")
        return 1

    logger.info("Scraping completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
