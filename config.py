"""
Global configuration for the Trend Radar.

Seed hashtags and keywords come from the seed file (see seed_loader.py).
This module only holds environment-driven settings and defaults.

Storage credentials are read from .env or the process environment.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# ── Paths ──
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = Path(os.getenv("TREND_RADAR_DATA_DIR", str(PROJECT_ROOT / "data")))
DB_PATH = DATA_DIR / "trends.db"
LOCAL_SNAPSHOT_PATH = DATA_DIR / "latest_trends.json"
REFRESH_STATUS_PATH = DATA_DIR / "refresh_status.json"
SEED_PATH = Path(os.getenv("SEED_PATH", str(PROJECT_ROOT / "seeds.sample.json")))


def ensure_data_dir():
    """Create the data directory if it does not exist yet."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def get_blob_token() -> str:
    """
    Get the blob store read/write token from the environment.

    Returns:
        Token string or empty string if not found
    """
    value = os.getenv("BLOB_READ_WRITE_TOKEN", "")
    if not value and STORE_BACKEND == "blob":
        logger.warning(
            "BLOB_READ_WRITE_TOKEN is not set. The primary snapshot store "
            "will be unavailable."
        )
    return value


# ── Politeness ──
USER_AGENT = os.getenv(
    "USER_AGENT",
    "TrendRadar/1.0 (+https://github.com/trend-radar/trend-radar)",
)
REQUEST_DELAY_MS = int(os.getenv("REQUEST_DELAY_MS", "2000"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5"))

# ── Sources ──
# Fixed order: scrapers run sequentially in exactly this order.
SCRAPE_SOURCES = [
    s.strip() for s in os.getenv("SCRAPE_SOURCES", "google_trends,trends24").split(",")
    if s.strip()
]
GOOGLE_TRENDS_RSS_URL = os.getenv(
    "GOOGLE_TRENDS_RSS_URL", "https://trends.google.com/trending/rss"
)
GOOGLE_TRENDS_GEO = os.getenv("GOOGLE_TRENDS_GEO", "US")
TRENDS24_URL = os.getenv("TRENDS24_URL", "https://trends24.in/united-states/")

# ── Storage ──
STORE_BACKEND = os.getenv("STORE_BACKEND", "blob").lower()  # "blob" or "sqlite"
BLOB_API_URL = os.getenv("BLOB_API_URL", "https://blob.vercel-storage.com")
TRENDS_PREFIX = "trends/"
LATEST_TRENDS_FILENAME = "latest_trends.json"

# ── Retention ──
# 24 entries is one day of history at one refresh per hour.
RETENTION_KEEP_COUNT = int(os.getenv("RETENTION_KEEP_COUNT", "24"))

# ── Logging ──
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
