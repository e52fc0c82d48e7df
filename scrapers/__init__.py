"""
Scrapers — source-agnostic trend fetching layer.

Each source implements BaseScraper.fetch(). The shared scrape() template
applies the relevance filter, tag normalization and the politeness delay,
and converts every failure into a failed ScrapeResult so that one source's
outage never aborts an ingestion cycle.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import requests

import config
from seed_loader import PolitenessPolicy, SeedConfig
from trend_radar.models import RawSignal
from trend_radar.normalizer import normalize_tag

logger = logging.getLogger(__name__)


class SourceUnavailable(Exception):
    """Network, HTTP or parse failure inside a single source."""
    pass


# Magnitude labels like "10K+" or "2M+" -> integer weight
UNIT_MULTIPLIERS = {"": 1, "K": 1_000, "M": 1_000_000}
FALLBACK_WEIGHT = 1000

_MAGNITUDE_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([KkMm]?)")


def parse_magnitude(label) -> int:
    """
    Convert a source's magnitude label into an integer weight.

    "500" -> 500, "10K+" -> 10000, "1.5M" -> 1500000. Anything non-numeric
    (or a parsed zero) falls back to FALLBACK_WEIGHT instead of failing.
    """
    if label is None:
        return FALLBACK_WEIGHT
    match = _MAGNITUDE_RE.search(str(label))
    if not match:
        return FALLBACK_WEIGHT
    value = float(match.group(1).replace(",", ""))
    weight = int(value * UNIT_MULTIPLIERS[match.group(2).upper()])
    return weight or FALLBACK_WEIGHT


def is_relevant(text: str, terms: List[str]) -> bool:
    """Case-insensitive substring match against any seed hashtag or keyword."""
    lowered = (text or "").lower()
    return any(term in lowered for term in terms)


@dataclass(frozen=True)
class ScrapedItem:
    """One source record before relevance filtering and normalization."""
    text: str                           # full text checked for relevance
    tag_text: str                       # raw text that becomes the tag
    weight: int


@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of one scraper call: signals on success, an error otherwise."""
    source: str
    signals: List[RawSignal] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source: str, signals: List[RawSignal]) -> "ScrapeResult":
        return cls(source=source, signals=list(signals))

    @classmethod
    def failure(cls, source: str, error: str) -> "ScrapeResult":
        return cls(source=source, signals=[], error=error)


class BaseScraper(ABC):
    """Abstract base for all trend sources."""

    SOURCE_ID = ""

    @abstractmethod
    def fetch(self, policy: PolitenessPolicy, seeds: SeedConfig) -> List[ScrapedItem]:
        """Fetch raw items from the source. May raise SourceUnavailable."""
        ...

    def scrape(self, policy: PolitenessPolicy, seeds: SeedConfig) -> ScrapeResult:
        """
        Fetch, filter and normalize one source's signals. Never raises.

        Sleeps the policy delay once before returning, success or not, so
        consecutive scrapers are paced.
        """
        logger.info(f"Scraping {self.SOURCE_ID}...")
        terms = seeds.relevance_terms()

        try:
            items = self.fetch(policy, seeds)
            signals = []
            for item in items:
                if not is_relevant(item.text, terms):
                    continue
                tag = normalize_tag(item.tag_text)
                if tag is None:
                    continue
                signals.append(RawSignal(tag=tag, weight=max(int(item.weight), 0),
                                         source=self.SOURCE_ID))
            result = ScrapeResult.success(self.SOURCE_ID, signals)
            logger.info(
                f"  {self.SOURCE_ID}: {len(signals)} relevant signals "
                f"from {len(items)} items"
            )
        except SourceUnavailable as e:
            logger.error(f"Error scraping {self.SOURCE_ID}: {e}")
            result = ScrapeResult.failure(self.SOURCE_ID, str(e))
        except Exception as e:
            logger.error(f"Unexpected error scraping {self.SOURCE_ID}: {e}")
            result = ScrapeResult.failure(self.SOURCE_ID, f"{type(e).__name__}: {e}")

        time.sleep(policy.delay_seconds)
        return result

    def _get(self, url: str, policy: PolitenessPolicy, accept: str,
             params: Optional[dict] = None) -> requests.Response:
        """GET with the policy's User-Agent; raises SourceUnavailable on failure."""
        try:
            response = requests.get(
                url,
                params=params,
                headers={
                    "User-Agent": policy.user_agent,
                    "Accept": accept,
                    "Cache-Control": "no-cache",
                },
                timeout=config.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise SourceUnavailable(f"{self.SOURCE_ID} request failed: {e}") from e

        if response.status_code != 200:
            raise SourceUnavailable(
                f"{self.SOURCE_ID} returned HTTP {response.status_code}"
            )
        return response
