"""
Scrape Orchestrator — runs every configured scraper, one after another.

Sources are never scraped concurrently: the politeness delay is cumulative,
so total elapsed time is bounded by the sum of per-source delays.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from seed_loader import ConfigurationMissing, PolitenessPolicy, SeedConfig
from scrapers import BaseScraper, ScrapeResult
from scrapers.google_trends import GoogleTrendsScraper
from scrapers.simulated import SimulatedScraper
from scrapers.trends24 import Trends24Scraper
from trend_radar.models import RawSignal

logger = logging.getLogger(__name__)

SCRAPER_REGISTRY = {
    GoogleTrendsScraper.SOURCE_ID: GoogleTrendsScraper,
    Trends24Scraper.SOURCE_ID: Trends24Scraper,
    SimulatedScraper.SOURCE_ID: SimulatedScraper,
}


def create_scrapers(names: List[str]) -> List[BaseScraper]:
    """
    Build scraper instances in the given (fixed) order.

    Raises:
        ConfigurationMissing: If no source is configured or a name is unknown.
    """
    if not names:
        raise ConfigurationMissing("No scrape sources configured (SCRAPE_SOURCES).")

    unknown = [n for n in names if n not in SCRAPER_REGISTRY]
    if unknown:
        raise ConfigurationMissing(
            f"Unknown scrape sources: {unknown}. "
            f"Available: {sorted(SCRAPER_REGISTRY)}"
        )
    return [SCRAPER_REGISTRY[name]() for name in names]


@dataclass
class ScrapeReport:
    """Concatenated signals of one cycle plus per-source outcomes."""
    signals: List[RawSignal] = field(default_factory=list)
    results: List[ScrapeResult] = field(default_factory=list)

    @property
    def failed_sources(self) -> List[str]:
        return [r.source for r in self.results if not r.ok]

    def signals_by_source(self) -> Dict[str, int]:
        return {r.source: len(r.signals) for r in self.results}


class ScrapeOrchestrator:
    """Sequentially runs scrapers and concatenates their signals."""

    def __init__(self, scrapers: List[BaseScraper]):
        self.scrapers = list(scrapers)

    def run(self, policy: PolitenessPolicy, seeds: SeedConfig) -> ScrapeReport:
        """
        Scrape every source in order. A failed source contributes nothing
        and the run continues; an all-empty result is not an error.
        Cross-source dedup is left to the aggregator.
        """
        report = ScrapeReport()

        for scraper in self.scrapers:
            result = scraper.scrape(policy, seeds)
            report.results.append(result)

            if result.ok:
                report.signals.extend(result.signals)
                logger.info(f"Scraped {len(result.signals)} trends from {result.source}")
            else:
                logger.warning(f"Source {result.source} unavailable: {result.error}")

        logger.info(
            f"Scrape complete: {len(report.signals)} signals from "
            f"{len(self.scrapers) - len(report.failed_sources)}/{len(self.scrapers)} sources"
        )
        return report
