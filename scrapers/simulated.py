"""
Simulated Scraper — offline source that fabricates signals from the seeds.

Useful for development and demos without network access. Seeded hashtags
get mass-adoption weights; hashtag+keyword compounds get niche weights.
"""

import logging
import random
import re
from typing import List, Optional

from scrapers import BaseScraper, ScrapedItem

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class SimulatedScraper(BaseScraper):
    """Generates surface-like and deep-like rows from the seed config."""

    SOURCE_ID = "simulated"

    def __init__(self, seed: Optional[int] = None, rows: int = 10):
        self.rng = random.Random(seed)
        self.rows = rows

    def fetch(self, policy, seeds) -> List[ScrapedItem]:
        items = []

        for _ in range(self.rows):
            tag = self.rng.choice(seeds.seed_hashtags)
            items.append(ScrapedItem(
                text=tag,
                tag_text=tag,
                weight=self.rng.randint(1000, 10999),
            ))

        for _ in range(self.rows):
            keyword = self.rng.choice(seeds.target_keywords)
            keyword = _WHITESPACE_RE.sub("", keyword.lower())
            if self.rng.random() > 0.5:
                tag = "#" + keyword
            else:
                tag = self.rng.choice(seeds.seed_hashtags) + keyword
            items.append(ScrapedItem(
                text=tag,
                tag_text=tag,
                weight=self.rng.randint(100, 1099),
            ))

        return items
