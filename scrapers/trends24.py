"""
Trends24 Scraper — X/Twitter trending hashtags from trends24.in.

The page carries no volume numbers, so weight is derived from position:
earlier list items weigh more, never below 100.
"""

import logging
from typing import List

from bs4 import BeautifulSoup

import config
from scrapers import BaseScraper, ScrapedItem

logger = logging.getLogger(__name__)

TOP_WEIGHT = 1000
WEIGHT_STEP = 50
MIN_WEIGHT = 100


def position_weight(index: int) -> int:
    """Weight for the item at a 0-based position in the trend list."""
    return max(TOP_WEIGHT - index * WEIGHT_STEP, MIN_WEIGHT)


class Trends24Scraper(BaseScraper):
    """Scrapes the trends24 trend cards for one region."""

    SOURCE_ID = "trends24"

    def __init__(self, url: str = None):
        self.url = url or config.TRENDS24_URL

    def fetch(self, policy, seeds) -> List[ScrapedItem]:
        response = self._get(
            self.url, policy,
            accept="text/html,application/xhtml+xml,application/xml",
        )

        soup = BeautifulSoup(response.text, "html.parser")
        nodes = soup.select(".trend-card__list-item") or soup.select(".trend-card__list li")

        items = []
        for index, node in enumerate(nodes):
            text = node.get_text(" ", strip=True)
            # Only hashtags; plain-phrase trends are skipped
            if "#" not in text:
                continue
            items.append(ScrapedItem(
                text=text,
                tag_text=text.split(" ")[0],
                weight=position_weight(index),
            ))

        return items
