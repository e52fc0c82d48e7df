"""
Google Trends Scraper — daily trending searches from the public RSS feed.

Traffic magnitude comes from the <ht:approx_traffic> element ("10K+").
"""

import logging
import re
from typing import List

import feedparser

import config
from scrapers import BaseScraper, ScrapedItem, SourceUnavailable, parse_magnitude

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class GoogleTrendsScraper(BaseScraper):
    """Scrapes Google's trending-searches RSS feed."""

    SOURCE_ID = "google_trends"

    def __init__(self, feed_url: str = None, geo: str = None):
        self.feed_url = feed_url or config.GOOGLE_TRENDS_RSS_URL
        self.geo = geo or config.GOOGLE_TRENDS_GEO

    def fetch(self, policy, seeds) -> List[ScrapedItem]:
        response = self._get(
            self.feed_url, policy,
            accept="application/rss+xml, application/xml, text/xml",
            params={"geo": self.geo},
        )

        feed = feedparser.parse(response.text)
        entries = feed.get("entries", [])
        if feed.get("bozo") and not entries:
            raise SourceUnavailable(
                f"google_trends feed could not be parsed: {feed.get('bozo_exception')}"
            )

        items = []
        for entry in entries:
            title = (entry.get("title") or "").strip()
            if not title:
                continue
            traffic = entry.get("ht_approx_traffic") or entry.get("approx_traffic")
            items.append(ScrapedItem(
                text=title,
                tag_text=_WHITESPACE_RE.sub("", title),
                weight=parse_magnitude(traffic),
            ))

        return items
