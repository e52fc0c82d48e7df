"""
Trend Radar -- ranked surface/deep hashtag trends with per-tag velocity.

Merges noisy signals from several public sources into one ranked snapshot
per ingestion cycle. Velocity is the change in count against the snapshot
that was persisted just before.

Components:
  normalizer.py  -- Canonical "#TAG" form shared by every scraper
  models.py      -- RawSignal / AggregatedTrend / Snapshot data contracts
  aggregator.py  -- Cross-source merge, ranking, surface/deep split
  velocity.py    -- Delta against the previous snapshot
"""
