"""
Seed Loader — loads and validates the research seed file from JSON or YAML.

The scrapers and the relevance filter reference the SeedConfig returned here.
It is loaded once at startup and passed explicitly to every consumer.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

import config


class ConfigurationMissing(Exception):
    """Raised when required seed or politeness input is absent or invalid."""
    pass


CONTENT_TYPES = ("text", "image", "video")

_HASHTAG_RE = re.compile(r"^#[A-Za-z0-9_]+")
_ACCOUNT_RE = re.compile(r"^@[A-Za-z0-9_]+")
_DURATION_RE = re.compile(
    r"^P(?:[0-9]+Y)?(?:[0-9]+M)?(?:[0-9]+W)?(?:[0-9]+D)?"
    r"(?:T(?:[0-9]+H)?(?:[0-9]+M)?(?:[0-9]+S)?)?$"
)


@dataclass(frozen=True)
class SeedConfig:
    seed_hashtags: List[str]
    target_keywords: List[str]
    seed_accounts: List[str]
    time_window: str                    # ISO-8601 duration, e.g. "P1D"
    content_type: List[str] = field(default_factory=list)
    cooccurrence: List[Tuple[str, str]] = field(default_factory=list)

    def relevance_terms(self) -> List[str]:
        """Lowercased substrings a scraped record must contain to be kept."""
        terms = [h.lstrip("#").lower() for h in self.seed_hashtags]
        terms.extend(k.lower() for k in self.target_keywords)
        return [t for t in terms if t]


@dataclass(frozen=True)
class PolitenessPolicy:
    """User agent and per-request delay every scraper must honor."""
    user_agent: str
    request_delay_ms: int

    def __post_init__(self):
        if not self.user_agent or not self.user_agent.strip():
            raise ConfigurationMissing("Politeness policy needs a user agent.")
        if self.request_delay_ms < 0:
            raise ConfigurationMissing(
                f"Request delay must be >= 0 ms, got {self.request_delay_ms}"
            )

    @property
    def delay_seconds(self) -> float:
        return self.request_delay_ms / 1000.0


def load_politeness(request_delay_ms: Optional[int] = None) -> PolitenessPolicy:
    """Build the politeness policy from config, with an optional delay override."""
    delay = config.REQUEST_DELAY_MS if request_delay_ms is None else request_delay_ms
    return PolitenessPolicy(user_agent=config.USER_AGENT, request_delay_ms=delay)


REQUIRED_FIELDS = ["seed_hashtags", "target_keywords", "seed_accounts", "time_window"]


def load_seeds(path: Optional[Path] = None) -> SeedConfig:
    """
    Load the seed configuration from a JSON or YAML file.

    Args:
        path: Seed file path. Defaults to SEED_PATH from config.

    Returns:
        SeedConfig dataclass with the validated seed values.

    Raises:
        ConfigurationMissing: If the file is missing, unreadable or invalid.
    """
    seed_path = Path(path) if path is not None else config.SEED_PATH

    if not seed_path.exists():
        raise ConfigurationMissing(
            f"Seed file not found at {seed_path}\n"
            f"Copy seeds.sample.json or set SEED_PATH in .env"
        )

    try:
        with open(seed_path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationMissing(f"Could not read seed file {seed_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationMissing(f"Seed file {seed_path} is empty or not a mapping.")

    _validate_seeds(data, seed_path.name)

    return _build_seeds(data)


def _validate_seeds(data: dict, name: str) -> None:
    """Validate that all required fields are present and well-formed."""
    missing = [f for f in REQUIRED_FIELDS if f not in data or not data[f]]
    if missing:
        raise ConfigurationMissing(f"Seed file '{name}' is missing: {missing}")

    for key in ("seed_hashtags", "target_keywords", "seed_accounts"):
        values = data[key]
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ConfigurationMissing(
                f"Seed file '{name}' field '{key}' must be a list of strings."
            )

    bad_tags = [h for h in data["seed_hashtags"] if not _HASHTAG_RE.match(h)]
    if bad_tags:
        raise ConfigurationMissing(f"Seed file '{name}' has invalid hashtags: {bad_tags}")

    bad_accounts = [a for a in data["seed_accounts"] if not _ACCOUNT_RE.match(a)]
    if bad_accounts:
        raise ConfigurationMissing(
            f"Seed file '{name}' has invalid accounts: {bad_accounts}"
        )

    window = data["time_window"]
    if (not isinstance(window, str) or window.endswith(("P", "T"))
            or not _DURATION_RE.match(window)):
        raise ConfigurationMissing(
            f"Seed file '{name}' time_window is not an ISO-8601 duration: {window!r}"
        )

    content_type = data.get("content_type") or []
    unknown = [c for c in content_type if c not in CONTENT_TYPES]
    if unknown:
        raise ConfigurationMissing(
            f"Seed file '{name}' has unknown content types: {unknown}"
        )

    for i, pair in enumerate(data.get("cooccurrence") or []):
        if (not isinstance(pair, list) or len(pair) != 2
                or not all(isinstance(p, str) for p in pair)):
            raise ConfigurationMissing(
                f"Seed file '{name}' cooccurrence #{i+1} must be a pair of strings."
            )


def _build_seeds(data: dict) -> SeedConfig:
    """Construct SeedConfig from validated data."""
    return SeedConfig(
        seed_hashtags=list(data["seed_hashtags"]),
        target_keywords=list(data["target_keywords"]),
        seed_accounts=list(data["seed_accounts"]),
        time_window=data["time_window"],
        content_type=list(data.get("content_type") or []),
        cooccurrence=[(a, b) for a, b in (data.get("cooccurrence") or [])],
    )
