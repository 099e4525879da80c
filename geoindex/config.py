"""
Centralized configuration for stop clustering runs
Name-normalization profiles per locale and the validated run configuration.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional

from dotenv import load_dotenv

from geoindex.worker_pool import default_worker_count
from logging_config import get_logger

logger = get_logger(__name__)

SYNTHETIC_PARENT_PREFIX = "par::"


class NameProfile(Enum):
    """Locale-specific name normalization tables."""
    DEFAULT = "default"    # German and English forms together
    GERMAN = "german"
    ENGLISH = "english"


@dataclass(frozen=True)
class NormalizationRules:
    """
    Tables applied by the name normalizer.

    mode_tokens are dropped when they stand alone as words.
    word_abbreviations replace whole words; suffix_abbreviations replace a
    word ending, which catches compounds such as "bahnhofstrasse".
    """
    mode_tokens: FrozenSet[str] = frozenset()
    word_abbreviations: Dict[str, str] = field(default_factory=dict)
    suffix_abbreviations: Dict[str, str] = field(default_factory=dict)


_GERMAN_MODE_TOKENS = frozenset({"s", "u", "su", "rb", "re", "tram", "bus", "bhf", "zob"})
_GERMAN_WORDS = {
    "hauptbahnhof": "hbf",
    "bahnhof": "bf",
    "sankt": "st",
}
_GERMAN_SUFFIXES = {
    "strasse": "str",
    "platz": "pl",
}

_ENGLISH_MODE_TOKENS = frozenset({"bus", "tram", "metro", "subway", "rail", "brt", "lrt"})
_ENGLISH_WORDS = {
    "street": "st",
    "avenue": "ave",
    "road": "rd",
    "boulevard": "blvd",
    "square": "sq",
    "station": "stn",
    "saint": "st",
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
}


NAME_PROFILES: Dict[NameProfile, NormalizationRules] = {
    NameProfile.GERMAN: NormalizationRules(
        mode_tokens=_GERMAN_MODE_TOKENS,
        word_abbreviations=dict(_GERMAN_WORDS),
        suffix_abbreviations=dict(_GERMAN_SUFFIXES),
    ),
    NameProfile.ENGLISH: NormalizationRules(
        mode_tokens=_ENGLISH_MODE_TOKENS,
        word_abbreviations=dict(_ENGLISH_WORDS),
    ),
    # English compass words are left out: "s" is a German mode token
    NameProfile.DEFAULT: NormalizationRules(
        mode_tokens=_GERMAN_MODE_TOKENS | {"metro", "subway"},
        word_abbreviations={
            **{k: v for k, v in _ENGLISH_WORDS.items() if k not in {"north", "south", "east", "west"}},
            **_GERMAN_WORDS,
        },
        suffix_abbreviations=dict(_GERMAN_SUFFIXES),
    ),
}


def get_name_rules(profile: NameProfile = NameProfile.DEFAULT) -> NormalizationRules:
    """Get the normalization tables for a profile."""
    return NAME_PROFILES[profile]


@dataclass
class ClusteringConfig:
    """Configuration for one parent-stop clustering run."""
    radius_km: float = 1.0
    similarity_threshold: int = 85
    max_workers: int = field(default_factory=default_worker_count)
    chunk_size: int = 256
    parallel: bool = True
    name_profile: NameProfile = NameProfile.DEFAULT

    def __post_init__(self):
        """Validate configuration."""
        if self.radius_km <= 0:
            raise ValueError("radius_km must be > 0")
        if not 0 <= self.similarity_threshold <= 100:
            raise ValueError("similarity_threshold must be within 0-100")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

    @property
    def workers(self) -> int:
        """Effective worker count (1 when parallelism is disabled)."""
        return self.max_workers if self.parallel else 1

    @property
    def name_rules(self) -> NormalizationRules:
        return get_name_rules(self.name_profile)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config_from_env(env_file: Optional[str] = None) -> ClusteringConfig:
    """
    Build a ClusteringConfig from STOPMERGE_* environment variables.

    A .env file is loaded first if present; variables already set in the
    environment take precedence. Unset variables keep their defaults.

    Raises:
        ValueError: a variable holds an unparseable or out-of-range value
    """
    load_dotenv(env_file)

    kwargs = {}
    radius = os.getenv("STOPMERGE_RADIUS_KM")
    if radius:
        kwargs["radius_km"] = float(radius)
    threshold = os.getenv("STOPMERGE_SIMILARITY_THRESHOLD")
    if threshold:
        kwargs["similarity_threshold"] = int(threshold)
    workers = os.getenv("STOPMERGE_MAX_WORKERS")
    if workers:
        kwargs["max_workers"] = int(workers)
    parallel = os.getenv("STOPMERGE_PARALLEL")
    if parallel:
        kwargs["parallel"] = _env_bool(parallel)
    profile = os.getenv("STOPMERGE_NAME_PROFILE")
    if profile:
        kwargs["name_profile"] = NameProfile(profile.strip().lower())

    config = ClusteringConfig(**kwargs)
    logger.info(
        f"Loaded clustering config: radius={config.radius_km}km "
        f"threshold={config.similarity_threshold} workers={config.workers} "
        f"profile={config.name_profile.value}"
    )
    return config
