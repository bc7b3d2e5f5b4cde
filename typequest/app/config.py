# app/config.py
from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Optional, Tuple

from typequest.app.errors import ConfigError


@dataclass(frozen=True)
class ComboTier:
    level: int
    threshold: int
    multiplier: float


# --- session scoring ---
COMBO_TIERS: Tuple[ComboTier, ...] = (
    ComboTier(1, 10, 1.5),
    ComboTier(2, 25, 2.0),
    ComboTier(3, 50, 3.0),
    ComboTier(4, 100, 5.0),
)
BASE_POINTS_PER_CHAR = 10
CHARS_PER_WORD = 5
MIN_ELAPSED_SECONDS = 1.0
ROLLING_WPM_WINDOW_MS = 10_000

# --- weakness estimator ---
PRIOR_MEAN = 0.9
PRIOR_WEIGHT = 5.0
WEAKNESS_THRESHOLD = 0.85
MIN_CONFIDENCE_TO_FLAG = 0.3
WEEK_HALF_LIFE_MS = 7 * 24 * 60 * 60 * 1000
TREND_MIN_OBSERVATIONS = 10
TREND_BAND = 0.1

# --- text generator ---
MARKOV_ORDER = 2
DEFAULT_MIN_LENGTH = 10
SAFETY_CAP_FACTOR = 3
FALLBACK_SENTENCE = "The quick brown fox jumps over the lazy dog."


@dataclass
class SessionSettings:
    combo_tiers: Tuple[ComboTier, ...] = COMBO_TIERS
    base_points: int = BASE_POINTS_PER_CHAR
    chars_per_word: int = CHARS_PER_WORD
    min_elapsed_seconds: float = MIN_ELAPSED_SECONDS

    def __post_init__(self):
        self.combo_tiers = tuple(
            t if isinstance(t, ComboTier) else ComboTier(**t) for t in self.combo_tiers
        )
        thresholds = [t.threshold for t in self.combo_tiers]
        if thresholds != sorted(set(thresholds)) or any(t < 1 for t in thresholds):
            raise ConfigError("combo tier thresholds must be positive and strictly ascending")
        if any(t.multiplier < 1 for t in self.combo_tiers):
            raise ConfigError("combo multipliers must be >= 1")
        if self.chars_per_word < 1:
            raise ConfigError("chars_per_word must be >= 1")
        if self.min_elapsed_seconds <= 0:
            raise ConfigError("min_elapsed_seconds must be > 0")

    def tier_for(self, combo: int) -> Optional[ComboTier]:
        """Highest tier whose threshold `combo` has reached, or None below the first."""
        reached = None
        for tier in self.combo_tiers:
            if combo >= tier.threshold:
                reached = tier
        return reached


@dataclass
class EstimatorSettings:
    prior_mean: float = PRIOR_MEAN
    prior_weight: float = PRIOR_WEIGHT
    weakness_threshold: float = WEAKNESS_THRESHOLD
    min_confidence_to_flag: float = MIN_CONFIDENCE_TO_FLAG
    # None disables recency weighting
    half_life_ms: Optional[float] = None
    trend_min_observations: int = TREND_MIN_OBSERVATIONS
    trend_band: float = TREND_BAND

    def __post_init__(self):
        if not 0.0 <= self.prior_mean <= 1.0:
            raise ConfigError("prior_mean must be within [0, 1]")
        if self.prior_weight <= 0:
            raise ConfigError("prior_weight must be > 0")
        if not 0.0 <= self.min_confidence_to_flag < 1.0:
            raise ConfigError("min_confidence_to_flag must be within [0, 1)")
        if not 0.0 <= self.weakness_threshold <= 1.0:
            raise ConfigError("weakness_threshold must be within [0, 1]")
        if not 0.0 <= self.trend_band <= 1.0:
            raise ConfigError("trend_band must be within [0, 1]")
        if self.trend_min_observations < 2:
            raise ConfigError("trend_min_observations must be >= 2")
        if self.half_life_ms is not None and self.half_life_ms <= 0:
            raise ConfigError("half_life_ms must be > 0 or null")


@dataclass
class GeneratorSettings:
    order: int = MARKOV_ORDER
    default_min_length: int = DEFAULT_MIN_LENGTH
    safety_cap_factor: int = SAFETY_CAP_FACTOR
    fallback_sentence: str = FALLBACK_SENTENCE

    def __post_init__(self):
        if self.order < 1:
            raise ConfigError("order must be >= 1")
        if self.safety_cap_factor < 1:
            raise ConfigError("safety_cap_factor must be >= 1")
        if not self.fallback_sentence:
            raise ConfigError("fallback_sentence must not be empty")


@dataclass
class Settings:
    session: SessionSettings = field(default_factory=SessionSettings)
    estimator: EstimatorSettings = field(default_factory=EstimatorSettings)
    generator: GeneratorSettings = field(default_factory=GeneratorSettings)


def known_keys(cls) -> set:
    return {f.name for f in fields(cls)}
