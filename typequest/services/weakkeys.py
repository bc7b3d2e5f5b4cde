# services/weakkeys.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence

from typequest.app.config import EstimatorSettings
from typequest.services.keystats import KeyObservation, KeyStats

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"


@dataclass(frozen=True)
class WeaknessResult:
    key: str
    accuracy_estimate: float
    confidence: float
    is_weak: bool
    observations: int
    priority: int = 0
    trend: str = STABLE


class WeaknessEstimator:
    """
    Shrinkage estimate of per-key accuracy.

    Each key's observed ratio is blended with `prior_weight` virtual
    observations at `prior_mean`, so a single miss pulls the estimate toward
    the prior instead of to zero. Results are recomputed on every query.
    """

    def __init__(self, key_stats: KeyStats, settings: Optional[EstimatorSettings] = None):
        self.key_stats = key_stats
        self.settings = settings or EstimatorSettings()

    def _weight(self, obs: KeyObservation, now_ms: Optional[int]) -> float:
        half_life = self.settings.half_life_ms
        if half_life is None or now_ms is None:
            return 1.0
        age = max(0, now_ms - obs.timestamp_ms)
        return 0.5 ** (age / half_life)

    def _counts(self, observations: Sequence[KeyObservation], now_ms: Optional[int]):
        n = correct = 0.0
        for obs in observations:
            w = self._weight(obs, now_ms)
            n += w
            if obs.correct:
                correct += w
        return n, correct

    def _trend(self, observations: Sequence[KeyObservation], now_ms: Optional[int]) -> str:
        cfg = self.settings
        if len(observations) < cfg.trend_min_observations:
            return STABLE
        mid = len(observations) // 2
        older_n, older_ok = self._counts(observations[:mid], now_ms)
        newer_n, newer_ok = self._counts(observations[mid:], now_ms)
        older = older_ok / older_n if older_n > 0 else 0.0
        newer = newer_ok / newer_n if newer_n > 0 else 0.0
        diff = newer - older
        if diff > cfg.trend_band:
            return IMPROVING
        if diff < -cfg.trend_band:
            return DECLINING
        return STABLE

    def _analyze(self, key: str, observations: Sequence[KeyObservation],
                 now_ms: Optional[int]) -> WeaknessResult:
        cfg = self.settings
        n, correct = self._counts(observations, now_ms)
        estimate = (correct + cfg.prior_weight * cfg.prior_mean) / (n + cfg.prior_weight)
        confidence = n / (n + cfg.prior_weight)
        is_weak = estimate < cfg.weakness_threshold and confidence >= cfg.min_confidence_to_flag
        priority = 0
        if is_weak:
            priority = int(round(min(100.0, (1.0 - estimate) * 60 + confidence * 40)))
        return WeaknessResult(
            key=key,
            accuracy_estimate=estimate,
            confidence=confidence,
            is_weak=is_weak,
            observations=len(observations),
            priority=priority,
            trend=self._trend(observations, now_ms),
        )

    def _reference_time(self, now_ms: Optional[int]) -> Optional[int]:
        # ages are measured against the newest observation unless told otherwise
        if self.settings.half_life_ms is None:
            return None
        return now_ms if now_ms is not None else self.key_stats.latest_timestamp()

    def analyze_key(self, key: str, now_ms: Optional[int] = None) -> Optional[WeaknessResult]:
        observations = self.key_stats.observations(key)
        if not observations:
            return None
        return self._analyze(key, observations, self._reference_time(now_ms))

    def analyze_all_keys(self, now_ms: Optional[int] = None) -> List[WeaknessResult]:
        snapshot = self.key_stats.snapshot()
        ref = self._reference_time(now_ms)
        return [self._analyze(key, obs, ref) for key, obs in snapshot.items()]

    def weak_keys(self, limit: Optional[int] = None, now_ms: Optional[int] = None) -> List[WeaknessResult]:
        weak = [r for r in self.analyze_all_keys(now_ms) if r.is_weak]
        weak.sort(key=lambda r: (-r.priority, r.accuracy_estimate, r.key))
        return weak[:limit] if limit is not None else weak
