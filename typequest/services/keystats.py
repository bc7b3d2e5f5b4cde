# services/keystats.py
from __future__ import annotations
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class KeyObservation:
    key: str
    correct: bool
    timestamp_ms: int


class KeyStats:
    """
    Append-only per-key observation ledger.

    The session engine writes into it, the weakness estimator reads from it.
    `max_per_key` caps each key's log; the oldest entries are dropped first.
    """

    def __init__(self, max_per_key: Optional[int] = None):
        if max_per_key is not None and max_per_key < 1:
            raise ValueError("max_per_key must be >= 1")
        self.max_per_key = max_per_key
        self._log: Dict[str, List[KeyObservation]] = OrderedDict()
        self._lock = threading.Lock()

    def append(self, obs: KeyObservation) -> None:
        with self._lock:
            bucket = self._log.setdefault(obs.key, [])
            bucket.append(obs)
            if self.max_per_key is not None and len(bucket) > self.max_per_key:
                del bucket[: len(bucket) - self.max_per_key]

    def record(self, key: str, correct: bool, timestamp_ms: int) -> KeyObservation:
        obs = KeyObservation(key, bool(correct), int(timestamp_ms))
        self.append(obs)
        return obs

    def extend(self, observations: Iterable[KeyObservation]) -> None:
        for obs in observations:
            self.append(obs)

    def observations(self, key: str) -> List[KeyObservation]:
        with self._lock:
            return list(self._log.get(key, ()))

    def keys(self) -> List[str]:
        with self._lock:
            return [k for k, v in self._log.items() if v]

    def snapshot(self) -> Dict[str, List[KeyObservation]]:
        with self._lock:
            return {k: list(v) for k, v in self._log.items() if v}

    def latest_timestamp(self) -> Optional[int]:
        with self._lock:
            stamps = [obs.timestamp_ms for v in self._log.values() for obs in v]
        return max(stamps) if stamps else None

    def prune(self, max_per_key: Optional[int] = None,
              older_than_ms: Optional[int] = None) -> int:
        """Drop observations by policy; returns how many were removed."""
        removed = 0
        with self._lock:
            for key in list(self._log):
                bucket = self._log[key]
                before = len(bucket)
                if older_than_ms is not None:
                    bucket = [o for o in bucket if o.timestamp_ms >= older_than_ms]
                if max_per_key is not None and len(bucket) > max_per_key:
                    bucket = bucket[len(bucket) - max_per_key:]
                removed += before - len(bucket)
                if bucket:
                    self._log[key] = bucket
                else:
                    del self._log[key]
        return removed

    def clear(self) -> None:
        with self._lock:
            self._log.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._log.values())

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return bool(self._log.get(key))
