from typing import List, Optional, Sequence

from typequest.app.config import CHARS_PER_WORD, MIN_ELAPSED_SECONDS, ROLLING_WPM_WINDOW_MS
from typequest.app.state import PerformanceRecord


def elapsed_seconds(start_ms: Optional[int], now_ms: Optional[int],
                    floor: float = MIN_ELAPSED_SECONDS) -> float:
    """Seconds since the first keystroke, never below `floor` (avoids /0 on tiny runs)."""
    if start_ms is None or now_ms is None:
        return floor
    return max(floor, (now_ms - start_ms) / 1000.0)


def compute_wpm(chars: int, seconds: float, chars_per_word: int = CHARS_PER_WORD) -> float:
    # WPM = (chars / 5) / (elapsed minutes)
    if seconds <= 0:
        return 0.0
    return max(0.0, (chars / float(chars_per_word)) / (seconds / 60.0))


def compute_accuracy(typed: int, errors: int) -> float:
    if typed <= 0:
        return 100.0
    return max(0.0, min(100.0, 100.0 * (typed - errors) / typed))


def star_rating(record: PerformanceRecord) -> int:
    if record.accuracy >= 95 and record.wpm >= 40:
        return 3
    if record.accuracy >= 90 and record.wpm >= 30:
        return 2
    if record.accuracy >= 80:
        return 1
    return 0


def rolling_wpm(correct_flags: Sequence[bool], timestamps_ms: Sequence[int],
                window_ms: int = ROLLING_WPM_WINDOW_MS,
                chars_per_word: int = CHARS_PER_WORD) -> List[float]:
    """
    Sliding-window WPM, one value per keystroke.

    Each value counts the correct keystrokes inside the last `window_ms` and
    divides by the time actually covered (from the oldest keystroke in the
    window, or the window edge, to now), floored at 0.5s so the first
    keystrokes do not spike.
    """
    n = len(timestamps_ms)
    if n == 0 or len(correct_flags) != n:
        return []
    out: List[float] = []
    start_idx = 0
    correct = 0
    for i in range(n):
        t_now = timestamps_ms[i]
        if correct_flags[i]:
            correct += 1
        # keep the window within [t_now - window_ms, t_now]
        while start_idx < i and timestamps_ms[start_idx] < t_now - window_ms:
            if correct_flags[start_idx]:
                correct -= 1
            start_idx += 1
        span_ms = t_now - max(timestamps_ms[start_idx], t_now - window_ms)
        dur = max(0.5, span_ms / 1000.0)  # avoid spikes
        out.append((correct / float(chars_per_word)) / (dur / 60.0))
    return out
