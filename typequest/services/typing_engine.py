# services/typing_engine.py
from __future__ import annotations
import logging
from typing import List, Optional

from typequest.app.calculation import (
    compute_accuracy,
    compute_wpm,
    elapsed_seconds,
    rolling_wpm,
)
from typequest.app.config import ROLLING_WPM_WINDOW_MS, SessionSettings
from typequest.app.errors import SessionStateError
from typequest.app.state import (
    ComboMilestone,
    KeystrokeEvent,
    KeystrokeResult,
    LiveMetrics,
    PerformanceRecord,
    SessionComplete,
    SessionState,
    SessionStatus,
)
from typequest.services.keystats import KeyStats

log = logging.getLogger(__name__)


class TypingEngine:
    """
    Per-exercise state machine: Idle -> Active -> Complete | Abandoned.

    Timestamps come from the caller, so a recorded event log replays to the
    same metrics every time.
    """

    def __init__(self, text: str, key_stats: Optional[KeyStats] = None,
                 settings: Optional[SessionSettings] = None):
        self.settings = settings or SessionSettings()
        self.key_stats = key_stats
        self.record: Optional[PerformanceRecord] = None
        self.state = self._new_state(text)

    @staticmethod
    def _new_state(text: str) -> SessionState:
        if not isinstance(text, str) or not text:
            raise ValueError("exercise text must be a non-empty string")
        return SessionState(text=text)

    # --- lifecycle ---

    def reset_session(self, text: str) -> None:
        new_state = self._new_state(text)
        if self.state.is_running:
            log.info("Session abandoned at %d/%d", self.state.cursor, len(self.state.text))
        self.state = new_state
        self.record = None

    def abandon(self) -> None:
        if self.state.status is SessionStatus.COMPLETE:
            raise SessionStateError("cannot abandon a completed session")
        if self.state.status is SessionStatus.ABANDONED:
            return
        log.info("Session abandoned at %d/%d", self.state.cursor, len(self.state.text))
        self.state.status = SessionStatus.ABANDONED

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    # --- input ---

    def submit_keystroke(self, ch, timestamp_ms: int) -> KeystrokeResult:
        st = self.state
        if st.is_finished:
            raise SessionStateError(f"keystroke submitted to a {st.status.value} session")

        timestamp_ms = int(timestamp_ms)
        if st.status is SessionStatus.IDLE:
            st.status = SessionStatus.ACTIVE
            st.start_timestamp = timestamp_ms
            log.info("Session started (%d chars)", len(st.text))

        expected = st.expected
        is_correct = isinstance(ch, str) and ch == expected
        hesitation = 0 if st.last_timestamp is None else max(0, timestamp_ms - st.last_timestamp)
        previous_key = st.text[st.cursor - 1] if st.cursor > 0 else None
        st.keystroke_log.append(
            KeystrokeEvent(
                character=ch if isinstance(ch, str) else "",
                expected=expected,
                timestamp_ms=timestamp_ms,
                is_correct=is_correct,
                hesitation_ms=hesitation,
                previous_key=previous_key,
            )
        )
        st.last_timestamp = timestamp_ms
        st.total_typed_chars += 1

        events: List[object] = []
        if is_correct:
            st.cursor += 1
            st.combo_count += 1
            st.max_combo = max(st.max_combo, st.combo_count)
            tier = self.settings.tier_for(st.combo_count)
            level = tier.level if tier else 0
            multiplier = tier.multiplier if tier else 1.0
            st.score += int(round(self.settings.base_points * multiplier))
            if level > st.combo_level:
                milestone = ComboMilestone(level, st.combo_count, multiplier)
                events.append(milestone)
                log.debug("Combo milestone level=%d combo=%d", level, st.combo_count)
            st.combo_level = level
        else:
            st.error_positions.add(st.cursor)
            st.combo_count = 0
            st.combo_level = 0
            st.total_errors += 1

        # mismatches are charged to the key that should have been pressed
        if self.key_stats is not None:
            self.key_stats.record(expected, is_correct, timestamp_ms)

        record = None
        if st.cursor == len(st.text):
            st.status = SessionStatus.COMPLETE
            record = self._finalize(timestamp_ms)
            events.append(SessionComplete(record))

        return KeystrokeResult(
            cursor=st.cursor,
            is_correct=is_correct,
            combo=st.combo_count,
            combo_level=st.combo_level,
            multiplier=self.multiplier(),
            events=events,
            record=record,
        )

    def _finalize(self, end_ms: int) -> PerformanceRecord:
        st = self.state
        self.record = PerformanceRecord(
            wpm=self.wpm(end_ms),
            accuracy=self.accuracy(),
            duration=max(0.0, (end_ms - st.start_timestamp) / 1000.0),
            max_combo=st.max_combo,
            score=st.score,
            total_chars=st.total_typed_chars,
            errors=st.total_errors,
        )
        log.info(
            "Session complete: %.1f wpm, %.1f%% accuracy, score %d",
            self.record.wpm, self.record.accuracy, self.record.score,
        )
        return self.record

    # --- metrics ---

    def multiplier(self) -> float:
        tier = self.settings.tier_for(self.state.combo_count)
        return tier.multiplier if tier else 1.0

    def elapsed_seconds(self, now_ms: Optional[int] = None) -> float:
        st = self.state
        if now_ms is None:
            now_ms = st.last_timestamp
        return elapsed_seconds(st.start_timestamp, now_ms, self.settings.min_elapsed_seconds)

    def wpm(self, now_ms: Optional[int] = None) -> float:
        if self.state.start_timestamp is None:
            return 0.0
        return compute_wpm(self.state.cursor, self.elapsed_seconds(now_ms),
                           self.settings.chars_per_word)

    def accuracy(self) -> float:
        return compute_accuracy(self.state.total_typed_chars, self.state.total_errors)

    def progress(self) -> float:
        return 100.0 * self.state.cursor / len(self.state.text)

    def metrics(self, now_ms: Optional[int] = None) -> LiveMetrics:
        st = self.state
        return LiveMetrics(
            cursor=st.cursor,
            progress=self.progress(),
            wpm=self.wpm(now_ms),
            accuracy=self.accuracy(),
            combo=st.combo_count,
            combo_level=st.combo_level,
            multiplier=self.multiplier(),
            score=st.score,
            elapsed_seconds=self.elapsed_seconds(now_ms) if st.start_timestamp is not None else 0.0,
        )

    def wpm_series(self, window_ms: int = ROLLING_WPM_WINDOW_MS) -> List[float]:
        keys = self.state.keystroke_log
        return rolling_wpm(
            [k.is_correct for k in keys],
            [k.timestamp_ms for k in keys],
            window_ms,
            self.settings.chars_per_word,
        )

    def average_hesitation_ms(self) -> float:
        keys = self.state.keystroke_log[1:]
        if not keys:
            return 0.0
        return sum(k.hesitation_ms for k in keys) / len(keys)
