# core/bridge.py
"""Qt hook for the presentation layer: widgets connect to these signals
instead of polling the engine. Nothing in the CLI uses it."""
from __future__ import annotations
from typing import Optional

from PySide6.QtCore import QDateTime, QObject, Signal

from typequest.app.state import KeystrokeResult, SessionStatus
from typequest.services.keystats import KeyStats
from typequest.services.typing_engine import TypingEngine
from typequest.services.weakkeys import WeaknessEstimator


class SessionBridge(QObject):
    """Relays engine results to widgets as Qt signals."""

    firstKey = Signal(str)
    keystroke = Signal(int, bool)  # cursor, correct
    comboMilestone = Signal(int, int)  # level, combo
    finished = Signal(float, float, float, dict)  # wpm, accuracy, duration, weak keys

    def __init__(self, engine: TypingEngine, estimator: Optional[WeaknessEstimator] = None,
                 parent=None):
        super().__init__(parent)
        self.engine = engine
        self.estimator = estimator

    @classmethod
    def for_text(cls, text: str, key_stats: Optional[KeyStats] = None, parent=None) -> "SessionBridge":
        key_stats = key_stats if key_stats is not None else KeyStats()
        return cls(TypingEngine(text, key_stats), WeaknessEstimator(key_stats), parent)

    def start(self, text: str) -> None:
        self.engine.reset_session(text)

    def key_pressed(self, ch: str, timestamp_ms: Optional[int] = None) -> KeystrokeResult:
        if timestamp_ms is None:
            timestamp_ms = QDateTime.currentMSecsSinceEpoch()
        was_idle = self.engine.status is SessionStatus.IDLE
        result = self.engine.submit_keystroke(ch, timestamp_ms)
        if was_idle:
            self.firstKey.emit(ch if isinstance(ch, str) else "")
        self.keystroke.emit(result.cursor, result.is_correct)
        milestone = result.milestone
        if milestone is not None:
            self.comboMilestone.emit(milestone.level, milestone.combo)
        if result.record is not None:
            rec = result.record
            self.finished.emit(rec.wpm, rec.accuracy, rec.duration, self._weak_keys())
        return result

    def _weak_keys(self) -> dict:
        if self.estimator is None:
            return {}
        return {r.key: r.accuracy_estimate for r in self.estimator.weak_keys()}
