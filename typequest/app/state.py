from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set


class SessionStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class KeystrokeEvent:
    character: str
    expected: str
    timestamp_ms: int
    is_correct: bool
    hesitation_ms: int = 0
    previous_key: Optional[str] = None


@dataclass(frozen=True)
class PerformanceRecord:
    wpm: float
    accuracy: float
    duration: float
    max_combo: int
    score: int
    total_chars: int = 0
    errors: int = 0


@dataclass(frozen=True)
class ComboMilestone:
    level: int
    combo: int
    multiplier: float


@dataclass(frozen=True)
class SessionComplete:
    record: PerformanceRecord


@dataclass(frozen=True)
class KeystrokeResult:
    """What a single submitted keystroke did to the session."""

    cursor: int
    is_correct: bool
    combo: int
    combo_level: int
    multiplier: float
    events: List[object] = field(default_factory=list)
    record: Optional[PerformanceRecord] = None

    @property
    def milestone(self) -> Optional[ComboMilestone]:
        for ev in self.events:
            if isinstance(ev, ComboMilestone):
                return ev
        return None

    @property
    def completed(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class LiveMetrics:
    cursor: int
    progress: float
    wpm: float
    accuracy: float
    combo: int
    combo_level: int
    multiplier: float
    score: int
    elapsed_seconds: float


@dataclass
class SessionState:
    text: str
    cursor: int = 0
    error_positions: Set[int] = field(default_factory=set)
    start_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None
    keystroke_log: List[KeystrokeEvent] = field(default_factory=list)
    combo_count: int = 0
    combo_level: int = 0
    max_combo: int = 0
    total_typed_chars: int = 0
    total_errors: int = 0
    score: int = 0
    status: SessionStatus = SessionStatus.IDLE

    @property
    def is_running(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def is_finished(self) -> bool:
        return self.status in (SessionStatus.COMPLETE, SessionStatus.ABANDONED)

    @property
    def expected(self) -> Optional[str]:
        if self.cursor < len(self.text):
            return self.text[self.cursor]
        return None
