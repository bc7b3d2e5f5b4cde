from typequest.app.calculation import star_rating
from typequest.app.state import PerformanceRecord, SessionStatus
from typequest.services.keystats import KeyObservation, KeyStats
from typequest.services.markov import MarkovModel, MarkovTextGenerator
from typequest.services.typing_engine import TypingEngine
from typequest.services.weakkeys import WeaknessEstimator, WeaknessResult

__version__ = "0.1.0"
