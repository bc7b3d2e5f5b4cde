import json
import logging
from pathlib import Path
from typing import Optional, Tuple, List

from typequest.app.config import (
    EstimatorSettings,
    GeneratorSettings,
    SessionSettings,
    Settings,
    known_keys,
)
from typequest.app.errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_CORPUS = (
    "The quick brown fox jumps over the lazy dog. Programming is the art of telling another "
    "human what one wants the computer to do.\n"
    "Clean code reads like well-written prose. Any fool can write code that a computer can "
    "understand. Good programmers write code that humans can understand.\n"
    "Simplicity is the soul of efficiency. First solve the problem then write the code.\n"
    "Knowledge is power. Time is money. Practice makes perfect.\n"
    "The only way to do great work is to love what you do. Stay hungry stay foolish.\n"
    "Life is what happens when you are busy making other plans.\n"
    "The way to get started is to quit talking and begin doing.\n"
    "Life is really simple, but we insist on making it complicated.\n"
    "Code is poetry written in logic.\n"
    "Design patterns are solutions to recurring problems in software design.\n"
    "Unit testing is a software testing method by which individual units of source code are tested.\n"
)

SETTINGS_PATH = Path("data/settings.json")

_SECTIONS = (
    ("session", SessionSettings),
    ("estimator", EstimatorSettings),
    ("generator", GeneratorSettings),
)


def load_corpus(path: Optional[str] = None) -> str:
    if path is None:
        return DEFAULT_CORPUS
    try:
        text = Path(path).read_text(encoding="utf-8", errors="ignore").replace("\r\n", "\n")
    except OSError as e:
        log.warning("Failed to read corpus %s: %s; using built-in corpus", path, e)
        return DEFAULT_CORPUS
    if not text.strip():
        log.warning("Corpus %s is empty; using built-in corpus", path)
        return DEFAULT_CORPUS
    return text


def _section(name: str, cls, raw) -> object:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"settings section '{name}' must be an object")
    allowed = known_keys(cls)
    unknown = sorted(set(raw) - allowed)
    if unknown:
        log.warning("Ignoring unknown %s settings: %s", name, ", ".join(unknown))
    values = {k: v for k, v in raw.items() if k in allowed}
    try:
        return cls(**values)
    except TypeError as e:
        raise ConfigError(f"invalid '{name}' settings: {e}") from e


def load_settings(path=SETTINGS_PATH) -> Settings:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return Settings()
    except (OSError, json.JSONDecodeError) as e:
        log.warning("Failed to load settings from %s: %s; using defaults", path, e)
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError("settings file must contain a JSON object")
    return Settings(**{name: _section(name, cls, data.get(name)) for name, cls in _SECTIONS})


def load_event_log(path) -> Tuple[str, List[Tuple[str, int]]]:
    """Read a recorded session: exercise text plus (character, timestamp_ms) pairs."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: event log must be a JSON object")
    text = data.get("text")
    if not isinstance(text, str):
        raise ValueError(f"{path}: 'text' must be a string")
    raw_events = data.get("events", [])
    if not isinstance(raw_events, list):
        raise ValueError(f"{path}: 'events' must be a list")
    events = []
    for i, ev in enumerate(raw_events):
        if not isinstance(ev, dict):
            raise ValueError(f"{path}: event {i} must be an object")
        ts = ev.get("timestamp_ms")
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError(f"{path}: event {i} needs a numeric 'timestamp_ms'")
        events.append((ev.get("character", ""), int(ts)))
    return text, events
