import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from typequest.services.keystats import KeyStats


@pytest.fixture
def key_stats():
    return KeyStats()


def type_text(engine, chars, start_ms=0, step_ms=100):
    """Feed `chars` with evenly spaced timestamps; returns the list of results."""
    results = []
    for i, ch in enumerate(chars):
        results.append(engine.submit_keystroke(ch, start_ms + i * step_ms))
    return results
