import random

import pytest

from typequest.app.errors import SessionStateError
from typequest.app.state import ComboMilestone, SessionComplete, SessionStatus
from typequest.services.typing_engine import TypingEngine

from conftest import type_text


def test_cat_with_one_typo(key_stats):
    engine = TypingEngine("cat", key_stats)
    results = type_text(engine, "caxt")

    st = engine.state
    assert st.cursor == 3
    assert st.total_errors == 1
    assert st.total_typed_chars == 4
    assert engine.accuracy() == 75.0
    assert st.error_positions == {2}
    assert [r.cursor for r in results] == [1, 2, 2, 3]

    record = results[-1].record
    assert record is not None
    assert record.accuracy == 75.0
    # 0.3s run is clamped to 1s: (3 / 5) / (1 / 60)
    assert record.wpm == pytest.approx(36.0)
    assert record.duration == pytest.approx(0.3)
    assert record.max_combo == 2
    assert record.score == 30
    assert engine.status is SessionStatus.COMPLETE


def test_mismatch_is_charged_to_expected_key(key_stats):
    engine = TypingEngine("cat", key_stats)
    type_text(engine, "caxt")

    assert "x" not in key_stats
    assert [o.correct for o in key_stats.observations("t")] == [False, True]
    assert [o.correct for o in key_stats.observations("c")] == [True]
    assert len(key_stats) == 4


def test_idle_until_first_keystroke():
    engine = TypingEngine("abc")
    assert engine.status is SessionStatus.IDLE
    assert engine.state.start_timestamp is None
    assert engine.wpm() == 0.0
    assert engine.accuracy() == 100.0

    engine.submit_keystroke("a", 5000)
    assert engine.status is SessionStatus.ACTIVE
    assert engine.state.start_timestamp == 5000


def test_first_keystroke_starts_timer_even_when_wrong():
    engine = TypingEngine("abc")
    engine.submit_keystroke("z", 1234)
    assert engine.status is SessionStatus.ACTIVE
    assert engine.state.start_timestamp == 1234
    assert engine.state.cursor == 0


def test_submit_after_complete_raises():
    engine = TypingEngine("a")
    result = engine.submit_keystroke("a", 0)
    assert result.completed
    with pytest.raises(SessionStateError):
        engine.submit_keystroke("a", 100)


def test_session_complete_fires_once():
    engine = TypingEngine("ab")
    results = type_text(engine, "ab")
    completions = [ev for r in results for ev in r.events if isinstance(ev, SessionComplete)]
    assert len(completions) == 1
    assert completions[0].record is engine.record


def test_combo_run_then_error():
    engine = TypingEngine("abcdefgh")
    type_text(engine, "abcde")
    engine.submit_keystroke("!", 1000)
    assert engine.state.combo_count == 0
    assert engine.state.max_combo >= 5
    assert engine.multiplier() == 1.0


def test_combo_milestones_and_per_keystroke_scoring():
    engine = TypingEngine("a" * 30)
    results = type_text(engine, "a" * 30)

    milestones = [ev for r in results for ev in r.events if isinstance(ev, ComboMilestone)]
    assert [(m.level, m.combo) for m in milestones] == [(1, 10), (2, 25)]
    assert milestones[0].multiplier == 1.5
    assert results[9].milestone is not None
    assert results[10].milestone is None

    # 9 x 10 + 15 x 15 + 6 x 20
    assert engine.record.score == 435
    assert engine.record.max_combo == 30


def test_milestone_crossing_count_after_break():
    text = "a" * 10 + "b" + "a" * 10
    engine = TypingEngine(text)
    first = type_text(engine, "a" * 10)
    engine.submit_keystroke("x", 2000)
    second = type_text(engine, "b" + "a" * 10, start_ms=3000)

    crossings = [r.milestone for r in first + second if r.milestone is not None]
    assert [(m.level, m.combo) for m in crossings] == [(1, 10), (1, 10)]


def test_malformed_input_is_a_mismatch():
    engine = TypingEngine("ab")
    for i, bad in enumerate([None, "", "ab", 7]):
        result = engine.submit_keystroke(bad, i * 10)
        assert not result.is_correct
        assert result.cursor == 0
    assert engine.state.total_errors == 4
    assert engine.state.total_typed_chars == 4
    assert engine.accuracy() == 0.0


def test_reset_mid_session_discards_state(key_stats):
    engine = TypingEngine("hello", key_stats)
    type_text(engine, "he")
    engine.reset_session("world")

    assert engine.status is SessionStatus.IDLE
    assert engine.state.text == "world"
    assert engine.state.cursor == 0
    assert engine.state.keystroke_log == []
    assert engine.record is None
    # observations already written to the store are kept
    assert len(key_stats) == 2


def test_abandon_blocks_input_and_yields_no_record():
    engine = TypingEngine("hello")
    type_text(engine, "he")
    engine.abandon()
    assert engine.status is SessionStatus.ABANDONED
    assert engine.record is None
    with pytest.raises(SessionStateError):
        engine.submit_keystroke("l", 500)

    engine.reset_session("again")
    assert engine.status is SessionStatus.IDLE


def test_abandon_completed_session_raises():
    engine = TypingEngine("a")
    engine.submit_keystroke("a", 0)
    with pytest.raises(SessionStateError):
        engine.abandon()


@pytest.mark.parametrize("text", ["", None])
def test_empty_text_rejected(text):
    with pytest.raises(ValueError):
        TypingEngine(text)


def test_random_stream_keeps_invariants():
    rng = random.Random(7)
    text = "abc abc"
    engine = TypingEngine(text)
    last_cursor = 0
    ts = 0
    for _ in range(500):
        ts += rng.randint(0, 400)
        result = engine.submit_keystroke(rng.choice("abc x"), ts)
        st = engine.state
        assert result.cursor >= last_cursor
        last_cursor = result.cursor
        assert 0.0 <= engine.accuracy() <= 100.0
        assert engine.wpm() >= 0.0
        assert st.combo_count <= st.total_typed_chars - st.total_errors
        assert (st.cursor == len(text)) == (engine.status is SessionStatus.COMPLETE)
        if result.completed:
            break
    assert engine.status is SessionStatus.COMPLETE
    assert 0.0 <= engine.record.accuracy <= 100.0


def test_live_metrics_and_hesitation():
    engine = TypingEngine("abcd")
    engine.submit_keystroke("a", 0)
    engine.submit_keystroke("b", 300)
    engine.submit_keystroke("x", 500)

    m = engine.metrics()
    assert m.cursor == 2
    assert m.progress == 50.0
    assert m.combo == 0
    assert m.elapsed_seconds == 1.0
    assert m.accuracy == pytest.approx(200 / 3)

    log = engine.state.keystroke_log
    assert [k.hesitation_ms for k in log] == [0, 300, 200]
    assert [k.previous_key for k in log] == [None, "a", "b"]
    assert log[2].expected == "c"
    assert engine.average_hesitation_ms() == 250.0


def test_live_wpm_uses_supplied_now():
    engine = TypingEngine("aaaaaaaaaa")
    type_text(engine, "aaaaa", step_ms=0)
    # 5 chars in 60s -> 1 word per minute
    assert engine.wpm(now_ms=60_000) == pytest.approx(1.0)


def test_wpm_series_has_one_value_per_keystroke():
    engine = TypingEngine("abc")
    type_text(engine, "axbc", step_ms=250)
    series = engine.wpm_series()
    assert len(series) == 4
    assert all(v >= 0 for v in series)
