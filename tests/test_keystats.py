from typequest.services.keystats import KeyObservation, KeyStats


def test_append_and_query(key_stats):
    key_stats.record("a", True, 10)
    key_stats.record("a", False, 20)
    key_stats.append(KeyObservation("b", True, 5))

    assert key_stats.keys() == ["a", "b"]
    assert [o.timestamp_ms for o in key_stats.observations("a")] == [10, 20]
    assert key_stats.observations("zz") == []
    assert key_stats.latest_timestamp() == 20
    assert len(key_stats) == 3


def test_snapshot_is_a_copy(key_stats):
    key_stats.record("a", True, 1)
    snap = key_stats.snapshot()
    key_stats.record("a", True, 2)
    assert len(snap["a"]) == 1


def test_max_per_key_drops_oldest():
    stats = KeyStats(max_per_key=3)
    for ts in range(5):
        stats.record("q", ts % 2 == 0, ts)
    assert [o.timestamp_ms for o in stats.observations("q")] == [2, 3, 4]


def test_prune_by_age_and_size(key_stats):
    for ts in range(10):
        key_stats.record("a", True, ts * 100)
    key_stats.record("b", False, 50)

    removed = key_stats.prune(older_than_ms=500)
    assert removed == 6
    assert "b" not in key_stats
    assert key_stats.prune(max_per_key=2) == 3
    assert [o.timestamp_ms for o in key_stats.observations("a")] == [800, 900]


def test_clear(key_stats):
    key_stats.record("a", True, 1)
    key_stats.clear()
    assert len(key_stats) == 0
    assert key_stats.latest_timestamp() is None
