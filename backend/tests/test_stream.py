from stream import EventStream


def test_delivers_only_to_matching_user(make_stored_reading):
    stream = EventStream()
    mine, theirs = [], []
    stream.subscribe_readings("user_001", mine.append)
    stream.subscribe_readings("user_002", theirs.append)

    delivered = stream.publish_reading(make_stored_reading(0))

    assert delivered == 1
    assert len(mine) == 1
    assert theirs == []


def test_channels_are_independent(make_stored_reading):
    stream = EventStream()
    alerts = []
    stream.subscribe_alerts("user_001", alerts.append)
    assert stream.publish_reading(make_stored_reading(0)) == 0
    assert alerts == []


def test_publish_order_is_preserved(make_stored_reading):
    stream = EventStream()
    seen = []
    stream.subscribe_readings("user_001", lambda r: seen.append(r.id))
    for i in range(5):
        stream.publish_reading(make_stored_reading(i))
    assert seen == ["r0", "r1", "r2", "r3", "r4"]


def test_unsubscribe(make_stored_reading):
    stream = EventStream()
    seen = []
    sub = stream.subscribe_readings("user_001", seen.append)
    sub.unsubscribe()
    sub.unsubscribe()
    stream.publish_reading(make_stored_reading(0))
    assert seen == []


def test_failing_subscriber_does_not_block_others(make_stored_reading):
    stream = EventStream()
    seen = []

    def broken(reading):
        raise RuntimeError("boom")

    stream.subscribe_readings("user_001", broken)
    stream.subscribe_readings("user_001", seen.append)

    assert stream.publish_reading(make_stored_reading(0)) == 1
    assert len(seen) == 1


def test_close_drops_everyone(make_stored_reading):
    stream = EventStream()
    seen = []
    stream.subscribe_readings("user_001", seen.append)
    stream.close()
    assert stream.publish_reading(make_stored_reading(0)) == 0
