"""Change feed: push subscribers and polling cursor."""
from salon.changes import ChangeFeed


def test_subscribers_receive_events_in_order():
    feed = ChangeFeed()
    received = []
    feed.subscribe(received.append)

    feed.publish("timeslot", "update", 1)
    feed.publish("appointment", "insert", 7)

    assert [(e.seq, e.table, e.action, e.row_id) for e in received] == [
        (1, "timeslot", "update", "1"),
        (2, "appointment", "insert", "7"),
    ]


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    received = []
    feed.subscribe(received.append)
    feed.unsubscribe(received.append)

    feed.publish("service", "delete", 3)

    assert received == []


def test_since_returns_only_newer_events():
    feed = ChangeFeed()
    for row_id in range(5):
        feed.publish("timeslot", "insert", row_id)

    assert [e.seq for e in feed.since(3)] == [4, 5]
    assert feed.since(feed.cursor) == []


def test_buffer_is_bounded():
    feed = ChangeFeed(maxlen=3)
    for row_id in range(10):
        feed.publish("timeslot", "insert", row_id)

    assert [e.seq for e in feed.since(0)] == [8, 9, 10]


def test_broken_listener_does_not_stop_others():
    feed = ChangeFeed()
    received = []

    def broken(event):
        raise ValueError("boom")

    feed.subscribe(broken)
    feed.subscribe(received.append)

    event = feed.publish("appointment", "delete", 1)

    assert received == [event]
