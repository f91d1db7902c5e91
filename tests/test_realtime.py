import json

import fakeredis
import pytest

from portal.services.realtime import MessageBroker, event_stream, format_sse


def _data(chunk):
    line = next(l for l in chunk.splitlines() if l.startswith("data: "))
    return json.loads(line[len("data: "):])


@pytest.fixture
def server():
    return fakeredis.FakeServer()


def _worker(server):
    """A broker with its own connection, as a separate gunicorn worker would have."""
    return MessageBroker(client=fakeredis.FakeRedis(server=server))


def test_publish_reaches_only_matching_topic(server):
    broker = _worker(server)
    a = broker.subscribe("project-a")
    b = broker.subscribe("project-b")
    try:
        assert broker.publish("project-a", {"id": "1"}) == 1
        assert a.get(timeout=0.5) == {"id": "1"}
        assert b.get(timeout=0.05) is None
    finally:
        a.close()
        b.close()


def test_publish_from_another_worker_reaches_subscriber(server):
    listener = _worker(server)
    writer = _worker(server)

    sub = listener.subscribe("p")
    try:
        assert writer.publish("p", {"id": "m1", "content": "hello"}) == 1
        assert sub.get(timeout=0.5) == {"id": "m1", "content": "hello"}
    finally:
        sub.close()


def test_closed_subscription_stops_receiving(server):
    broker = _worker(server)
    sub = broker.subscribe("p")

    sub.close()
    sub.close()
    assert broker.publish("p", {"id": "x"}) == 0


def test_channels_are_namespaced_per_project(server):
    broker = _worker(server)
    assert broker.channel("3f2a") == "keyline:messages:3f2a"


def test_stream_sends_backlog_then_pushes_without_duplicates(server):
    listener = _worker(server)
    writer = _worker(server)

    sub = listener.subscribe("p")
    stream = event_stream(sub, [{"id": "m1", "content": "old"}], keepalive_seconds=0.05)

    assert _data(next(stream))["id"] == "m1"
    assert next(stream).startswith(": ready")

    # m1 arrives again through the push path (committed while the backlog loaded)
    writer.publish("p", {"id": "m1", "content": "old"})
    writer.publish("p", {"id": "m2", "content": "new"})

    assert _data(next(stream))["id"] == "m2"
    assert next(stream).startswith(": keepalive")

    stream.close()
    assert sub.closed
    assert writer.publish("p", {"id": "m3"}) == 0


def test_format_sse():
    assert format_sse({"a": 1}, event="message") == 'event: message\ndata: {"a": 1}\n\n'
    assert format_sse(comment="keepalive") == ": keepalive\n\n"
