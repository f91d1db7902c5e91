# portal/services/realtime.py
from __future__ import annotations

import json
import time
from typing import Any, Iterable, Iterator

import redis
from flask import current_app

# Imported by portal.extensions: keep this module free of model imports.

EXTENSION_KEY = "message_broker"


def _decode(data) -> dict | None:
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        payload = json.loads(data)
    except (TypeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


# =========================================================
# Subscription
# =========================================================
class Subscription:
    """One listener on one project channel. Owns its Redis pub/sub connection."""

    def __init__(self, pubsub, channel: str):
        self._pubsub = pubsub
        self.channel = channel
        self.closed = False

    def get(self, timeout: float = 0) -> dict | None:
        """Next published payload, or None once `timeout` seconds pass without one."""
        deadline = time.monotonic() + (timeout or 0)
        while True:
            remaining = max(deadline - time.monotonic(), 0)
            msg = self._pubsub.get_message(ignore_subscribe_messages=True, timeout=remaining)
            if msg is not None and msg.get("type") == "message":
                payload = _decode(msg.get("data"))
                if payload is not None:
                    return payload
            if remaining <= 0:
                return None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._pubsub.unsubscribe(self.channel)
        finally:
            self._pubsub.close()


# =========================================================
# Broker
# =========================================================
class MessageBroker:
    """
    Fan-out of newly committed rows over Redis pub/sub, one channel per topic.

    Every worker talks to the same Redis, so a stream held by one worker
    receives rows committed through any other.
    """

    def __init__(self, client: redis.Redis | None = None, *, channel_prefix: str = "keyline:messages:"):
        self._client = client
        self.channel_prefix = channel_prefix

    def init_app(self, app, client: redis.Redis | None = None) -> None:
        if client is None:
            client = redis.Redis.from_url(app.config["REDIS_URL"])
        app.extensions[EXTENSION_KEY] = client

    @property
    def client(self) -> redis.Redis:
        if self._client is not None:
            return self._client
        return current_app.extensions[EXTENSION_KEY]

    def channel(self, topic: Any) -> str:
        return f"{self.channel_prefix}{topic}"

    def subscribe(self, topic: Any) -> Subscription:
        channel = self.channel(topic)
        pubsub = self.client.pubsub()
        pubsub.subscribe(channel)
        return Subscription(pubsub, channel)

    def publish(self, topic: Any, payload: dict) -> int:
        """Returns how many listeners (across all workers) received the payload."""
        return self.client.publish(self.channel(topic), json.dumps(payload, default=str))


# =========================================================
# Server-sent events
# =========================================================
def format_sse(data: dict | None = None, *, event: str | None = None, comment: str | None = None) -> str:
    lines: list[str] = []
    if comment is not None:
        lines.append(f": {comment}")
    if event:
        lines.append(f"event: {event}")
    if data is not None:
        lines.append("data: " + json.dumps(data, default=str))
    return "\n".join(lines) + "\n\n"


def event_stream(
    subscription: Subscription,
    backlog: Iterable[dict],
    *,
    keepalive_seconds: float = 15,
) -> Iterator[str]:
    """
    Yields the existing log first, then pushed rows.

    A row already sent (same "id") is skipped, which covers the window
    between subscribing and loading the backlog. The subscription is
    released when the consumer stops iterating.
    """
    seen: set[str] = set()
    try:
        for item in backlog:
            seen.add(str(item.get("id")))
            yield format_sse(item, event="message")

        yield format_sse(comment="ready")

        while True:
            item = subscription.get(timeout=keepalive_seconds)
            if item is None:
                yield format_sse(comment="keepalive")
                continue

            key = str(item.get("id"))
            if key in seen:
                continue
            seen.add(key)
            yield format_sse(item, event="message")
    finally:
        subscription.close()
