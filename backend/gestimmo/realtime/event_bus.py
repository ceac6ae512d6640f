# backend/gestimmo/realtime/event_bus.py
from __future__ import annotations

import asyncio
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Protocol

log = logging.getLogger("gestimmo.realtime")


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def sse_data(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


def sse_comment(text: str) -> str:
    return f": {text}\n\n"


class Subscriber(Protocol):
    def send(self, text: str) -> None: ...

    def close(self) -> None: ...


class QueueSubscriber:
    """
    One open stream. Frames are buffered in a bounded queue that the
    response generator drains; a full queue is a failed write.
    """

    def __init__(self, maxsize: int = 100, actor_id: int | None = None):
        self.queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=maxsize)
        self.actor_id = actor_id
        self.closed = False

    def send(self, text: str) -> None:
        if self.closed:
            raise ConnectionError("subscriber closed")
        self.queue.put_nowait(text)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.queue.put_nowait(None)
        except asyncio.QueueFull:
            # Reader checks `closed` after every frame.
            pass


class EventBus:
    """
    Process-local registry of open realtime streams.

    Created and disposed by the application lifespan. Nothing is persisted:
    a client that reconnects has missed every event published meanwhile.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: set[Subscriber] = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.discard(subscriber)

    def publish(self, event: dict[str, Any]) -> int:
        """Best-effort fan-out of a mutation event. Returns how many subscribers got it."""
        frame = sse_data({"type": "mutation", "ts": _iso_now(), **event})

        with self._lock:
            targets = list(self._subscribers)

        delivered = 0
        dropped: list[Subscriber] = []
        for sub in targets:
            try:
                sub.send(frame)
                delivered += 1
            except Exception:
                dropped.append(sub)

        if dropped:
            with self._lock:
                for sub in dropped:
                    self._subscribers.discard(sub)
            log.info("dropped %d realtime subscriber(s)", len(dropped))
        return delivered

    def dispose(self) -> None:
        with self._lock:
            subs = list(self._subscribers)
            self._subscribers.clear()
        for sub in subs:
            sub.close()
