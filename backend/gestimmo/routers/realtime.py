# backend/gestimmo/routers/realtime.py
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ..auth import Principal, get_stream_principal
from ..config import settings
from ..realtime.event_bus import QueueSubscriber, sse_comment, sse_data

log = logging.getLogger("gestimmo.realtime")

router = APIRouter(prefix="/realtime", tags=["realtime"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


async def _frames(request: Request, subscriber: QueueSubscriber):
    bus = request.app.state.event_bus
    bus.subscribe(subscriber)
    log.info("realtime stream opened", extra={"user_id": subscriber.actor_id})
    try:
        yield sse_data({"type": "connected", "ts": datetime.now(timezone.utc).isoformat()})
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            try:
                frame = await asyncio.wait_for(
                    subscriber.queue.get(), timeout=float(settings.realtime_heartbeat_seconds)
                )
            except asyncio.TimeoutError:
                yield sse_comment(f"ping {int(time.time() * 1000)}")
                continue
            if frame is None:
                break
            yield frame
    finally:
        bus.unsubscribe(subscriber)
        subscriber.close()
        log.info("realtime stream closed", extra={"user_id": subscriber.actor_id})


@router.get("/stream")
async def stream(request: Request, p: Principal = Depends(get_stream_principal)):
    subscriber = QueueSubscriber(maxsize=int(settings.realtime_queue_size), actor_id=p.user_id)
    return StreamingResponse(_frames(request, subscriber), media_type="text/event-stream", headers=SSE_HEADERS)
