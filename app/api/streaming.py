"""
WebSocket Streaming

Bridges live subscriptions to a WebSocket connection.
"""

import logging
from functools import partial
from typing import Any, Dict

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from app.core.events import Subscription, deliver


logger = logging.getLogger(__name__)


async def stream_snapshots(websocket: WebSocket, streams: Dict[str, Subscription]) -> None:
    """
    Push every snapshot of each stream as ``{"type": name, "data": ...}``
    until the client disconnects, then cancel the subscriptions.

    The socket must already be accepted.
    """

    async def push(kind: str, snapshot: Any) -> None:
        await websocket.send_json({"type": kind, "data": jsonable_encoder(snapshot)})

    tasks = [deliver(subscription, partial(push, kind)) for kind, subscription in streams.items()]
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Live stream closed by client")
    finally:
        for subscription in streams.values():
            subscription.cancel()
        for task in tasks:
            task.cancel()
