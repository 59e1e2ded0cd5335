from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from disaster_api.notifier import Subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _handle_message(subscription: Subscription, raw: str) -> dict[str, Any]:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return {"event": "error", "data": {"message": "malformed message"}}
    if not isinstance(message, dict):
        return {"event": "error", "data": {"message": "malformed message"}}

    kind = message.get("type")
    if kind == "ping":
        return {"event": "pong"}
    if kind in ("join_disaster", "leave_disaster"):
        disaster_id = message.get("disaster_id")
        if not isinstance(disaster_id, str) or not disaster_id.strip():
            return {"event": "error", "data": {"message": "disaster_id is required"}}
        if kind == "join_disaster":
            subscription.join(disaster_id)
            return {"event": "joined", "data": {"disaster_id": disaster_id}}
        subscription.leave(disaster_id)
        return {"event": "left", "data": {"disaster_id": disaster_id}}
    return {"event": "error", "data": {"message": f"unsupported message type: {kind}"}}


async def _forward(websocket: WebSocket, subscription: Subscription, send_lock: asyncio.Lock) -> None:
    while True:
        message = await subscription.receive()
        async with send_lock:
            await websocket.send_json(message)


@router.websocket("/ws")
async def realtime_updates(websocket: WebSocket) -> None:
    notifier = websocket.app.state.container.notifier
    await websocket.accept()
    subscription = notifier.subscribe()
    send_lock = asyncio.Lock()
    logger.info("ws_connected", extra={"component": "realtime", "subscribers": notifier.subscriber_count})
    forwarder = asyncio.create_task(_forward(websocket, subscription, send_lock))
    try:
        async with send_lock:
            await websocket.send_json({"event": "connected"})
        while True:
            raw = await websocket.receive_text()
            reply = _handle_message(subscription, raw)
            async with send_lock:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
        forwarder.cancel()
        logger.info(
            "ws_disconnected",
            extra={"component": "realtime", "dropped": subscription.dropped, "rooms": len(subscription.rooms)},
        )
        await asyncio.gather(forwarder, return_exceptions=True)
