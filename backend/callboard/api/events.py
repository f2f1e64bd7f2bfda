import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from callboard.core.config import settings

router = APIRouter(tags=["events"])

logger = logging.getLogger(__name__)


async def wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Dashboard websocket disconnected")


async def relay_events(websocket: WebSocket, pubsub) -> None:
    while True:
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
        if message and message.get("data"):
            await websocket.send_text(message["data"])
        await asyncio.sleep(0.2)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    publisher = getattr(websocket.app.state, "publisher", None)
    if not publisher or not publisher.enabled:
        await wait_for_disconnect(websocket)
        return
    pubsub = publisher.client.pubsub()
    await pubsub.subscribe(settings.events_channel)
    listener = asyncio.create_task(wait_for_disconnect(websocket))
    relay = asyncio.create_task(relay_events(websocket, pubsub))
    try:
        done, _ = await asyncio.wait({listener, relay}, return_when=asyncio.FIRST_COMPLETED)
        if relay in done and relay.exception():
            logger.warning("Event relay stopped", exc_info=relay.exception())
    finally:
        # Stop the other side once either finishes.
        listener.cancel()
        relay.cancel()
        await pubsub.unsubscribe(settings.events_channel)
        await pubsub.close()
