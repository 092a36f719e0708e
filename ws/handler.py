import asyncio
import logging

from fastapi import WebSocket, WebSocketDisconnect, status

from admin.router import is_staff, serialize_incidents, staff_key
from incidents.context import PortalContext

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 20


def _snapshot_message(portal: PortalContext, lang: str) -> dict:
    version, incidents = portal.feed.snapshot()
    stats = portal.feed.stats(lang=lang)
    return {
        "type": "snapshot",
        "version": version,
        "incidents": serialize_incidents(incidents, lang),
        "stats": stats.model_dump(mode="json") if stats else None,
    }


async def live_feed_endpoint(websocket: WebSocket, lang: str = "es"):
    """
    Push the whole incident list (and its analytics) to a staff dashboard:
    once on connect, then after every store change.

    The client never sends anything meaningful; reading from the socket only
    serves to notice the disconnect.
    """
    portal: PortalContext = websocket.app.state.portal
    provided = staff_key(websocket.headers.get("authorization"), websocket.query_params.get("key"))
    if not is_staff(provided, portal.staff_password):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    listener_id, queue = portal.feed.add_listener()

    # Keepalive task: ping every 20 s to prevent the proxy's idle timeout from
    # dropping dashboards that sit open all day.
    async def _keepalive():
        while True:
            await asyncio.sleep(KEEPALIVE_SECONDS)
            await websocket.send_json({"type": "ping"})

    async def _push_snapshots():
        await websocket.send_json(_snapshot_message(portal, lang))
        while True:
            await queue.get()
            # Collapse bursts: only the latest snapshot matters
            while not queue.empty():
                queue.get_nowait()
            await websocket.send_json(_snapshot_message(portal, lang))

    async def _drain_client():
        while True:
            await websocket.receive_text()

    tasks = [
        asyncio.create_task(_keepalive()),
        asyncio.create_task(_push_snapshots()),
        asyncio.create_task(_drain_client()),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("Live feed socket error: %s", exc, exc_info=exc)
    finally:
        for task in tasks:
            task.cancel()
        portal.feed.remove_listener(listener_id)
        logger.info("Staff live feed disconnected (listener %d).", listener_id)
