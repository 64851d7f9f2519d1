"""WebSocket channel for live notifications."""

import json
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from src.api.deps import authenticate_token
from src.core.realtime import get_notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str = Query(default="")) -> None:
    """Push ``new-notification`` events to an authenticated client.

    The connection joins the room named after the user's id. Clients may
    send ``{"event": "ping"}`` and get ``{"event": "pong"}`` back; anything
    else is ignored.
    """
    try:
        user = authenticate_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    hub = get_notification_hub()
    await hub.connect(websocket, room=str(user.user_id))
    logger.info("Notification socket opened for user %s", user.user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Ignoring non-JSON message from user %s", user.user_id)
                continue
            if isinstance(message, dict) and message.get("event") == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        logger.info("Notification socket closed for user %s", user.user_id)
    finally:
        await hub.disconnect(websocket)
