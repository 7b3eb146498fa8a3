"""
WebSocket Router - Signaling push channel

Users keep one socket open to receive call events (incoming_call,
call_accepted, call_rejected, call_ended). The socket is receive-only for
signaling: every state change still goes through the REST endpoints.
"""
import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from pydantic import ValidationError

from app.api.deps import get_current_ws_user, get_relay
from app.models.user import User
from app.schemas.websocket_events import HeartbeatEvent, PingEvent
from app.services.connection import SignalingRelay

logger = logging.getLogger(__name__)

router = APIRouter()

CLIENT_EVENTS = {
    "heartbeat": (HeartbeatEvent, "heartbeat_ack"),
    "ping": (PingEvent, "pong"),
}


@router.websocket("/ws/signal")
async def signal_endpoint(
    websocket: WebSocket,
    user: Optional[User] = Depends(get_current_ws_user),
    relay: SignalingRelay = Depends(get_relay)
):
    """
    WebSocket endpoint for call signaling events.

    Query Parameters:
        token: JWT Token (required)

    Message Types (JSON):
        - heartbeat: Keep the connection alive, answered with heartbeat_ack
        - ping: Latency check, answered with pong
    """
    if user is None:
        return

    await websocket.accept()
    conn = await relay.connect(websocket, user.id)
    await conn.send_json({
        "type": "connected",
        "user_id": user.id,
        "role": user.role,
        "timestamp": datetime.utcnow().isoformat()
    })

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                event_type, reply = CLIENT_EVENTS[data.get("type")]
                event_type.model_validate(data)
            except (ValueError, KeyError, AttributeError, ValidationError):
                await conn.send_json({"type": "error", "message": "Unsupported message"})
                continue
            await conn.send_json({"type": reply, "timestamp": datetime.utcnow().isoformat()})
    except WebSocketDisconnect:
        logger.info(f"[WebSocket] User {user.id} disconnected")
    finally:
        await relay.disconnect(conn)
