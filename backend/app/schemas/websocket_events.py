"""
WebSocket Event Schemas

Pydantic models for the client → server messages on the signaling socket.
Server → client events are built in app.services.connection.notifications.
"""

from typing import Literal
from pydantic import BaseModel


# =============================================================================
# WebSocket Event Models
# =============================================================================

class WebSocketEventBase(BaseModel):
    """Base model for all WebSocket events."""
    type: str


class HeartbeatEvent(WebSocketEventBase):
    """Client heartbeat to maintain connection."""
    type: Literal["heartbeat"] = "heartbeat"


class PingEvent(WebSocketEventBase):
    """Simple ping for latency check."""
    type: Literal["ping"] = "ping"
