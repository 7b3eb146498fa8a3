"""
Schemas Package

Pydantic models for API bodies and WebSocket events.
"""

from app.schemas.websocket_events import (
    WebSocketEventBase,
    HeartbeatEvent,
    PingEvent,
)
from app.schemas.call import (
    CreateCallRequestBody,
    AcceptCallRequestBody,
    RejectCallRequestBody,
    StartSessionBody,
    EndSessionBody,
    RtcTokenBody,
)

__all__ = [
    "WebSocketEventBase",
    "HeartbeatEvent",
    "PingEvent",
    "CreateCallRequestBody",
    "AcceptCallRequestBody",
    "RejectCallRequestBody",
    "StartSessionBody",
    "EndSessionBody",
    "RtcTokenBody",
]
