"""
Connection Models

Data classes representing signaling WebSocket connections.
"""
from datetime import datetime
from typing import Dict, Any
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SignalConnection:
    """A single user's WebSocket on this instance."""

    def __init__(self, websocket: WebSocket, user_id: str):
        self.websocket = websocket
        self.user_id = user_id
        self.connected_at = datetime.utcnow()

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.user_id}: {e}")
            return False
