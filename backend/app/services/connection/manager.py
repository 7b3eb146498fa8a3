"""
Signaling Relay

Best-effort push of call events to connected users:
- Per-user WebSocket registry on this instance
- Fan-out across instances through Redis pub/sub when Redis is configured
- Local delivery otherwise

A lost event is never an error: clients poll the REST status endpoint,
which stays authoritative.
"""
import asyncio
import json
from typing import Dict, List, Optional, Any
import logging

from fastapi import WebSocket

from app.config.constants import RELAY_CHANNEL_PREFIX

from .models import SignalConnection

logger = logging.getLogger(__name__)


class SignalingRelay:
    """
    Routes signaling events to the users they concern.

    With a Redis client, publish() goes through the `channel:signal:{user_id}`
    channel and listen() delivers whatever arrives to the local sockets, so a
    user connected to any instance receives it.
    """

    def __init__(self, redis=None):
        self._redis = redis
        # user_id -> connections (a user may have several devices)
        self._connections: Dict[str, List[SignalConnection]] = {}
        self._lock = asyncio.Lock()

    # === Core Connection Methods ===

    async def connect(self, websocket: WebSocket, user_id: str) -> SignalConnection:
        """Register an accepted WebSocket for a user."""
        conn = SignalConnection(websocket=websocket, user_id=user_id)
        async with self._lock:
            self._connections.setdefault(user_id, []).append(conn)
        logger.info(f"[Relay] User {user_id} connected")
        return conn

    async def disconnect(self, conn: SignalConnection) -> None:
        async with self._lock:
            connections = self._connections.get(conn.user_id, [])
            if conn in connections:
                connections.remove(conn)
            if not connections:
                self._connections.pop(conn.user_id, None)
        logger.info(f"[Relay] User {conn.user_id} disconnected")

    # === Delivery ===

    async def deliver_local(self, user_id: str, event: Dict[str, Any]) -> int:
        """Send to this instance's sockets for user_id. Returns sockets reached."""
        connections = list(self._connections.get(str(user_id), []))
        sent_count = 0
        for conn in connections:
            if await conn.send_json(event):
                sent_count += 1
        return sent_count

    async def publish(self, user_id: str, event: Dict[str, Any]) -> bool:
        """
        Push an event to a user. Never raises.

        Returns:
            True if the event was handed to Redis or reached a local socket
        """
        user_id = str(user_id)
        if self._redis is not None:
            try:
                await self._redis.publish(f"{RELAY_CHANNEL_PREFIX}{user_id}", json.dumps(event, default=str))
                return True
            except Exception as e:
                logger.error(f"[Relay] Redis publish failed for {user_id}, delivering locally: {e}")

        try:
            return await self.deliver_local(user_id, event) > 0
        except Exception as e:
            logger.error(f"[Relay] Local delivery failed for {user_id}: {e}")
            return False

    async def handle_message(self, message: Dict[str, Any]) -> int:
        """Deliver one pub/sub message to local sockets."""
        if message.get("type") != "pmessage":
            return 0
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode()
        user_id = channel[len(RELAY_CHANNEL_PREFIX):]
        try:
            event = json.loads(message["data"])
        except (TypeError, ValueError) as e:
            logger.error(f"[Relay] Dropping malformed event on {channel}: {e}")
            return 0
        return await self.deliver_local(user_id, event)

    async def listen(self) -> None:
        """Background task: forward Redis signaling events to local sockets."""
        if self._redis is None:
            return

        pubsub = self._redis.pubsub()
        await pubsub.psubscribe(f"{RELAY_CHANNEL_PREFIX}*")
        logger.info("[Relay] Subscribed to signaling channels")

        try:
            async for message in pubsub.listen():
                try:
                    await self.handle_message(message)
                except Exception as e:
                    logger.error(f"[Relay] Error processing signaling message: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Relay] Signaling subscription error: {e}")
        finally:
            await pubsub.aclose()

    # === Query Methods ===

    def is_connected(self, user_id: str) -> bool:
        return bool(self._connections.get(str(user_id)))

    def get_connected_users(self) -> List[str]:
        return list(self._connections.keys())

    def get_total_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    @property
    def redis(self) -> Optional[Any]:
        return self._redis
