"""
Signaling Notifications

Event payloads pushed to users as a call request moves through its lifecycle:
- incoming_call   → host, when a customer creates a request
- call_accepted   → customer, with the channel to join
- call_rejected   → customer
- call_ended      → both parties, after settlement
"""
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from app.models.call_request import CallRequest
from app.models.call_session import CallSession
from app.services.protocols import RelayProtocol

logger = logging.getLogger(__name__)


def _event(event_type: str, **fields) -> Dict[str, Any]:
    return {"type": event_type, **fields, "timestamp": datetime.utcnow().isoformat()}


async def notify_incoming_call(relay: RelayProtocol, request: CallRequest) -> bool:
    """
    Tell the host a customer is calling.

    Returns:
        True if the event was handed off for delivery
    """
    sent = await relay.publish(request.host_id, _event(
        "incoming_call",
        request_id=request.id,
        customer_id=request.customer_id,
        call_type=request.call_type,
        price_per_minute=str(request.price_per_minute),
        message=request.message,
        expires_at=request.expires_at.isoformat() if request.expires_at else None,
    ))
    if not sent:
        logger.debug(f"Host {request.host_id} not reachable, incoming call {request.id} left to polling")
    return sent


async def notify_call_accepted(relay: RelayProtocol, request: CallRequest) -> bool:
    return await relay.publish(request.customer_id, _event(
        "call_accepted",
        request_id=request.id,
        host_id=request.host_id,
        channel_name=request.channel_name,
        call_type=request.call_type,
    ))


async def notify_call_rejected(relay: RelayProtocol, request: CallRequest) -> bool:
    return await relay.publish(request.customer_id, _event(
        "call_rejected",
        request_id=request.id,
        host_id=request.host_id,
        reason=request.rejection_reason,
    ))


async def notify_call_ended(relay: RelayProtocol, session: CallSession, ended_by: Optional[str] = None) -> int:
    """
    Tell both parties the session was settled.

    Returns:
        Number of parties the event was handed off to
    """
    event = _event(
        "call_ended",
        session_id=session.id,
        channel_name=session.channel_name,
        duration=session.duration_minutes,
        total_cost=str(session.total_amount) if session.total_amount is not None else None,
        ended_by=ended_by,
    )
    notified = 0
    for user_id in (session.host_id, session.customer_id):
        if await relay.publish(user_id, event):
            notified += 1
    return notified
