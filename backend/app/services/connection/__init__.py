"""
Signaling Connection Module

Re-exports SignalingRelay, SignalConnection and the call event notifiers.
"""
from .models import SignalConnection
from .manager import SignalingRelay
from .notifications import (
    notify_incoming_call,
    notify_call_accepted,
    notify_call_rejected,
    notify_call_ended,
)

__all__ = [
    "SignalConnection",
    "SignalingRelay",
    "notify_incoming_call",
    "notify_call_accepted",
    "notify_call_rejected",
    "notify_call_ended",
]
