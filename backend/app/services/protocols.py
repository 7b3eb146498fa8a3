"""
Protocol definitions for external collaborators.

This module defines interfaces (Python Protocols) that allow:
- Swapping implementations (e.g., self-signed tokens → vendor SDK)
- Testing without real provider credentials
- Clear contracts between the signaling service and its adapters

Usage:
    from app.services.protocols import CredentialIssuerProtocol

    def join_details(issuer: CredentialIssuerProtocol, channel: str):
        return issuer.issue(channel, uid=1, role=RtcRole.PUBLISHER, ttl_seconds=3600)
"""

from typing import Any, Dict, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.rtc_service import RtcCredential, RtcRole


class CredentialIssuerProtocol(Protocol):
    """
    Interface for realtime transport credential issuance.

    Implementations must be stateless: the same inputs only decide which
    credential is produced, nothing is remembered between calls.
    """

    def issue(
        self,
        channel_name: str,
        uid: int | str,
        role: "RtcRole",
        ttl_seconds: int
    ) -> "RtcCredential":
        """
        Issue a credential to join a channel.

        Args:
            channel_name: Transport channel to join
            uid: Transport-level principal id
            role: publisher (can send media) or subscriber
            ttl_seconds: Lifetime of the credential

        Returns:
            RtcCredential with the opaque token and its expiry

        Raises:
            CredentialServiceUnavailableError if the provider cannot issue
        """
        ...


class RelayProtocol(Protocol):
    """
    Interface for the best-effort realtime push channel.

    publish() must never raise; delivery is a hint, REST state is authoritative.
    """

    async def publish(self, user_id: str, event: Dict[str, Any]) -> bool:
        ...
