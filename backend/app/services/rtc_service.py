"""RTC credential issuance.

Wraps the realtime audio/video transport's token service. Given a channel,
a transport uid, a role and a lifetime it returns an opaque signed credential.
The default issuer signs a JWT with the provider app certificate; anything
implementing CredentialIssuerProtocol can replace it.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.config.constants import RTC_TOKEN_ALGORITHM
from app.models.database import utcnow
from app.services.metrics import credential_failures

logger = logging.getLogger(__name__)


class CredentialServiceUnavailableError(Exception):
    """Raised when the transport provider cannot issue a credential"""
    pass


class RtcRole(str, enum.Enum):
    PUBLISHER = "publisher"
    SUBSCRIBER = "subscriber"


@dataclass(slots=True)
class RtcCredential:
    token: str
    expires_at: datetime
    channel_name: str
    uid: int | str
    role: RtcRole
    app_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "expires_at": self.expires_at.isoformat(),
            "channel_name": self.channel_name,
            "uid": self.uid,
            "role": self.role.value,
            "app_id": self.app_id,
        }


class JwtCredentialIssuer:
    """Issue transport credentials as JWTs signed with the app certificate."""

    def __init__(self, app_id: Optional[str], app_certificate: Optional[str]):
        self.app_id = app_id
        self._app_certificate = app_certificate

    def issue(
        self,
        channel_name: str,
        uid: int | str,
        role: RtcRole,
        ttl_seconds: int
    ) -> RtcCredential:
        if not self.app_id or not self._app_certificate:
            credential_failures.labels(reason="not_configured").inc()
            raise CredentialServiceUnavailableError("RTC credentials are not configured")
        if not channel_name:
            raise ValueError("channel_name is required")

        issued_at = utcnow()
        expires_at = issued_at + timedelta(seconds=ttl_seconds)
        claims = {
            "iss": self.app_id,
            "sub": str(uid),
            "channel": channel_name,
            "role": RtcRole(role).value,
            "iat": int((issued_at - datetime(1970, 1, 1)).total_seconds()),
            "exp": int((expires_at - datetime(1970, 1, 1)).total_seconds()),
        }
        try:
            token = jwt.encode(claims, self._app_certificate, algorithm=RTC_TOKEN_ALGORITHM)
        except JWTError as e:
            credential_failures.labels(reason="signing").inc()
            logger.error(f"[RTC] Failed to sign credential for channel {channel_name}: {e}")
            raise CredentialServiceUnavailableError("Failed to issue RTC credential") from e

        logger.debug(f"[RTC] Issued {RtcRole(role).value} credential uid={uid} channel={channel_name}")
        return RtcCredential(
            token=token,
            expires_at=expires_at,
            channel_name=channel_name,
            uid=uid,
            role=RtcRole(role),
            app_id=self.app_id,
        )


def decode_credential(token: str, app_certificate: str) -> Optional[dict]:
    """Verify a credential issued by JwtCredentialIssuer, None when invalid."""
    try:
        return jwt.decode(token, app_certificate, algorithms=[RTC_TOKEN_ALGORITHM])
    except JWTError:
        return None
