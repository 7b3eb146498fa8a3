"""
RTC API - join credentials for an arbitrary channel
"""
from fastapi import APIRouter, Depends, HTTPException

from app.api.auth import get_current_user
from app.api.deps import get_credential_issuer
from app.models.user import User
from app.schemas.call import RtcTokenBody
from app.services.protocols import CredentialIssuerProtocol
from app.services.rtc_service import CredentialServiceUnavailableError, RtcRole

router = APIRouter()


@router.post("/rtc/token")
async def create_rtc_token(
    body: RtcTokenBody,
    issuer: CredentialIssuerProtocol = Depends(get_credential_issuer),
    current_user: User = Depends(get_current_user)
):
    try:
        role = RtcRole(body.role)
    except ValueError:
        raise HTTPException(status_code=400, detail="role must be publisher or subscriber")

    try:
        credential = issuer.issue(body.channel_name, body.uid, role, body.ttl_seconds)
    except CredentialServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Credential service unavailable: {e}")

    return {"success": True, "credential": credential.to_dict()}
