"""
Call Requests API - customer → host call signaling

Implements:
- Request creation (rings the host)
- Host pending queue
- Accept / reject by the owning host
- Status polling with join credentials
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api.deps import call_error_to_http, get_credential_issuer, get_relay
from app.models.database import get_db
from app.schemas.call import CreateCallRequestBody, AcceptCallRequestBody, RejectCallRequestBody
from app.services.call import call_service, CallServiceError
from app.services.connection import (
    SignalingRelay,
    notify_incoming_call,
    notify_call_accepted,
    notify_call_rejected,
)
from app.services.protocols import CredentialIssuerProtocol

logger = logging.getLogger(__name__)

router = APIRouter()


def _transport_uid(uid: Optional[str]):
    """Numeric uids are passed to the transport as integers."""
    if uid is None or uid == "":
        return None
    return int(uid) if uid.isdigit() else uid


def _credential_unavailable(message: str, **state) -> JSONResponse:
    # The transition already committed; the client retries the join only
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": f"Credential service unavailable: {message}", **state},
    )


@router.post("/call-requests", status_code=201)
async def create_call_request(
    body: CreateCallRequestBody,
    db: AsyncSession = Depends(get_db),
    relay: SignalingRelay = Depends(get_relay)
):
    """
    Create a call request from a customer to a host.

    Any request still pending for the same pair is expired first.
    """
    try:
        request = await call_service.create_request(
            db,
            customer_id=body.customer_id,
            host_id=body.host_id,
            call_type=body.call_type,
            price_per_minute=body.price_per_minute,
            message=body.message,
        )
    except CallServiceError as e:
        raise call_error_to_http(e)

    await notify_incoming_call(relay, request)

    return {
        "success": True,
        "request_id": request.id,
        "request": request.to_dict(),
    }


@router.get("/hosts/{host_id}/call-requests")
async def list_pending_requests(host_id: str, db: AsyncSession = Depends(get_db)):
    """Pending, unexpired requests for the host, oldest first."""
    requests = await call_service.list_pending(db, host_id)
    return {
        "success": True,
        "requests": [r.to_dict() for r in requests],
        "count": len(requests),
    }


@router.put("/call-requests/{request_id}/accept")
async def accept_call_request(
    request_id: str,
    body: AcceptCallRequestBody,
    db: AsyncSession = Depends(get_db),
    issuer: CredentialIssuerProtocol = Depends(get_credential_issuer),
    relay: SignalingRelay = Depends(get_relay)
):
    if body.host_id is None:
        raise HTTPException(status_code=400, detail="host_id is required")
    try:
        result = await call_service.accept(
            db, issuer, request_id, str(body.host_id), channel_name=body.channel_name
        )
    except CallServiceError as e:
        raise call_error_to_http(e)

    request = result.request
    await notify_call_accepted(relay, request)

    if result.credential_error:
        return _credential_unavailable(
            result.credential_error,
            request=request.to_dict(),
            channel_name=request.channel_name,
        )

    return {
        "success": True,
        "request": request.to_dict(),
        "channel_name": request.channel_name,
        "credential": result.credential.to_dict(),
    }


@router.put("/call-requests/{request_id}/reject")
async def reject_call_request(
    request_id: str,
    body: RejectCallRequestBody,
    db: AsyncSession = Depends(get_db),
    relay: SignalingRelay = Depends(get_relay)
):
    if body.host_id is None:
        raise HTTPException(status_code=400, detail="host_id is required")
    try:
        request = await call_service.reject(db, request_id, str(body.host_id), reason=body.reason)
    except CallServiceError as e:
        raise call_error_to_http(e)

    await notify_call_rejected(relay, request)

    return {"success": True, "request": request.to_dict()}


@router.get("/call-requests/{request_id}/status")
async def get_call_request_status(
    request_id: str,
    uid: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    issuer: CredentialIssuerProtocol = Depends(get_credential_issuer)
):
    """
    Poll a request. Accepted requests carry the customer's join credential.

    A stale request id whose pair has a newer accepted request reports that
    one, with `superseded` set.
    """
    try:
        view = await call_service.get_status(db, issuer, request_id, requesting_uid=_transport_uid(uid))
    except CallServiceError as e:
        raise call_error_to_http(e)

    state = {
        "status": view.kind.value,
        "channel_name": view.request.channel_name,
        "request": view.request.to_dict(),
        "superseded": view.superseded,
    }
    if view.credential_error:
        return _credential_unavailable(view.credential_error, **state)

    return {
        "success": True,
        **state,
        "credential": view.credential.to_dict() if view.credential else None,
    }
