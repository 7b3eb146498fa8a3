"""
Call Sessions API - session start and settlement
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import call_error_to_http, get_relay
from app.models.database import get_db
from app.schemas.call import StartSessionBody, EndSessionBody
from app.services.call import call_service, CallServiceError
from app.services.connection import SignalingRelay, notify_call_ended

router = APIRouter()


@router.post("/call-sessions", status_code=201)
async def start_call_session(body: StartSessionBody, db: AsyncSession = Depends(get_db)):
    """
    Start a session.

    With request_id the channel, call type, price and principals are taken
    from the accepted request; without it they must all be given.
    """
    try:
        session = await call_service.start_session(
            db,
            request_id=body.request_id,
            host_id=body.host_id,
            customer_id=body.customer_id,
            channel_name=body.channel_name,
            call_type=body.call_type,
            price_per_minute=body.price_per_minute,
        )
    except CallServiceError as e:
        raise call_error_to_http(e)

    return {
        "success": True,
        "session_id": session.id,
        "session": session.to_dict(),
    }


@router.put("/call-sessions/{session_id}/end")
async def end_call_session(
    session_id: str,
    body: EndSessionBody,
    db: AsyncSession = Depends(get_db),
    relay: SignalingRelay = Depends(get_relay)
):
    """
    End and settle a session: duration is in whole minutes.

    Repeating the call on a settled session returns it unchanged with
    already_settled set.
    """
    try:
        result = await call_service.end_session(db, session_id, body.duration, rating=body.rating)
    except CallServiceError as e:
        raise call_error_to_http(e)

    if not result.already_settled:
        await notify_call_ended(relay, result.session)

    return {
        "success": True,
        "session": result.session.to_dict(),
        "total_cost": str(result.total_cost) if result.total_cost is not None else None,
        "already_settled": result.already_settled,
    }
