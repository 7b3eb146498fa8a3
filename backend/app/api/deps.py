from typing import Optional
from fastapi import WebSocket, Query, Depends, HTTPException, Request
from fastapi.requests import HTTPConnection
import logging

from app.config.settings import Settings
from app.models.user import User
from app.services.auth_service import decode_token
from app.services.call import (
    CallServiceError,
    InvalidRequestError,
    NotFoundOrAlreadyProcessedError,
    PrincipalMismatchError,
    InvalidStateError,
    StorageUnavailableError,
)
from app.services.connection import SignalingRelay
from app.services.protocols import CredentialIssuerProtocol
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

# Service exception → HTTP status
CALL_ERROR_STATUS = {
    InvalidRequestError: 400,
    PrincipalMismatchError: 403,
    NotFoundOrAlreadyProcessedError: 404,
    InvalidStateError: 409,
    StorageUnavailableError: 500,
}


def call_error_to_http(error: CallServiceError) -> HTTPException:
    for error_type, status_code in CALL_ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_credential_issuer(request: Request) -> CredentialIssuerProtocol:
    return request.app.state.credential_issuer


def get_relay(connection: HTTPConnection) -> SignalingRelay:
    return connection.app.state.relay


async def get_current_ws_user(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings)
) -> Optional[User]:
    """
    WebSocket dependency to authenticate user via JWT token.
    If authentication fails, closes the connection with code 1008.
    """
    if not token:
        logger.warning("[WebSocket] Missing token")
        await websocket.close(code=1008, reason="Missing token")
        return None

    payload = decode_token(token, settings)
    if not payload or not payload.get("sub"):
        logger.warning("[WebSocket] Invalid token")
        await websocket.close(code=1008, reason="Invalid token")
        return None

    user_id = payload.get("sub")
    # Short-lived session: the socket itself may stay open for hours
    async with websocket.app.state.database.session() as db:
        user = await user_service.get_active(db, user_id)
    if not user:
        logger.warning(f"[WebSocket] User not found: {user_id}")
        await websocket.close(code=1008, reason="User not found")
        return None

    return user
