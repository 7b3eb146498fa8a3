"""
Call Request Lifecycle - pending → accepted | rejected | expired.

Every transition is a status-guarded UPDATE (compare-and-swap): the row only
changes if it is still pending, so a concurrent accept/reject or a second
accept on another instance matches zero rows and fails cleanly.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import (
    CALL_REQUEST_TTL_SEC,
    CALL_REQUEST_CREATE_ATTEMPTS,
    DEFAULT_CALL_REQUEST_MESSAGE,
    DEFAULT_REJECTION_REASON,
    DEFAULT_CUSTOMER_RTC_UID,
    HOST_RTC_UID,
    RTC_TOKEN_TTL_SEC,
)
from app.models.call_request import CallRequest, CallRequestStatus
from app.models.database import utcnow
from app.services.metrics import call_requests
from app.services.protocols import CredentialIssuerProtocol
from app.services.rtc_service import (
    CredentialServiceUnavailableError,
    RtcCredential,
    RtcRole,
)

from .exceptions import NotFoundOrAlreadyProcessedError, StorageUnavailableError
from .storage import commit_or_raise, epoch_ms
from .validators import validate_principals, validate_call_type, validate_price, validate_owner

logger = logging.getLogger(__name__)

PENDING = CallRequestStatus.PENDING.value
ACCEPTED = CallRequestStatus.ACCEPTED.value
REJECTED = CallRequestStatus.REJECTED.value
EXPIRED = CallRequestStatus.EXPIRED.value

ALREADY_PROCESSED = "Call request not found or already processed"


@dataclass
class AcceptResult:
    """Accepted request plus the host's join credential.

    credential_error is set when the accept committed but the transport
    provider could not issue a credential; the client retries the join,
    not the accept.
    """
    request: CallRequest
    credential: Optional[RtcCredential] = None
    credential_error: Optional[str] = None


@dataclass
class RequestStatusView:
    """Authoritative poll result: pending | accepted | rejected | expired."""
    kind: CallRequestStatus
    request: CallRequest
    queried_request_id: str
    credential: Optional[RtcCredential] = None
    credential_error: Optional[str] = None

    @property
    def superseded(self) -> bool:
        """True when the view reports a newer accepted request for the same pair."""
        return self.request.id != self.queried_request_id


def generate_channel_name(host_id: str, moment=None) -> str:
    moment = moment or utcnow()
    return f"call_{host_id}_{epoch_ms(moment)}"


def _pending_pair_clause(customer_id: str, host_id: str):
    return and_(
        CallRequest.customer_id == customer_id,
        CallRequest.host_id == host_id,
        CallRequest.status == PENDING,
    )


async def create_request(
    db: AsyncSession,
    customer_id: str,
    host_id: str,
    call_type: str,
    price_per_minute,
    message: Optional[str] = None
) -> CallRequest:
    """
    Create a pending call request, superseding any pending one for the pair.

    The supersede and the insert share one transaction. A concurrent create
    that wins the pending slot first trips the partial unique index; the
    loser retries, superseding the winner.

    Raises:
        InvalidRequestError on bad fields
        StorageUnavailableError if the database refuses the write
    """
    validate_principals(customer_id, host_id)
    call_type = validate_call_type(call_type)
    price = validate_price(price_per_minute)
    customer_id, host_id = str(customer_id), str(host_id)

    for attempt in range(1, CALL_REQUEST_CREATE_ATTEMPTS + 1):
        now = utcnow()
        try:
            superseded = await db.execute(
                update(CallRequest)
                .where(_pending_pair_clause(customer_id, host_id))
                .values(status=EXPIRED, rejected_at=now)
                .execution_options(synchronize_session=False)
            )
            request = CallRequest(
                customer_id=customer_id,
                host_id=host_id,
                call_type=call_type,
                price_per_minute=price,
                message=message or DEFAULT_CALL_REQUEST_MESSAGE,
                status=PENDING,
                created_at=now,
                expires_at=now + timedelta(seconds=CALL_REQUEST_TTL_SEC),
            )
            db.add(request)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(
                f"[CallRequests] Concurrent create for {customer_id}->{host_id}, "
                f"retrying (attempt {attempt}/{CALL_REQUEST_CREATE_ATTEMPTS})"
            )
            continue
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"[CallRequests] Failed to create request {customer_id}->{host_id}: {e}")
            raise StorageUnavailableError("Failed to create call request") from e

        if superseded.rowcount:
            call_requests.labels(outcome="expired").inc(superseded.rowcount)
            logger.info(f"[CallRequests] Expired {superseded.rowcount} older pending request(s) for {customer_id}->{host_id}")
        call_requests.labels(outcome="created").inc()
        logger.info(f"[CallRequests] Created {request.id} {customer_id}->{host_id} ({call_type} @ {price}/min)")
        return request

    raise StorageUnavailableError("Failed to create call request under contention")


async def list_pending_for_host(db: AsyncSession, host_id: str) -> List[CallRequest]:
    """
    Get the host's answerable requests, oldest first.

    Expiry is evaluated here against expires_at, so rows the sweep has not
    reached yet never show up.
    """
    now = utcnow()
    result = await db.execute(
        select(CallRequest)
        .where(
            and_(
                CallRequest.host_id == str(host_id),
                CallRequest.status == PENDING,
                CallRequest.expires_at > now,
            )
        )
        .order_by(CallRequest.created_at.asc(), CallRequest.id.asc())
    )
    return list(result.scalars().all())


async def _fetch(db: AsyncSession, request_id: str) -> Optional[CallRequest]:
    """Load a request from the database, never from the session's identity map."""
    result = await db.execute(
        select(CallRequest)
        .where(CallRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _load_owned_request(db: AsyncSession, request_id: str, host_id: str) -> CallRequest:
    request = await _fetch(db, request_id)
    if not request:
        raise NotFoundOrAlreadyProcessedError(ALREADY_PROCESSED)
    validate_owner(request.host_id, host_id)
    return request


def _issue(
    issuer: CredentialIssuerProtocol,
    request: CallRequest,
    uid,
    role: RtcRole
) -> tuple[Optional[RtcCredential], Optional[str]]:
    try:
        return issuer.issue(request.channel_name, uid, role, RTC_TOKEN_TTL_SEC), None
    except CredentialServiceUnavailableError as e:
        logger.error(f"[CallRequests] Credential unavailable for {request.id} ({role.value}): {e}")
        return None, str(e)


async def accept_request(
    db: AsyncSession,
    issuer: CredentialIssuerProtocol,
    request_id: str,
    host_id: str,
    channel_name: Optional[str] = None
) -> AcceptResult:
    """
    Accept a pending request and issue the host's publisher credential.

    Raises:
        NotFoundOrAlreadyProcessedError if missing, expired, or already resolved
        PrincipalMismatchError if host_id does not own the request
    """
    request = await _load_owned_request(db, request_id, host_id)
    customer_id, owner_id = request.customer_id, request.host_id

    now = utcnow()
    channel = channel_name or generate_channel_name(owner_id, now)

    # Retries that raced this accept must not stay ringing
    siblings = await db.execute(
        update(CallRequest)
        .where(
            and_(
                _pending_pair_clause(customer_id, owner_id),
                CallRequest.id != request_id,
            )
        )
        .values(status=EXPIRED, rejected_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        update(CallRequest)
        .where(
            and_(
                CallRequest.id == request_id,
                CallRequest.status == PENDING,
                CallRequest.expires_at > now,
            )
        )
        .values(status=ACCEPTED, channel_name=channel, accepted_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        call_requests.labels(outcome="cas_miss").inc()
        logger.info(f"[CallRequests] Accept of {request_id} lost: not pending anymore")
        raise NotFoundOrAlreadyProcessedError(ALREADY_PROCESSED)

    await commit_or_raise(db, "accept call request")
    request = await _fetch(db, request_id)

    if siblings.rowcount:
        logger.info(f"[CallRequests] Expired {siblings.rowcount} sibling request(s) while accepting {request_id}")
    call_requests.labels(outcome="accepted").inc()
    logger.info(f"[CallRequests] Accepted {request_id} on channel {channel}")

    credential, error = _issue(issuer, request, HOST_RTC_UID, RtcRole.PUBLISHER)
    return AcceptResult(request=request, credential=credential, credential_error=error)


async def reject_request(
    db: AsyncSession,
    request_id: str,
    host_id: str,
    reason: Optional[str] = None
) -> CallRequest:
    """
    Reject a pending request.

    Raises:
        NotFoundOrAlreadyProcessedError if missing, expired, or already resolved
        PrincipalMismatchError if host_id does not own the request
    """
    await _load_owned_request(db, request_id, host_id)

    now = utcnow()
    result = await db.execute(
        update(CallRequest)
        .where(
            and_(
                CallRequest.id == request_id,
                CallRequest.status == PENDING,
                CallRequest.expires_at > now,
            )
        )
        .values(status=REJECTED, rejected_at=now, rejection_reason=reason or DEFAULT_REJECTION_REASON)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        call_requests.labels(outcome="cas_miss").inc()
        logger.info(f"[CallRequests] Reject of {request_id} lost: not pending anymore")
        raise NotFoundOrAlreadyProcessedError(ALREADY_PROCESSED)

    await commit_or_raise(db, "reject call request")
    call_requests.labels(outcome="rejected").inc()
    logger.info(f"[CallRequests] Rejected {request_id}")
    return await _fetch(db, request_id)


async def _latest_accepted_successor(db: AsyncSession, request: CallRequest) -> Optional[CallRequest]:
    """Most recently accepted request for the same pair created no earlier than `request`."""
    result = await db.execute(
        select(CallRequest)
        .where(
            and_(
                CallRequest.customer_id == request.customer_id,
                CallRequest.host_id == request.host_id,
                CallRequest.status == ACCEPTED,
                CallRequest.id != request.id,
                CallRequest.created_at >= request.created_at,
            )
        )
        .order_by(CallRequest.accepted_at.desc(), CallRequest.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def get_request_status(
    db: AsyncSession,
    issuer: CredentialIssuerProtocol,
    request_id: str,
    requesting_uid=None
) -> RequestStatusView:
    """
    Read a request's state for a polling client. Never writes.

    A request that is still pending (or was superseded) while a newer request
    for the same pair has been accepted reports that accepted request, so a
    customer polling a stale id still reaches the live channel.

    Raises:
        NotFoundOrAlreadyProcessedError if the request does not exist
    """
    request = await _fetch(db, request_id)
    if not request:
        raise NotFoundOrAlreadyProcessedError("Call request not found")

    now = utcnow()
    view = RequestStatusView(
        kind=CallRequestStatus(request.status),
        request=request,
        queried_request_id=request_id,
    )

    if view.kind in (CallRequestStatus.PENDING, CallRequestStatus.EXPIRED):
        successor = await _latest_accepted_successor(db, request)
        if successor is not None:
            logger.info(f"[CallRequests] Status of {request_id} resolved to accepted successor {successor.id}")
            view.request = successor
            view.kind = CallRequestStatus.ACCEPTED
        elif view.kind is CallRequestStatus.PENDING and request.expires_at <= now:
            view.kind = CallRequestStatus.EXPIRED

    if view.kind is CallRequestStatus.ACCEPTED:
        uid = requesting_uid if requesting_uid is not None else DEFAULT_CUSTOMER_RTC_UID
        view.credential, view.credential_error = _issue(issuer, view.request, uid, RtcRole.SUBSCRIBER)

    return view
