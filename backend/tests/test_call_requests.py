import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.config.constants import DEFAULT_CALL_REQUEST_MESSAGE, DEFAULT_REJECTION_REASON
from app.models.call_request import CallRequest, CallRequestStatus
from app.services.call import (
    call_service,
    InvalidRequestError,
    NotFoundOrAlreadyProcessedError,
    PrincipalMismatchError,
)
from app.services.rtc_service import decode_credential, RtcRole
from tests.helpers import TEST_APP_CERTIFICATE, backdate_expiry


async def _create(db, customer_id="1", host_id="2", call_type="voice", price="10.00", message=None):
    return await call_service.create_request(db, customer_id, host_id, call_type, price, message)


async def _status_of(database, request_id):
    async with database.session() as db:
        result = await db.execute(select(CallRequest.status).where(CallRequest.id == request_id))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_create_request_defaults(db_session):
    request = await _create(db_session, price=12.5)

    assert request.status == CallRequestStatus.PENDING.value
    assert request.price_per_minute == Decimal("12.50")
    assert request.message == DEFAULT_CALL_REQUEST_MESSAGE
    assert request.channel_name is None
    assert (request.expires_at - request.created_at).total_seconds() == 300


@pytest.mark.asyncio
async def test_new_request_expires_previous_pending_for_pair(database, db_session):
    r1 = await _create(db_session)
    r2 = await _create(db_session)

    assert await _status_of(database, r1.id) == "expired"
    assert await _status_of(database, r2.id) == "pending"

    pending = await call_service.list_pending(db_session, "2")
    assert [r.id for r in pending] == [r2.id]


@pytest.mark.asyncio
async def test_other_pairs_are_not_expired(database, db_session):
    r1 = await _create(db_session, customer_id="1", host_id="2")
    r2 = await _create(db_session, customer_id="3", host_id="2")

    assert await _status_of(database, r1.id) == "pending"
    assert await _status_of(database, r2.id) == "pending"


@pytest.mark.asyncio
async def test_concurrent_creates_leave_one_pending(database):
    async def create():
        async with database.session() as db:
            return await _create(db)

    results = await asyncio.gather(create(), create(), create())
    assert len({r.id for r in results}) == 3

    async with database.session() as db:
        rows = await db.execute(
            select(CallRequest.status).where(CallRequest.customer_id == "1", CallRequest.host_id == "2")
        )
        statuses = sorted(rows.scalars().all())
    assert statuses == ["expired", "expired", "pending"]


@pytest.mark.asyncio
@pytest.mark.parametrize("customer_id,host_id,call_type,price", [
    (None, "2", "voice", "10.00"),
    ("1", "", "voice", "10.00"),
    ("2", "2", "voice", "10.00"),
    ("1", "2", "fax", "10.00"),
    ("1", "2", "voice", "0"),
    ("1", "2", "voice", "-5"),
    ("1", "2", "voice", "ten"),
    ("1", "2", "voice", None),
    ("1", "2", "voice", "1e30"),
    ("1", "2", "voice", "1000000"),
    ("1", "2", "voice", "NaN"),
    ("1", "2", "voice", "Infinity"),
])
async def test_create_request_validation(db_session, customer_id, host_id, call_type, price):
    with pytest.raises(InvalidRequestError):
        await call_service.create_request(db_session, customer_id, host_id, call_type, price)


@pytest.mark.asyncio
async def test_list_pending_hides_expired_without_sweep(db_session):
    stale = await _create(db_session, customer_id="1")
    live = await _create(db_session, customer_id="3")
    await backdate_expiry(db_session, stale.id)

    pending = await call_service.list_pending(db_session, "2")

    assert [r.id for r in pending] == [live.id]
    # Still pending in storage: only the read path filtered it
    row = await db_session.execute(select(CallRequest.status).where(CallRequest.id == stale.id))
    assert row.scalar_one() == "pending"


@pytest.mark.asyncio
async def test_list_pending_oldest_first(db_session):
    first = await _create(db_session, customer_id="10")
    second = await _create(db_session, customer_id="11")
    await _create(db_session, customer_id="12", host_id="99")

    pending = await call_service.list_pending(db_session, "2")
    assert [r.id for r in pending] == [first.id, second.id]


@pytest.mark.asyncio
async def test_accept_sets_channel_and_issues_host_credential(db_session, issuer):
    request = await _create(db_session)

    result = await call_service.accept(db_session, issuer, request.id, "2")

    assert result.request.status == "accepted"
    assert result.request.accepted_at is not None
    assert result.request.channel_name.startswith("call_2_")
    assert result.credential_error is None

    claims = decode_credential(result.credential.token, TEST_APP_CERTIFICATE)
    assert claims["channel"] == result.request.channel_name
    assert claims["role"] == RtcRole.PUBLISHER.value
    assert claims["sub"] == "1"
    assert claims["exp"] - claims["iat"] == 86400


@pytest.mark.asyncio
async def test_accept_uses_supplied_channel(db_session, issuer):
    request = await _create(db_session)
    result = await call_service.accept(db_session, issuer, request.id, "2", channel_name="room-42")
    assert result.request.channel_name == "room-42"
    assert result.credential.channel_name == "room-42"


@pytest.mark.asyncio
async def test_accept_by_other_host_is_forbidden(database, db_session, issuer):
    request = await _create(db_session)
    request_id = request.id

    with pytest.raises(PrincipalMismatchError):
        await call_service.accept(db_session, issuer, request_id, "3")

    assert await _status_of(database, request_id) == "pending"


@pytest.mark.asyncio
async def test_accept_unknown_request(db_session, issuer):
    with pytest.raises(NotFoundOrAlreadyProcessedError):
        await call_service.accept(db_session, issuer, "does-not-exist", "2")


@pytest.mark.asyncio
async def test_accept_twice_fails_second_time(db_session, issuer):
    request = await _create(db_session)
    request_id = request.id
    await call_service.accept(db_session, issuer, request_id, "2")

    with pytest.raises(NotFoundOrAlreadyProcessedError):
        await call_service.accept(db_session, issuer, request_id, "2")


@pytest.mark.asyncio
async def test_accept_after_ttl_fails(database, db_session, issuer):
    request = await _create(db_session)
    await backdate_expiry(db_session, request.id)
    request_id = request.id

    with pytest.raises(NotFoundOrAlreadyProcessedError):
        await call_service.accept(db_session, issuer, request_id, "2")
    assert await _status_of(database, request_id) == "pending"


@pytest.mark.asyncio
async def test_accept_with_credential_outage_still_commits(database, db_session, failing_issuer):
    request = await _create(db_session)

    result = await call_service.accept(db_session, failing_issuer, request.id, "2")

    assert result.credential is None
    assert "provider down" in result.credential_error
    assert await _status_of(database, request.id) == "accepted"


@pytest.mark.asyncio
async def test_reject_stores_default_reason(db_session):
    request = await _create(db_session)

    rejected = await call_service.reject(db_session, request.id, "2")

    assert rejected.status == "rejected"
    assert rejected.rejection_reason == DEFAULT_REJECTION_REASON
    assert rejected.rejected_at is not None
    assert rejected.channel_name is None


@pytest.mark.asyncio
async def test_reject_then_accept_fails(db_session, issuer):
    request = await _create(db_session)
    request_id = request.id
    await call_service.reject(db_session, request_id, "2", reason="busy")

    with pytest.raises(NotFoundOrAlreadyProcessedError):
        await call_service.accept(db_session, issuer, request_id, "2")


@pytest.mark.asyncio
async def test_reject_by_other_host_is_forbidden(db_session):
    request = await _create(db_session)
    with pytest.raises(PrincipalMismatchError):
        await call_service.reject(db_session, request.id, "7")


@pytest.mark.asyncio
async def test_concurrent_accept_and_reject_exactly_one_wins(database, issuer):
    async with database.session() as db:
        request = await _create(db)
    request_id = request.id

    async def accept():
        async with database.session() as db:
            return await call_service.accept(db, issuer, request_id, "2")

    async def reject():
        async with database.session() as db:
            return await call_service.reject(db, request_id, "2")

    outcomes = await asyncio.gather(accept(), reject(), return_exceptions=True)

    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], NotFoundOrAlreadyProcessedError)

    final = await _status_of(database, request_id)
    if isinstance(outcomes[0], Exception):
        assert final == "rejected"
    else:
        assert final == "accepted"


@pytest.mark.asyncio
async def test_status_pending(db_session, issuer):
    request = await _create(db_session)

    view = await call_service.get_status(db_session, issuer, request.id)

    assert view.kind is CallRequestStatus.PENDING
    assert view.credential is None
    assert not view.superseded


@pytest.mark.asyncio
async def test_status_pending_past_ttl_reads_as_expired(db_session, issuer):
    request = await _create(db_session)
    await backdate_expiry(db_session, request.id)

    view = await call_service.get_status(db_session, issuer, request.id)

    assert view.kind is CallRequestStatus.EXPIRED


@pytest.mark.asyncio
async def test_status_accepted_issues_subscriber_credential(db_session, issuer):
    request = await _create(db_session)
    await call_service.accept(db_session, issuer, request.id, "2")

    default_view = await call_service.get_status(db_session, issuer, request.id)
    custom_view = await call_service.get_status(db_session, issuer, request.id, requesting_uid=7)

    assert default_view.kind is CallRequestStatus.ACCEPTED
    default_claims = decode_credential(default_view.credential.token, TEST_APP_CERTIFICATE)
    assert default_claims["role"] == RtcRole.SUBSCRIBER.value
    assert default_claims["sub"] == "2"
    assert decode_credential(custom_view.credential.token, TEST_APP_CERTIFICATE)["sub"] == "7"


@pytest.mark.asyncio
async def test_status_of_superseded_request_follows_newer_accepted(db_session, issuer):
    r1 = await _create(db_session)
    r2 = await _create(db_session)
    accepted = await call_service.accept(db_session, issuer, r2.id, "2")

    view = await call_service.get_status(db_session, issuer, r1.id)

    assert view.kind is CallRequestStatus.ACCEPTED
    assert view.request.id == r2.id
    assert view.request.channel_name == accepted.request.channel_name
    assert view.superseded
    assert view.credential.channel_name == accepted.request.channel_name


@pytest.mark.asyncio
async def test_status_ignores_older_accepted_request(db_session, issuer):
    old = await _create(db_session)
    await call_service.accept(db_session, issuer, old.id, "2")
    new = await _create(db_session)

    view = await call_service.get_status(db_session, issuer, new.id)

    assert view.kind is CallRequestStatus.PENDING
    assert view.request.id == new.id


@pytest.mark.asyncio
async def test_status_rejected(db_session, issuer):
    request = await _create(db_session)
    await call_service.reject(db_session, request.id, "2")

    view = await call_service.get_status(db_session, issuer, request.id)

    assert view.kind is CallRequestStatus.REJECTED
    assert view.credential is None


@pytest.mark.asyncio
async def test_status_unknown_request(db_session, issuer):
    with pytest.raises(NotFoundOrAlreadyProcessedError):
        await call_service.get_status(db_session, issuer, "missing", None)
