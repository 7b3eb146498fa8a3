from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.database import utcnow
from app.services.call import call_service, TransactionFilter


async def _settled(db, host_id="2", customer_id="1", price="10.00", minutes=3, rating=None):
    session = await call_service.start_session(
        db, host_id=host_id, customer_id=customer_id, channel_name=f"c-{customer_id}",
        call_type="voice", price_per_minute=price,
    )
    await call_service.end_session(db, session.id, minutes, rating=rating)
    return session


@pytest.mark.asyncio
async def test_earnings_summary_for_new_host(db_session):
    summary = await call_service.get_earnings_summary(db_session, "42")

    assert summary["total_earnings"] == Decimal("0.00")
    assert summary["total_calls"] == 0
    assert summary["today_earnings"] == Decimal("0.00")
    assert summary["average_rating"] is None


@pytest.mark.asyncio
async def test_earnings_summary_totals(db_session):
    await _settled(db_session, price="10.00", minutes=3, rating=4)
    await _settled(db_session, customer_id="5", price="1.50", minutes=2, rating=5)
    await _settled(db_session, host_id="9", customer_id="1", minutes=10)

    summary = await call_service.get_earnings_summary(db_session, "2")

    assert summary["total_earnings"] == Decimal("33.00")
    assert summary["total_calls"] == 2
    assert summary["total_minutes"] == 5
    assert summary["today_earnings"] == Decimal("33.00")
    assert summary["week_earnings"] == Decimal("33.00")
    assert summary["average_rating"] == 4.5


@pytest.mark.asyncio
async def test_call_history_covers_both_roles(db_session):
    as_customer = await _settled(db_session, host_id="2", customer_id="1")
    as_host = await _settled(db_session, host_id="1", customer_id="7")
    await _settled(db_session, host_id="8", customer_id="9")

    history = await call_service.get_user_call_history(db_session, "1")

    assert {s.id for s in history} == {as_customer.id, as_host.id}


@pytest.mark.asyncio
async def test_host_sessions_paginate(db_session):
    for customer in ("11", "12", "13"):
        await _settled(db_session, customer_id=customer)

    first_page = await call_service.get_host_sessions(db_session, "2", limit=2)
    second_page = await call_service.get_host_sessions(db_session, "2", limit=2, offset=2)

    assert len(first_page) == 2
    assert len(second_page) == 1
    assert not {s.id for s in first_page} & {s.id for s in second_page}


@pytest.mark.asyncio
async def test_list_transactions_filters(db_session):
    await _settled(db_session, customer_id="11")
    await _settled(db_session, customer_id="12")
    await _settled(db_session, host_id="3", customer_id="13")

    all_for_host = await call_service.list_transactions(db_session, TransactionFilter(host_id="2"))
    assert len(all_for_host) == 2
    assert all(t.transaction_type == "call" for t in all_for_host)

    by_type = await call_service.list_transactions(
        db_session, TransactionFilter(host_id="2", transaction_type="payout")
    )
    assert by_type == []

    tomorrow = utcnow() + timedelta(days=1)
    future = await call_service.list_transactions(db_session, TransactionFilter(host_id="2", date_from=tomorrow))
    assert future == []

    bounded = await call_service.list_transactions(
        db_session, TransactionFilter(host_id="2", date_to=tomorrow, limit=1)
    )
    assert len(bounded) == 1
