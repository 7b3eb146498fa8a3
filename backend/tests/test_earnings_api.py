from tests.helpers import create_user, create_call_request, auth_headers


def _register(client, role):
    data = create_user(client, role=role).json()
    return data["user_id"], auth_headers(data["token"])


def _settle_call(client, customer_id, host_id, price="20.00", duration=3, rating=None):
    request_id = create_call_request(
        client, customer_id=customer_id, host_id=host_id, price_per_minute=price
    ).json()["request_id"]
    client.put(f"/api/call-requests/{request_id}/accept", json={"host_id": host_id})
    session_id = client.post("/api/call-sessions", json={"request_id": request_id}).json()["session_id"]
    body = {"duration": duration}
    if rating is not None:
        body["rating"] = rating
    client.put(f"/api/call-sessions/{session_id}/end", json=body)
    return session_id


def test_host_earnings_after_calls(client):
    host_id, host_headers = _register(client, "host")
    customer_id, _ = _register(client, "customer")

    _settle_call(client, customer_id, host_id, price="20.00", duration=3, rating=4)
    _settle_call(client, customer_id, host_id, price="20.00", duration=1, rating=2)

    r = client.get(f"/api/hosts/{host_id}/earnings", headers=host_headers)
    assert r.status_code == 200
    earnings = r.json()["earnings"]
    assert earnings["total_earnings"] == "80.00"
    assert earnings["today_earnings"] == "80.00"
    assert earnings["total_calls"] == 2
    assert earnings["total_minutes"] == 4
    assert earnings["average_rating"] == 3.0


def test_host_transactions_and_sessions(client):
    host_id, host_headers = _register(client, "host")
    customer_id, _ = _register(client, "customer")
    session_id = _settle_call(client, customer_id, host_id, price="7.50", duration=2)

    r = client.get(f"/api/hosts/{host_id}/transactions", headers=host_headers)
    assert r.status_code == 200
    transactions = r.json()["transactions"]
    assert len(transactions) == 1
    assert transactions[0]["reference_id"] == session_id
    assert transactions[0]["amount"] == "15.00"
    assert transactions[0]["type"] == "call"

    r = client.get(f"/api/hosts/{host_id}/transactions", params={"type": "payout"}, headers=host_headers)
    assert r.json()["transactions"] == []

    r = client.get(f"/api/hosts/{host_id}/call-sessions", headers=host_headers)
    assert [s["id"] for s in r.json()["sessions"]] == [session_id]


def test_earnings_are_private(client):
    host_id, _ = _register(client, "host")
    other_id, other_headers = _register(client, "host")

    assert client.get(f"/api/hosts/{host_id}/earnings").status_code == 401
    assert client.get(f"/api/hosts/{host_id}/earnings", headers=other_headers).status_code == 403
    assert client.get(f"/api/hosts/{host_id}/transactions", headers=other_headers).status_code == 403
    assert client.get(f"/api/hosts/{host_id}/call-sessions", headers=other_headers).status_code == 403


def test_call_history_self_only(client):
    host_id, host_headers = _register(client, "host")
    customer_id, customer_headers = _register(client, "customer")
    session_id = _settle_call(client, customer_id, host_id)

    r = client.get(f"/api/users/{customer_id}/call-history", headers=customer_headers)
    assert r.status_code == 200
    assert [c["id"] for c in r.json()["calls"]] == [session_id]

    r = client.get(f"/api/users/{host_id}/call-history", headers=host_headers)
    assert [c["id"] for c in r.json()["calls"]] == [session_id]

    r = client.get(f"/api/users/{customer_id}/call-history", headers=host_headers)
    assert r.status_code == 403


def test_customer_cannot_read_host_endpoints(client):
    customer_id, customer_headers = _register(client, "customer")

    r = client.get(f"/api/hosts/{customer_id}/earnings", headers=customer_headers)
    assert r.status_code == 403
    assert r.json() == {"success": False, "message": "Host account required"}
    assert client.get(f"/api/hosts/{customer_id}/transactions", headers=customer_headers).status_code == 403

    # Their own history is still readable
    assert client.get(f"/api/users/{customer_id}/call-history", headers=customer_headers).status_code == 200
