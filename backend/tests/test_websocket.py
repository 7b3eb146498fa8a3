import pytest
from fastapi import WebSocketDisconnect

from tests.helpers import create_user, create_call_request


def test_signal_socket_requires_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/signal") as ws:
            ws.receive_json()

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/signal?token=garbage") as ws:
            ws.receive_json()


def test_signal_socket_ping_and_heartbeat(client):
    data = create_user(client, role="host").json()

    with client.websocket_connect(f"/ws/signal?token={data['token']}") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["user_id"] == data["user_id"]
        assert connected["role"] == "host"

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

        ws.send_json({"type": "heartbeat"})
        assert ws.receive_json()["type"] == "heartbeat_ack"

        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        assert client.get("/health").json()["connected_users"] == 1


def test_host_receives_incoming_call_and_customer_acceptance(client):
    host = create_user(client, role="host").json()
    customer = create_user(client, role="customer").json()

    with client.websocket_connect(f"/ws/signal?token={host['token']}") as host_ws, \
            client.websocket_connect(f"/ws/signal?token={customer['token']}") as customer_ws:
        host_ws.receive_json()
        customer_ws.receive_json()

        request_id = create_call_request(
            client, customer_id=customer["user_id"], host_id=host["user_id"]
        ).json()["request_id"]

        incoming = host_ws.receive_json()
        assert incoming["type"] == "incoming_call"
        assert incoming["request_id"] == request_id
        assert incoming["customer_id"] == customer["user_id"]

        client.put(f"/api/call-requests/{request_id}/accept", json={"host_id": host["user_id"]})

        accepted = customer_ws.receive_json()
        assert accepted["type"] == "call_accepted"
        assert accepted["request_id"] == request_id
        assert accepted["channel_name"].startswith(f"call_{host['user_id']}_")
