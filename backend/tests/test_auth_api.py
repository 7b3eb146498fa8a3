from tests.helpers import create_user, unique_phone, auth_headers


def test_register_and_login(client):
    # Register
    payload = {
        "phone": "052-111-2222",
        "full_name": "Test Host",
        "password": "password123",
        "role": "host",
    }
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 201
    data = r.json()
    assert data["success"] is True
    assert "user_id" in data
    assert "token" in data

    # Login
    r2 = client.post("/api/auth/login", json={"phone": payload["phone"], "password": payload["password"]})
    assert r2.status_code == 200
    data2 = r2.json()
    assert data2["full_name"] == "Test Host"
    assert data2["role"] == "host"

    # Me
    r3 = client.get("/api/auth/me", headers=auth_headers(data2["token"]))
    assert r3.status_code == 200
    me = r3.json()
    assert me["phone"] == payload["phone"]
    assert me["id"] == data["user_id"]
    assert me["role"] == "host"


def test_register_defaults_to_customer(client):
    r = create_user(client, full_name="Caller")
    token = r.json()["token"]
    assert client.get("/api/auth/me", headers=auth_headers(token)).json()["role"] == "customer"


def test_register_duplicate_phone(client):
    phone = unique_phone()
    assert create_user(client, phone=phone).status_code == 201
    r = create_user(client, phone=phone)
    assert r.status_code == 409
    assert r.json() == {"success": False, "message": "Phone already in use"}


def test_register_rejects_bad_input(client):
    assert create_user(client, password="123").status_code == 400
    assert create_user(client, role="admin").status_code == 400


def test_login_wrong_password(client):
    phone = unique_phone()
    create_user(client, phone=phone, password="right-pass")
    r = client.post("/api/auth/login", json={"phone": phone, "password": "wrong-pass"})
    assert r.status_code == 401


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
    assert client.get("/api/auth/me", headers=auth_headers("not-a-jwt")).status_code == 401
