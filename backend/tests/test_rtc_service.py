import pytest

from app.services.rtc_service import (
    CredentialServiceUnavailableError,
    JwtCredentialIssuer,
    RtcRole,
    decode_credential,
)
from tests.helpers import TEST_APP_ID, TEST_APP_CERTIFICATE, create_user, auth_headers


def test_issue_credential_claims(issuer):
    credential = issuer.issue("call_2_1700000000000", 1, RtcRole.PUBLISHER, 600)

    assert credential.app_id == TEST_APP_ID
    assert credential.role is RtcRole.PUBLISHER
    claims = decode_credential(credential.token, TEST_APP_CERTIFICATE)
    assert claims["iss"] == TEST_APP_ID
    assert claims["sub"] == "1"
    assert claims["channel"] == "call_2_1700000000000"
    assert claims["exp"] - claims["iat"] == 600


def test_credential_rejected_with_wrong_certificate(issuer):
    credential = issuer.issue("room", 2, RtcRole.SUBSCRIBER, 60)
    assert decode_credential(credential.token, "other-certificate") is None


def test_unconfigured_issuer_is_unavailable():
    with pytest.raises(CredentialServiceUnavailableError):
        JwtCredentialIssuer(None, None).issue("room", 1, RtcRole.PUBLISHER, 60)
    with pytest.raises(CredentialServiceUnavailableError):
        JwtCredentialIssuer(TEST_APP_ID, "").issue("room", 1, RtcRole.PUBLISHER, 60)


def test_empty_channel_is_rejected(issuer):
    with pytest.raises(ValueError):
        issuer.issue("", 1, RtcRole.PUBLISHER, 60)


def test_rtc_token_endpoint(client):
    token = create_user(client).json()["token"]

    r = client.post("/api/rtc/token", json={"channel_name": "room-7", "uid": 42}, headers=auth_headers(token))
    assert r.status_code == 200
    credential = r.json()["credential"]
    assert credential["role"] == "publisher"
    claims = decode_credential(credential["token"], TEST_APP_CERTIFICATE)
    assert claims["sub"] == "42"
    assert claims["exp"] - claims["iat"] == 300


def test_rtc_token_endpoint_errors(client):
    token = create_user(client).json()["token"]

    assert client.post("/api/rtc/token", json={"channel_name": "room"}).status_code == 401

    r = client.post("/api/rtc/token", json={"channel_name": "room", "role": "admin"}, headers=auth_headers(token))
    assert r.status_code == 400

    r = client.post("/api/rtc/token", json={"channel_name": "room", "ttl_seconds": 0}, headers=auth_headers(token))
    assert r.status_code == 400
