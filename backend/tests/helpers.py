import uuid
from datetime import timedelta
from typing import Optional

from fastapi.testclient import TestClient
from sqlalchemy import update

from app.models.call_request import CallRequest
from app.models.database import utcnow

TEST_APP_ID = "test-app"
TEST_APP_CERTIFICATE = "test-certificate"
TEST_JWT_SECRET = "test-secret"


def unique_phone(prefix: str = '052') -> str:
    # Create a unique phone like '052-xxx-xxxx'
    suffix = uuid.uuid4().hex[:7]
    return f"{prefix}-{suffix[:3]}-{suffix[3:]}"


def create_user(client: TestClient, phone: Optional[str] = None, full_name: str = 'Test User', password: str = 'pass123', role: str = 'customer'):
    if phone is None:
        phone = unique_phone()
    payload = {
        'phone': phone,
        'full_name': full_name,
        'password': password,
        'role': role,
    }
    r = client.post('/api/auth/register', json=payload)
    return r


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_call_request(client: TestClient, customer_id='1', host_id='2', call_type='voice', price_per_minute='10.00', **extra):
    payload = {
        'customer_id': customer_id,
        'host_id': host_id,
        'call_type': call_type,
        'price_per_minute': price_per_minute,
        **extra,
    }
    return client.post('/api/call-requests', json=payload)


async def backdate_expiry(db, request_id: str, seconds: int = 1):
    """Push a request's expires_at into the past without touching its status."""
    await db.execute(
        update(CallRequest)
        .where(CallRequest.id == request_id)
        .values(expires_at=utcnow() - timedelta(seconds=seconds))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
