import sys
import pytest
from pathlib import Path

# Add project root (2 levels up from tests/) to sys.path so tests can import 'app'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.models.database import Database
from app.services.rtc_service import CredentialServiceUnavailableError, JwtCredentialIssuer
from tests.helpers import TEST_APP_ID, TEST_APP_CERTIFICATE, TEST_JWT_SECRET


@pytest.fixture
def database_url(tmp_path):
    # File-backed so every session gets its own connection (needed for concurrency tests)
    return f"sqlite+aiosqlite:///{tmp_path / 'signaling.db'}"


@pytest.fixture
async def database(database_url):
    db = Database(database_url)
    await db.init_db()
    yield db
    await db.dispose()


@pytest.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def issuer():
    return JwtCredentialIssuer(TEST_APP_ID, TEST_APP_CERTIFICATE)


class FailingIssuer:
    """Credential provider that is always down."""

    def issue(self, channel_name, uid, role, ttl_seconds):
        raise CredentialServiceUnavailableError("provider down")


@pytest.fixture
def failing_issuer():
    return FailingIssuer()


@pytest.fixture
def test_settings(database_url):
    return Settings(
        DATABASE_URL=database_url,
        REDIS_ENABLED=False,
        BACKGROUND_TASKS_ENABLED=False,
        METRICS_ENABLED=False,
        RTC_APP_ID=TEST_APP_ID,
        RTC_APP_CERTIFICATE=TEST_APP_CERTIFICATE,
        JWT_SECRET_KEY=TEST_JWT_SECRET,
    )


@pytest.fixture
def client(test_settings):
    from app.main import create_app

    with TestClient(create_app(test_settings)) as c:
        yield c
