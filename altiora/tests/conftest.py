"""
Test configuration and fixtures for the Altiora access API tests.

Tests run against the in-memory persistence adapter; every test gets a
fresh store and a fresh application built from explicit options.
"""

import os
import random
import string
from datetime import datetime as dt
from datetime import timedelta as td
from datetime import timezone as tz
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before importing application modules
os.environ["PYTEST_RUNNING"] = "1"
os.environ["APP_ENV"] = "test"

from altiora.access.access_models import AccessControlOptions, AccessStatus
from altiora.access.access_store import AccessListStore
from altiora.auth.auth_models import ADMIN_ROLE, USER_ROLE
from altiora.auth.auth_services import auth_service
from altiora.core.adapter import MemoryAdapter
from altiora.core.db_manager import set_db
from altiora.core.rate_limit import limiter
from altiora.core.security import generate_access_entry_id
from altiora.main import create_app
from altiora.users.user_services import user_service


class NotificationRecorder:
    """Status notification callback that remembers every call."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Tuple[str, AccessStatus, Optional[AccessStatus]]] = []

    async def __call__(self, email: str, status: AccessStatus, old_status: Optional[AccessStatus] = None):
        self.calls.append((email, status, old_status))
        if self.fail:
            raise RuntimeError("notification backend unavailable")


@pytest.fixture(autouse=True)
def memory_db():
    """Install a fresh in-memory adapter as the global database."""
    adapter = MemoryAdapter()
    set_db(adapter)
    yield adapter
    set_db(None)


@pytest.fixture(autouse=True)
def rate_limit_off():
    """
    Disable rate limiting unless a test turns it back on.

    Usage:
        def test_limit(self, rate_limit_on): ...
    """
    previous = limiter.enabled
    limiter.enabled = False
    limiter.reset()
    yield
    limiter.enabled = previous
    limiter.reset()


@pytest.fixture
def rate_limit_on(rate_limit_off):
    limiter.enabled = True
    limiter.reset()
    yield


@pytest.fixture
def store(memory_db) -> AccessListStore:
    return AccessListStore(memory_db)


@pytest.fixture
def notifier() -> NotificationRecorder:
    return NotificationRecorder()


@pytest.fixture
def access_options(notifier) -> AccessControlOptions:
    """Default options with a recording notifier; override per module if needed."""
    return AccessControlOptions(send_status_notification=notifier)


@pytest.fixture
def app(access_options):
    return create_app(access_options)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide async HTTP client for testing API endpoints.
    """
    async with client_for(app) as client:
        yield client


def client_for(app_or_options) -> AsyncClient:
    """
    Build a client for an app, or for a fresh app built from options.

    Usage:
        async with client_for(AccessControlOptions(allow_waitlist=False)) as client: ...
    """
    app = create_app(app_or_options) if isinstance(app_or_options, AccessControlOptions) else app_or_options
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


# ================== Users and tokens ==================


async def create_user_headers(role: str = USER_ROLE, email: Optional[str] = None) -> Tuple[dict, Dict[str, str]]:
    """Create a user directly in the store and return (user, auth headers)."""
    user = await user_service.create_user(
        email=email or generate_test_email(role),
        password=generate_test_password(),
        name=f"Test {role.title()}",
        role=role,
    )
    token = auth_service.issue_access_token(user)
    return user, {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def admin_user(memory_db) -> Tuple[dict, Dict[str, str]]:
    return await create_user_headers(ADMIN_ROLE)


@pytest_asyncio.fixture
async def admin_headers(admin_user) -> Dict[str, str]:
    return admin_user[1]


@pytest_asyncio.fixture
async def user_headers(memory_db) -> Dict[str, str]:
    _, headers = await create_user_headers(USER_ROLE)
    return headers


# ================== TEST UTILITY FUNCTIONS ==================


def generate_test_email(prefix: str = "test") -> str:
    """Generate a unique test email address."""
    random_suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"{prefix}_{random_suffix}@example.com"


def generate_test_password() -> str:
    """Generate a test password."""
    return "TestPassword123!"


def seed_entry(
    adapter: MemoryAdapter,
    email: str,
    status: AccessStatus,
    created_minutes_ago: int = 0,
) -> dict:
    """
    Insert an access list row directly, with a controlled created_at.

    Returns a detached copy, so later writes through the store do not change it.
    """
    created_at = dt.now(tz.utc) - td(minutes=created_minutes_ago)
    row = {
        "id": generate_access_entry_id(),
        "email": email.lower(),
        "status": status.value,
        "added_by": None,
        "user_id": None,
        "created_at": created_at,
        "updated_at": created_at,
    }
    adapter.tables.setdefault("access_list", []).append(dict(row))
    return row


def assert_response_structure(response_data: dict, expected_status: int = 1) -> None:
    """Assert that response follows the {status, message, data} envelope."""
    assert "status" in response_data
    assert "message" in response_data
    assert response_data["status"] == expected_status


def assert_error(response, status_code: int, code: str) -> None:
    """Assert an access-control error response."""
    assert response.status_code == status_code
    body = response.json()
    assert body["status"] == 0
    assert body["code"] == code
    assert body["message"]
