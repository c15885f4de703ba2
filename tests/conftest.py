"""
Shared test fixtures for the CivicConnect test suite.

Async throughout (aiosqlite + AsyncSession). Identity tokens are minted
with the same secret the app verifies against, and the checkout
provider is replaced by an in-memory one.
"""

import os
import sys
from typing import AsyncGenerator, Generator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["IDENTITY_SECRET_KEY"] = "test-identity-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_unused"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from civicconnect.api.v1.deps import get_checkout_provider, get_db
from civicconnect.core.exceptions import InvalidSessionError
from civicconnect.core.security import create_identity_token
from civicconnect.db.base import Base
from civicconnect.main import app
from civicconnect.models.user import User
from civicconnect.services.access import Actor
from civicconnect.services.checkout import CheckoutSession

# Create a test engine for the entire session
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


# ── Checkout provider ───────────────────────────────────────────────
class FakeCheckoutProvider:
    """In-memory stand-in for Stripe Checkout."""

    def __init__(self) -> None:
        self.sessions: dict[str, CheckoutSession] = {}
        self.created: list[dict] = []

    async def create_session(self, **kwargs) -> CheckoutSession:
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(kwargs)
        session = CheckoutSession(
            id=session_id,
            payment_status="unpaid",
            url=f"https://checkout.test/{session_id}",
            payer_email=kwargs["payer_email"],
            amount_total=kwargs["amount_minor"],
            currency=kwargs["currency"],
            metadata=dict(kwargs["metadata"]),
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        if session_id not in self.sessions:
            raise InvalidSessionError("Payment session not found")
        return self.sessions[session_id]

    def add_paid_session(
        self,
        session_id: str,
        payer_email: str,
        metadata: dict[str, str],
        amount_total: int = 10000,
        payment_status: str = "paid",
    ) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            payment_status=payment_status,
            payer_email=payer_email,
            amount_total=amount_total,
            currency="usd",
            metadata=metadata,
        )
        self.sessions[session_id] = session
        return session


@pytest.fixture
def checkout() -> Generator[FakeCheckoutProvider, None, None]:
    provider = FakeCheckoutProvider()
    app.dependency_overrides[get_checkout_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_checkout_provider, None)


# ── Clients & sessions ──────────────────────────────────────────────
@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Users & identity ────────────────────────────────────────────────
def auth_headers(email: str, name: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_identity_token(email, name=name)}"}


@pytest.fixture
def create_user():
    """Factory inserting a user row; returns the matching ``Actor``."""

    async def _create(
        email: str,
        role: str = "citizen",
        district: str | None = None,
        display_name: str | None = None,
        is_blocked: bool = False,
    ) -> Actor:
        async with TestingSessionLocal() as session:
            user = User(
                email=email,
                role=role,
                district=district,
                display_name=display_name,
                is_blocked=is_blocked,
            )
            session.add(user)
            await session.commit()
            return Actor.from_user(user)

    return _create


@pytest.fixture
async def citizen(create_user) -> Actor:
    return await create_user("citizen@example.com", display_name="Rina Citizen")


@pytest.fixture
async def admin(create_user) -> Actor:
    return await create_user("admin@example.com", role="admin", display_name="Ada Admin")


@pytest.fixture
async def staff(create_user) -> Actor:
    return await create_user(
        "staff@example.com", role="staff", district="Dhaka", display_name="Sam Staff"
    )


@pytest.fixture
async def issue_id(async_client, citizen) -> int:
    """A freshly reported Pending issue in Dhaka, owned by the citizen."""
    resp = await async_client.post(
        "/api/v1/issues",
        json={
            "title": "Broken streetlight",
            "description": "The light on Road 7 has been out for a week.",
            "category": "Streetlight",
            "region": "Dhaka Division",
            "district": "Dhaka",
            "location": "Road 7, Dhanmondi",
        },
        headers=auth_headers(citizen.email),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]
