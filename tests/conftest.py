"""
Shared pytest fixtures for Task Vision backend tests.

Uses SQLite in-memory with StaticPool so all sessions share one connection,
meaning data written in one session is visible to others (important for HTTP client tests).
"""
import asyncio
import uuid
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import taskvision.models  # noqa – registers all SQLAlchemy models with Base.metadata
from taskvision.api.deps import get_push_sender
from taskvision.core.database import Base, get_db, get_session_factory
from taskvision.main import app
from taskvision.models.employee import Employee
from taskvision.services.push_delivery import DeliveryError, DeliveryFailure
from taskvision.services.subscription_store import SqlSubscriptionStore, SubscriptionStoreError

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_STATUS = {
    DeliveryFailure.GONE: 410,
    DeliveryFailure.TRANSIENT: 503,
    DeliveryFailure.PERMANENT: 400,
}


# ── Fakes for the push pipeline ───────────────────────────────────────────────

class FakeSender:
    """
    Scripted delivery worker. outcomes maps endpoint → list of outcomes per call,
    None means success, a DeliveryFailure raises DeliveryError of that kind.
    Records every call and the high-water mark of concurrent deliveries.
    """

    def __init__(self, outcomes=None, delay: float = 0.0):
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.delay = delay
        self.calls: list[str] = []
        self.payloads: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.drained = 0  # how often in-flight dropped back to zero

    async def deliver(self, subscription, payload: str) -> None:
        self.calls.append(subscription.endpoint)
        self.payloads.append(payload)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            script = self.outcomes.get(subscription.endpoint)
            outcome = script.pop(0) if script else None
            if outcome is not None:
                raise DeliveryError(outcome, f"fake {outcome.value}", _STATUS[outcome])
        finally:
            self.in_flight -= 1
            if self.in_flight == 0:
                self.drained += 1

    def call_count(self, endpoint: str) -> int:
        return self.calls.count(endpoint)


class FakeStore:
    """In-memory subscription store."""

    def __init__(self, subscriptions=(), fail_reads: bool = False):
        self.subscriptions = list(subscriptions)
        self.fail_reads = fail_reads
        self.reads = 0
        self.deleted: list[uuid.UUID] = []

    async def list_by_owners(self, owner_ids):
        self.reads += 1
        if self.fail_reads:
            raise SubscriptionStoreError("connection refused")
        ids = set(owner_ids)
        return [s for s in self.subscriptions if s.employee_id in ids]

    async def list_all(self):
        self.reads += 1
        if self.fail_reads:
            raise SubscriptionStoreError("connection refused")
        return list(self.subscriptions)

    async def delete_by_id(self, subscription_id):
        self.deleted.append(subscription_id)
        self.subscriptions = [s for s in self.subscriptions if s.id != subscription_id]


def make_sub(employee_id=None, endpoint: str | None = None):
    return SimpleNamespace(
        id=uuid.uuid4(),
        employee_id=employee_id or uuid.uuid4(),
        endpoint=endpoint or f"https://fcm.googleapis.com/fcm/send/{uuid.uuid4().hex}",
        p256dh="BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM",
        auth="tBHItJI5svbpez7KI4CCXg",
    )


# ── Shared engine (function-scoped: fresh DB per test) ───────────────────────

@pytest_asyncio.fixture
async def engine():
    """Creates a fresh in-memory SQLite engine per test with a shared connection pool."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,          # single shared connection → all sessions see same data
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    """Async DB session for direct data inspection inside tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(session_factory) -> SqlSubscriptionStore:
    return SqlSubscriptionStore(session_factory)


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory, sender) -> AsyncClient:
    """
    FastAPI test client with DB session, session factory and push sender overridden.
    Each request gets its own session but shares the same underlying connection via StaticPool.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_push_sender] = lambda: sender

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ── Employee fixtures ─────────────────────────────────────────────────────────

async def create_employee(db, name: str = "Nimal Perera", role: str = "employee") -> Employee:
    e = Employee(
        id=uuid.uuid4(),
        name=name,
        email=f"{uuid.uuid4().hex[:8]}@taskvision.test",
        role=role,
        is_active=True,
    )
    db.add(e)
    await db.commit()
    await db.refresh(e)
    return e


@pytest_asyncio.fixture
async def employee(db) -> Employee:
    return await create_employee(db)


@pytest_asyncio.fixture
async def department_head(db) -> Employee:
    return await create_employee(db, name="Kamala Silva", role="department_head")
