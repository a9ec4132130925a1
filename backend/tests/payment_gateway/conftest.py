"""Fixtures for payment gateway tests.

Processors are faked at the HTTP layer with ``httpx.MockTransport`` and the
store is an in-memory SQLite database shared by every session of a test.
"""

import json
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from paygate.core.database import Base, get_session
from paygate.main import app
from paygate.modules.payment_gateway.gateways import (
    OmiseGateway,
    StripeGateway,
    HitPayGateway,
)
from paygate.modules.payment_gateway.models import Transaction
from paygate.modules.payment_gateway.router import (
    get_omise_gateway,
    get_stripe_gateway,
    get_hitpay_gateway,
)

OMISE_URL = "https://api.omise.test"
HITPAY_URL = "https://api.hitpay.test/v1/payment-requests"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
HITPAY_SALT = "hitpay_test_salt"


class FakeProcessor:
    """Answers processor calls from a table of canned responses."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, json_body: Any = None, status_code: int = 200) -> None:
        self.routes[(method, path)] = (status_code, json_body if json_body is not None else {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"object": "error", "message": f"no route for {key}"})
        status_code, body = self.routes[key]
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def body(self, index: int = -1) -> Optional[dict]:
        content = self.requests[index].content
        return json.loads(content) if content else None


@pytest.fixture
def omise_api() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def hitpay_api() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def omise(omise_api: FakeProcessor) -> OmiseGateway:
    return OmiseGateway("skey_test_omise", base_url=OMISE_URL, transport=omise_api.transport)


@pytest.fixture
def stripe_gateway() -> StripeGateway:
    return StripeGateway("sk_test_stripe", webhook_secret=STRIPE_WEBHOOK_SECRET)


@pytest.fixture
def hitpay(hitpay_api: FakeProcessor) -> HitPayGateway:
    return HitPayGateway(
        "hitpay_test_key",
        api_url=HITPAY_URL,
        webhook_secret=HITPAY_SALT,
        transport=hitpay_api.transport,
    )


@pytest_asyncio.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_maker, omise, stripe_gateway, hitpay):
    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_omise_gateway] = lambda: omise
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_hitpay_gateway] = lambda: hitpay

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fetch_transactions(session_maker):
    """Read back every recorded transaction, oldest first."""

    async def _fetch() -> list[Transaction]:
        async with session_maker() as session:
            result = await session.execute(select(Transaction).order_by(Transaction.id))
            return list(result.scalars().all())

    return _fetch
