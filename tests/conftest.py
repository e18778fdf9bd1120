import os
import uuid
from typing import AsyncGenerator, Callable, Dict, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from school_fees.auth.security import create_access_token
from school_fees.db.session import Base, get_db
from school_fees.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI session dependency."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def actor_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def make_headers(tenant_id: uuid.UUID, actor_id: uuid.UUID) -> Callable[..., Dict[str, str]]:
    """Build bearer headers for a user of the test tenant."""

    def _make(role: str = "SUPER_ADMIN", permissions: Optional[Dict] = None, user_id: Optional[uuid.UUID] = None):
        token = create_access_token(
            subject={
                "sub": str(user_id or actor_id),
                "user_id": str(user_id or actor_id),
                "tenant_id": str(tenant_id),
                "role": role,
                "permissions": permissions or {},
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def auth_headers(make_headers) -> Dict[str, str]:
    return make_headers()


@pytest.fixture()
def create_year(client: AsyncClient, auth_headers: Dict[str, str]):
    """POST an academic year named after its sequence with two terms; returns the response JSON."""

    async def _create(name: str, current_term: Optional[int] = None, **extra) -> Dict:
        payload = {
            "name": name,
            "terms": [
                {"name": "Term 1", "is_current": current_term == 1},
                {"name": "Term 2", "is_current": current_term == 2},
            ],
        }
        payload.update(extra)
        response = await client.post("/api/v1/academic-years", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture()
def create_fee(client: AsyncClient, auth_headers: Dict[str, str]):
    async def _create(name: str = "Tuition", amount: str = "100000", **extra) -> Dict:
        payload = {"name": name, "amount": amount, "category": "Tuition Fee"}
        payload.update(extra)
        response = await client.post("/api/v1/fee-items", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
