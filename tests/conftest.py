"""
Shared fixtures.

Environment is set before any `api` import so the settings singleton picks
up an in-memory database and test secrets. The app runs against one
in-memory SQLite connection (StaticPool) per test, with the AI oracle and
Redis cache replaced by fakes through `app.dependency_overrides`.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-jwt-signing-0123456789"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

from typing import Any, Dict, Optional, Set

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from main import app
from api.apps.auth.models import Department, Role
from api.apps.auth.schemas import CurrentUser, RegisterRequest
from api.apps.auth.services import register_user
from api.apps.complaints.models import ComplaintPriority
from api.core.dependencies import get_cache, get_oracle
from api.core.oracle import DepartmentSuggestion
from api.db.base_model import Base
from api.db.database import create_engine, create_session_factory, get_session
from api.utils.exceptions import OracleError
from api.utils.security import create_access_token

PASSWORD = "correct-horse-battery"


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeOracle:
    """
    Stand-in for ComplaintOracle.

    `failing` holds capability names that raise OracleError;
    `failing_texts` makes draft_solution fail for specific complaint texts.
    """

    def __init__(self):
        self.priority = ComplaintPriority.HIGH
        self.suggestion = DepartmentSuggestion(
            department=Department.IT, reason="The complaint is about network access."
        )
        self.failing: Set[str] = set()
        self.failing_texts: Set[str] = set()
        self.calls: list[str] = []

    def _enter(self, capability: str) -> None:
        self.calls.append(capability)
        if capability in self.failing:
            raise OracleError()

    async def classify_priority(self, complaint_text: str) -> ComplaintPriority:
        self._enter("classify_priority")
        return self.priority

    async def suggest_department(self, complaint_text: str) -> DepartmentSuggestion:
        self._enter("suggest_department")
        return self.suggestion

    async def draft_staff_guidance(self, complaint_text: str) -> str:
        self._enter("draft_staff_guidance")
        return f"Guidance: {complaint_text}"

    async def draft_solution(self, complaint_text: str, department: str) -> str:
        self._enter("draft_solution")
        if complaint_text in self.failing_texts:
            raise OracleError()
        return f"[{department}] We are looking into: {complaint_text}"

    async def advise_student(self, complaint_text: str, solution_text: str) -> str:
        self._enter("advise_student")
        return f"The solution '{solution_text}' addresses your complaint."


class FakeCache:
    def __init__(self):
        self.store: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self.store.get(key)

    async def set(self, key: str, value: Dict[str, Any], ttl: int = 3600) -> None:
        self.store[key] = value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


# ── Database ──────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def cache():
    return FakeCache()


# ── Users ─────────────────────────────────────────────────────────────────────

async def _register(session_factory, **fields) -> CurrentUser:
    async with session_factory() as s:
        user = await register_user(s, RegisterRequest(password=PASSWORD, **fields))
    return CurrentUser(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        department_name=user.department_name,
    )


@pytest_asyncio.fixture
async def student(session_factory) -> CurrentUser:
    return await _register(
        session_factory,
        name="Sara Ahmed",
        email="sara@university.edu",
        role=Role.STUDENT,
        major="Computer Science",
        age=21,
    )


@pytest_asyncio.fixture
async def other_student(session_factory) -> CurrentUser:
    return await _register(
        session_factory,
        name="Omar Khalid",
        email="omar@university.edu",
        role=Role.STUDENT,
        major="Mathematics",
    )


@pytest_asyncio.fixture
async def it_staff(session_factory) -> CurrentUser:
    return await _register(
        session_factory,
        name="Chloe Davis",
        email="chloe@university.edu",
        role=Role.DEPARTMENT,
        department_name=Department.IT,
    )


@pytest_asyncio.fixture
async def finance_staff(session_factory) -> CurrentUser:
    return await _register(
        session_factory,
        name="Benjamin Carter",
        email="ben@university.edu",
        role=Role.DEPARTMENT,
        department_name=Department.FINANCIAL_SUPPORT,
    )


@pytest.fixture
def auth_headers():
    """Bearer header factory: auth_headers(user) -> {"Authorization": ...}"""

    def _headers(user: CurrentUser) -> Dict[str, str]:
        token = create_access_token(user_id=user.id, role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ── HTTP ──────────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory, oracle, cache):
    """ASGI client; lifespan does not run, so state is wired here."""

    async def override_session():
        async with session_factory() as s:
            yield s

    app.state.session_factory = session_factory
    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_oracle] = lambda: oracle
    app.dependency_overrides[get_cache] = lambda: cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
