import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("GOOGLE_SHEET_ID", None)

from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import Employee
from app.auth.security import create_access_token, hash_password
from app.core.clock import FixedClock, get_clock
from app.db.session import Base, get_db
from app.integrations.ledger import AttendanceLedger, get_ledger
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TIMEZONE = "Asia/Kolkata"
# Tuesday 20 October 2026, 09:15 local time
TUESDAY_MORNING = datetime(2026, 10, 20, 9, 15, tzinfo=ZoneInfo(TIMEZONE))


class InMemorySheetBackend:
    """Worksheet double. Like Sheets, trailing empty rows are not returned by get_all_values."""

    def __init__(self, rows: Optional[List[List[str]]] = None) -> None:
        self.rows: List[List[str]] = [list(r) for r in rows or []]
        self.fail = False
        self.writes: List[int] = []

    def get_all_values(self) -> List[List[str]]:
        if self.fail:
            raise RuntimeError("sheet unavailable")
        rows = [list(r) for r in self.rows]
        while rows and all(not c for c in rows[-1]):
            rows.pop()
        return rows

    def write_row(self, row_number: int, values: List[str]) -> None:
        if self.fail:
            raise RuntimeError("sheet unavailable")
        while len(self.rows) < row_number:
            self.rows.append([""] * len(values))
        self.rows[row_number - 1] = list(values)
        self.writes.append(row_number)

    def data_rows(self) -> List[List[str]]:
        return [r for r in self.rows[1:] if any(r)]


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test; all sessions share one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(TUESDAY_MORNING, TIMEZONE, weekly_rest_day=6)


@pytest.fixture()
def sheet() -> InMemorySheetBackend:
    return InMemorySheetBackend()


@pytest.fixture()
def ledger(sheet, clock):
    ledger = AttendanceLedger(sheet, clock, timeout_seconds=5)
    yield ledger
    ledger.close()


@pytest.fixture()
def make_employee(session_factory):
    async def _make(
        name: str,
        code: str,
        role: str = "employee",
        is_active: bool = True,
        password: str = "secret123",
    ) -> Employee:
        async with session_factory() as session:
            employee = Employee(
                employee_code=code,
                name=name,
                email=f"{code.lower()}@example.com",
                username=code.lower(),
                password_hash=hash_password(password),
                role=role,
                is_active=is_active,
            )
            session.add(employee)
            await session.commit()
            return employee

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(employee: Employee) -> Dict[str, str]:
        token = create_access_token(subject={"sub": str(employee.id), "role": employee.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
async def client(session_factory, ledger, clock) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, with store, ledger and clock overridden."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
