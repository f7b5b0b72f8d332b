import pytest
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from clinic_api.core.config import Settings
from clinic_api.main import create_app


# In-memory stand-in for the Supabase async client. Supports the query
# chains the services use: select/insert/order/limit/execute.
class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data

class FakeTable:
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.fail: Optional[Exception] = None
        self.fail_inserts: Optional[Exception] = None

class FakeQuery:
    def __init__(self, table: FakeTable):
        self.table = table
        self._insert: Optional[Dict[str, Any]] = None
        self._order: List[tuple] = []
        self._limit: Optional[int] = None

    def select(self, *columns):
        return self

    def insert(self, payload):
        self._insert = payload
        return self

    def order(self, column, desc=False):
        self._order.append((column, desc))
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def execute(self):
        if self.table.fail:
            raise self.table.fail
        if self._insert is not None:
            if self.table.fail_inserts:
                raise self.table.fail_inserts
            row = dict(self._insert)
            self.table.rows.append(row)
            return FakeResponse([dict(row)])

        rows = [dict(r) for r in self.table.rows]
        for column, desc in reversed(self._order):
            rows.sort(key=lambda r: r[column], reverse=desc)
        if self._limit is not None:
            rows = rows[:self._limit]
        return FakeResponse(rows)

class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, FakeTable] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.tables.setdefault(name, FakeTable()))

    def bookings(self) -> FakeTable:
        return self.tables.setdefault("bookings", FakeTable())


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "SUPABASE_URL": "https://abcd1234.supabase.co",
        "SUPABASE_KEY": "test-service-key",
        "JWT_SECRET": "test-secret",
        "ADMIN_EMAIL_LOGIN": "admin@clinic.test",
        "ADMIN_PASSWORD": "s3cret",
        "SMTP_SERVER": "",
        "SMTP_USERNAME": "",
        "SMTP_PASSWORD": "",
        "SERVERLESS": False,
        "VERCEL": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()

@pytest.fixture
def fake_db():
    return FakeSupabase()

@pytest.fixture
def mock_create_client(fake_db):
    with patch("clinic_api.services.db_service.create_async_client", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = fake_db
        yield mock_create

@pytest.fixture
def client(settings, mock_create_client):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
