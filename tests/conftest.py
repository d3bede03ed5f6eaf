import copy
import os
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockroom.main import app
from stockroom.config import get_settings
from stockroom.database import Base, get_db
from stockroom.services.data_store import DataStore
from stockroom.services.errors import RecordNotFound, StoreWriteError
from stockroom.utils.cache import cache_service


# Create test database (SQLite in-memory for testing)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def offline_cache():
    """Keep tests independent of a running Redis: every read is a miss."""
    client = MagicMock()
    client.get.return_value = None
    with patch.object(cache_service, "client", client):
        yield client


@pytest.fixture(autouse=True)
def no_celery():
    """Stock checks are enqueued after movements; never reach a broker."""
    with patch("stockroom.api.movements.check_stock_limits.delay") as delay:
        yield delay


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create database session for direct database access in tests."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


def make_token(user_id: str, expires_in: int = 3600, secret: str = None) -> str:
    """Token as the identity service would issue it."""
    settings = get_settings()
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(
        payload,
        secret or settings.IDENTITY_JWT_SECRET,
        algorithm=settings.IDENTITY_JWT_ALGORITHM,
    )


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def registered_user(client):
    """A user signed in and provisioned in the directory; returns its auth headers."""
    headers = auth_headers("u1")
    response = client.post(
        "/api/v1/users/",
        json={"username": "maria", "employee_number": "E-001", "email": "maria@example.com"},
        headers=headers,
    )
    assert response.status_code == 201
    return headers


class InMemoryStore(DataStore):
    """
    DataStore kept in dictionaries, for ledger tests.

    - `fail`: set of (operation, table) pairs that raise StoreWriteError
    - `product_read_barrier`: optional threading.Barrier every product read waits on,
      used to line up concurrent read-modify-write sequences
    """

    def __init__(self):
        self.tables = {"products": {}, "inventory_movements": {}, "users": {}, "categories": {}}
        self.fail = set()
        self.broken_lookups = set()
        self.product_read_barrier = None
        self.calls = []
        self._lock = threading.Lock()
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def seed(self, table, record):
        self.tables[table][record["id"]] = dict(record)

    def _check(self, operation, table):
        self.calls.append((operation, table))
        if (operation, table) in self.fail:
            raise StoreWriteError(f"{operation} on {table} rejected")

    def get(self, table, record_id):
        self.calls.append(("get", table))
        if (table, record_id) in self.broken_lookups:
            raise ConnectionError(f"lookup of {table} #{record_id} failed")
        with self._lock:
            record = copy.deepcopy(self.tables[table].get(record_id))
        if table == "products" and self.product_read_barrier is not None:
            self.product_read_barrier.wait()
        if record is None:
            raise RecordNotFound(table, record_id)
        return record

    def insert(self, table, fields):
        self._check("insert", table)
        with self._lock:
            record = dict(fields)
            record.setdefault("id", self._next_id)
            self._next_id += 1
            if table == "inventory_movements":
                self._clock += timedelta(seconds=1)
                record["created_at"] = self._clock
            self.tables[table][record["id"]] = record
            return dict(record)

    def update(self, table, record_id, fields):
        self._check("update", table)
        with self._lock:
            if record_id not in self.tables[table]:
                raise StoreWriteError(f"{table} #{record_id} not found")
            self.tables[table][record_id].update(fields)

    def delete(self, table, record_id):
        self._check("delete", table)
        with self._lock:
            if self.tables[table].pop(record_id, None) is None:
                raise RecordNotFound(table, record_id)

    def list(self, table, filters=None, order_by=None, limit=None, offset=None):
        self.calls.append(("list", table))
        if any(t == table for t, _ in self.broken_lookups) and filters:
            raise ConnectionError(f"batched lookup of {table} failed")
        with self._lock:
            rows = [dict(r) for r in self.tables[table].values()]
        for name, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                rows = [r for r in rows if r.get(name) in value]
            else:
                rows = [r for r in rows if r.get(name) == value]
        for name in reversed(order_by or []):
            descending = name.startswith("-")
            key = name.lstrip("-")
            rows.sort(key=lambda r: r[key], reverse=descending)
        rows = rows[offset or 0:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count(self, table, filters=None):
        return len(self.list(table, filters))

    def increment(self, table, record_id, field, delta):
        self._check("update", table)
        with self._lock:
            if record_id not in self.tables[table]:
                raise RecordNotFound(table, record_id)
            self.tables[table][record_id][field] += delta
            return self.tables[table][record_id][field]


@pytest.fixture
def store():
    store = InMemoryStore()
    store.seed("users", {"id": "u1", "username": "maria", "employee_number": "E-001",
                         "role": "employee", "email": "maria@example.com"})
    store.seed("users", {"id": "u2", "username": "jose", "employee_number": "E-002",
                         "role": "employee", "email": "jose@example.com"})
    store.seed("products", {"id": 1, "name": "Tornillo 3/8", "description": "", "category_id": None,
                            "quantity": 10, "price": 2.5, "low_limit": 5, "high_limit": 50})
    store.seed("products", {"id": 2, "name": "Tuerca 3/8", "description": "", "category_id": None,
                            "quantity": 0, "price": 1.0, "low_limit": 0, "high_limit": 100})
    store._next_id = 100
    return store


@pytest.fixture
def token_for():
    """Factory for identity tokens: token_for(user_id, expires_in=3600, secret=None)."""
    return make_token


@pytest.fixture
def headers_for():
    """Factory for bearer auth headers: headers_for(user_id)."""
    return auth_headers
