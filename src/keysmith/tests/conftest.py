import asyncio
import dataclasses
import uuid
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport

from keysmith.config import settings
from keysmith.core.gate import RequestGate
from keysmith.core.lifecycle import KeyLifecycle
from keysmith.core.store import ApiKeyRecord, SecretConflict, StoreError
from keysmith.deps.store import get_key_store
from keysmith.main import app

SESSION_TOKEN = "test-session-token"
OWNER = "user-alice"
OTHER_OWNER = "user-bob"


class InMemoryKeyStore:
    """
    KeyStore fake. Each method yields to the event loop once before touching
    state, so concurrent callers interleave the way they would against a real
    database, but the state change itself happens in one step.
    """

    def __init__(self):
        self.rows: dict[uuid.UUID, ApiKeyRecord] = {}
        self.fail = False
        self.conflicts = 0
        self.calls: list[str] = []

    async def _enter(self, op: str) -> None:
        self.calls.append(op)
        await asyncio.sleep(0)
        if self.fail:
            raise StoreError(f"{op} failed")

    def _check_secret(self, secret: str, key_id: uuid.UUID | None = None) -> None:
        if self.conflicts:
            self.conflicts -= 1
            raise SecretConflict("forced conflict")
        if any(r.key == secret and r.id != key_id for r in self.rows.values()):
            raise SecretConflict("duplicate key")

    def seed(self, owner_id: str = OWNER, **overrides) -> ApiKeyRecord:
        now = datetime.now(timezone.utc)
        values = dict(
            id=uuid.uuid4(),
            user_id=owner_id,
            name="seeded",
            key=f"sk_seed_{uuid.uuid4().hex}",
            key_type="dev",
            monthly_limit=None,
            usage_count=0,
            is_active=True,
            created_at=now,
            last_used_at=None,
            updated_at=now,
        )
        values.update(overrides)
        record = ApiKeyRecord(**values)
        self.rows[record.id] = record
        return record

    async def get_by_secret(self, secret):
        await self._enter("get_by_secret")
        return next((r for r in self.rows.values() if r.key == secret), None)

    async def get_owned(self, key_id, owner_id):
        await self._enter("get_owned")
        record = self.rows.get(key_id)
        return record if record and record.user_id == owner_id else None

    async def list_owned(self, owner_id):
        await self._enter("list_owned")
        owned = [r for r in self.rows.values() if r.user_id == owner_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    async def insert(self, values):
        await self._enter("insert")
        self._check_secret(values["key"])
        record = ApiKeyRecord(id=uuid.uuid4(), last_used_at=None, **values)
        self.rows[record.id] = record
        return record

    async def update_owned(self, key_id, owner_id, values):
        await self._enter("update_owned")
        record = self.rows.get(key_id)
        if record is None or record.user_id != owner_id:
            return None
        if "key" in values:
            self._check_secret(values["key"], key_id)
        record = dataclasses.replace(record, **values)
        self.rows[key_id] = record
        return record

    async def delete_owned(self, key_id, owner_id):
        await self._enter("delete_owned")
        record = self.rows.get(key_id)
        if record is None or record.user_id != owner_id:
            return False
        del self.rows[key_id]
        return True

    async def increment_usage(self, key_id, now):
        await self._enter("increment_usage")
        record = self.rows.get(key_id)
        if record is None:
            return None
        record = dataclasses.replace(
            record, usage_count=record.usage_count + 1, last_used_at=now, updated_at=now
        )
        self.rows[key_id] = record
        return record


@pytest.fixture
def store():
    return InMemoryKeyStore()


@pytest.fixture
def lifecycle(store):
    return KeyLifecycle(store)


@pytest.fixture
def gate(store):
    return RequestGate(store)


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def other_owner():
    return OTHER_OWNER


@pytest.fixture
def owner_headers():
    return {"X-User-Id": OWNER, "X-Session-Token": SESSION_TOKEN}


@pytest.fixture
def other_owner_headers():
    return {"X-User-Id": OTHER_OWNER, "X-Session-Token": SESSION_TOKEN}


@pytest.fixture
async def client(store, monkeypatch):
    monkeypatch.setattr(settings, "session_proxy_token", SESSION_TOKEN)

    async def override_store():
        return store

    app.dependency_overrides[get_key_store] = override_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()

