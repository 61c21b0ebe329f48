"""
The KeyStore capability.

Components never talk to the database directly; they receive a KeyStore.
Production wires SqlKeyStore (keysmith.core.sql_store) per request, tests
substitute an in-memory implementation.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Protocol


class StoreError(Exception):
    """The backing store failed (connectivity, driver, unexpected SQL error)."""


class SecretConflict(StoreError):
    """An insert or update collided with an existing secret."""


@dataclass(frozen=True)
class AccountingView:
    id: uuid.UUID
    usage_count: int
    monthly_limit: int | None
    is_active: bool


@dataclass(frozen=True)
class ApiKeyRecord:
    id: uuid.UUID
    user_id: str
    name: str
    key: str
    key_type: str
    monthly_limit: int | None
    usage_count: int
    is_active: bool
    created_at: datetime
    last_used_at: datetime | None
    updated_at: datetime

    def accounting(self) -> AccountingView:
        return AccountingView(
            id=self.id,
            usage_count=self.usage_count,
            monthly_limit=self.monthly_limit,
            is_active=self.is_active,
        )


class KeyStore(Protocol):
    async def get_by_secret(self, secret: str) -> ApiKeyRecord | None: ...

    async def get_owned(self, key_id: uuid.UUID, owner_id: str) -> ApiKeyRecord | None: ...

    async def list_owned(self, owner_id: str) -> list[ApiKeyRecord]:
        """Owner's keys, newest first."""
        ...

    async def insert(self, values: Mapping[str, Any]) -> ApiKeyRecord:
        """Raises SecretConflict when ``values["key"]`` is already taken."""
        ...

    async def update_owned(
        self, key_id: uuid.UUID, owner_id: str, values: Mapping[str, Any]
    ) -> ApiKeyRecord | None:
        """Partial update matched on (id, owner). None when nothing matched."""
        ...

    async def delete_owned(self, key_id: uuid.UUID, owner_id: str) -> bool: ...

    async def increment_usage(self, key_id: uuid.UUID, now: datetime) -> ApiKeyRecord | None:
        """
        usage_count += 1 and stamp last_used_at/updated_at in one atomic
        statement matched on id. Returns the row as written, or None if the
        key no longer exists.
        """
        ...
