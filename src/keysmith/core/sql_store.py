import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, desc, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keysmith.core.store import ApiKeyRecord, SecretConflict, StoreError
from keysmith.models.api_key import ApiKey

COLUMNS = tuple(ApiKey.__table__.c)


def _to_record(row) -> ApiKeyRecord:
    return ApiKeyRecord(**row._mapping)


class SqlKeyStore:
    """KeyStore on top of one request-scoped AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_secret(self, secret: str) -> ApiKeyRecord | None:
        try:
            res = await self.session.execute(select(*COLUMNS).where(ApiKey.key == secret))
            row = res.one_or_none()
        except SQLAlchemyError as e:
            raise StoreError("lookup by secret failed") from e
        return _to_record(row) if row else None

    async def get_owned(self, key_id: uuid.UUID, owner_id: str) -> ApiKeyRecord | None:
        try:
            res = await self.session.execute(
                select(*COLUMNS).where(ApiKey.id == key_id, ApiKey.user_id == owner_id)
            )
            row = res.one_or_none()
        except SQLAlchemyError as e:
            raise StoreError("lookup by id failed") from e
        return _to_record(row) if row else None

    async def list_owned(self, owner_id: str) -> list[ApiKeyRecord]:
        try:
            res = await self.session.execute(
                select(*COLUMNS)
                .where(ApiKey.user_id == owner_id)
                .order_by(desc(ApiKey.created_at))
            )
            rows = res.all()
        except SQLAlchemyError as e:
            raise StoreError("list failed") from e
        return [_to_record(r) for r in rows]

    async def insert(self, values: Mapping[str, Any]) -> ApiKeyRecord:
        stmt = insert(ApiKey).values(id=uuid.uuid4(), **values).returning(*COLUMNS)
        return await self._write_one(stmt)

    async def update_owned(
        self, key_id: uuid.UUID, owner_id: str, values: Mapping[str, Any]
    ) -> ApiKeyRecord | None:
        stmt = (
            update(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.user_id == owner_id)
            .values(**values)
            .returning(*COLUMNS)
            .execution_options(synchronize_session=False)
        )
        return await self._write_one(stmt)

    async def delete_owned(self, key_id: uuid.UUID, owner_id: str) -> bool:
        try:
            res = await self.session.execute(
                delete(ApiKey)
                .where(ApiKey.id == key_id, ApiKey.user_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError("delete failed") from e
        return res.rowcount > 0

    async def increment_usage(self, key_id: uuid.UUID, now: datetime) -> ApiKeyRecord | None:
        # single UPDATE ... SET usage_count = usage_count + 1; never read-modify-write
        stmt = (
            update(ApiKey)
            .where(ApiKey.id == key_id)
            .values(usage_count=ApiKey.usage_count + 1, last_used_at=now, updated_at=now)
            .returning(*COLUMNS)
            .execution_options(synchronize_session=False)
        )
        return await self._write_one(stmt)

    async def _write_one(self, stmt) -> ApiKeyRecord | None:
        try:
            res = await self.session.execute(stmt)
            row = res.one_or_none()
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise SecretConflict("key already exists") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError("write failed") from e
        return _to_record(row) if row else None
