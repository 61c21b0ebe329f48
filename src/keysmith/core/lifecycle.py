"""
State transitions of a single API key: Active <-> Revoked, -> Deleted.

Every operation is scoped by (key_id, owner_id). A key that exists but belongs
to someone else is reported exactly like a missing one (NotFound) so callers
cannot probe for other owners' key ids.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from keysmith.config import settings
from keysmith.core.errors import BackendUnavailable, InvalidInput, NoOp, NotFound
from keysmith.core.keys import KEY_TYPES, generate_plaintext_key
from keysmith.core.store import ApiKeyRecord, KeyStore, SecretConflict, StoreError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "key_type", "monthly_limit", "is_active"})

# column bounds of models.api_key.ApiKey
MAX_NAME_LENGTH = 200
MAX_MONTHLY_LIMIT = 2**31 - 1


def clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Name must be a non-empty string.")
    if len(name.strip()) > MAX_NAME_LENGTH:
        raise InvalidInput(f"Name must be at most {MAX_NAME_LENGTH} characters.")
    return name.strip()


def check_key_type(key_type: Any) -> str:
    if key_type not in KEY_TYPES:
        raise InvalidInput("keyType must be 'dev' or 'prod'.")
    return key_type


def check_monthly_limit(monthly_limit: Any) -> int | None:
    if monthly_limit is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(monthly_limit, bool) or not isinstance(monthly_limit, int) or monthly_limit < 0:
        raise InvalidInput("monthlyLimit must be a non-negative integer or null.")
    if monthly_limit > MAX_MONTHLY_LIMIT:
        raise InvalidInput(f"monthlyLimit must be at most {MAX_MONTHLY_LIMIT}.")
    return monthly_limit


def check_is_active(is_active: Any) -> bool:
    if not isinstance(is_active, bool):
        raise InvalidInput("isActive must be a boolean.")
    return is_active


_VALIDATORS = {
    "name": clean_name,
    "key_type": check_key_type,
    "monthly_limit": check_monthly_limit,
    "is_active": check_is_active,
}


class KeyLifecycle:
    def __init__(self, store: KeyStore, max_attempts: int | None = None):
        self.store = store
        self.max_attempts = max_attempts or settings.key_generation_attempts

    async def create(
        self,
        owner_id: str,
        name: Any,
        key_type: Any = "dev",
        monthly_limit: Any = None,
    ) -> ApiKeyRecord:
        values = {
            "user_id": owner_id,
            "name": clean_name(name),
            "key_type": check_key_type(key_type),
            "monthly_limit": check_monthly_limit(monthly_limit),
            "usage_count": 0,
            "is_active": True,
        }

        for attempt in range(1, self.max_attempts + 1):
            now = datetime.now(timezone.utc)
            try:
                record = await self.store.insert(
                    {**values, "key": generate_plaintext_key(), "created_at": now, "updated_at": now}
                )
            except SecretConflict:
                logger.warning("key_generation_collision", extra={"attempt": attempt})
                continue
            except StoreError:
                logger.exception("key_create_failed")
                raise BackendUnavailable()

            logger.info("key_created", extra={"api_key_id": str(record.id)})
            return record

        raise BackendUnavailable("Unable to generate a unique API key. Please try again.")

    async def get(self, key_id: uuid.UUID, owner_id: str) -> ApiKeyRecord:
        try:
            record = await self.store.get_owned(key_id, owner_id)
        except StoreError:
            logger.exception("key_fetch_failed", extra={"api_key_id": str(key_id)})
            raise BackendUnavailable()
        if record is None:
            raise NotFound()
        return record

    async def list_for_owner(self, owner_id: str) -> list[ApiKeyRecord]:
        try:
            return await self.store.list_owned(owner_id)
        except StoreError:
            logger.exception("key_list_failed")
            raise BackendUnavailable()

    async def rename(self, key_id: uuid.UUID, owner_id: str, new_name: Any) -> ApiKeyRecord:
        return await self._apply(key_id, owner_id, {"name": clean_name(new_name)})

    async def rotate(self, key_id: uuid.UUID, owner_id: str) -> ApiKeyRecord:
        return await self._apply(key_id, owner_id, {}, rotate=True)

    async def set_active(self, key_id: uuid.UUID, owner_id: str, active: Any) -> ApiKeyRecord:
        return await self._apply(key_id, owner_id, {"is_active": check_is_active(active)})

    async def update_limits_and_type(
        self,
        key_id: uuid.UUID,
        owner_id: str,
        fields: Mapping[str, Any],
        rotate: bool = False,
    ) -> ApiKeyRecord:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInput(f"Unknown fields: {', '.join(sorted(unknown))}.")

        changes = {name: _VALIDATORS[name](value) for name, value in fields.items()}
        if not changes and not rotate:
            raise NoOp()

        return await self._apply(key_id, owner_id, changes, rotate=rotate)

    async def delete(self, key_id: uuid.UUID, owner_id: str) -> None:
        try:
            deleted = await self.store.delete_owned(key_id, owner_id)
        except StoreError:
            logger.exception("key_delete_failed", extra={"api_key_id": str(key_id)})
            raise BackendUnavailable()
        if not deleted:
            raise NotFound()
        logger.info("key_deleted", extra={"api_key_id": str(key_id)})

    async def _apply(
        self,
        key_id: uuid.UUID,
        owner_id: str,
        changes: dict[str, Any],
        rotate: bool = False,
    ) -> ApiKeyRecord:
        attempts = self.max_attempts if rotate else 1

        for attempt in range(1, attempts + 1):
            now = datetime.now(timezone.utc)
            values = {**changes, "updated_at": now}
            if rotate:
                # rotation wins over an explicit is_active=False in the same request
                values.update(key=generate_plaintext_key(), is_active=True, last_used_at=now)

            try:
                record = await self.store.update_owned(key_id, owner_id, values)
            except SecretConflict:
                if not rotate:
                    logger.exception("key_update_conflict", extra={"api_key_id": str(key_id)})
                    raise BackendUnavailable()
                logger.warning("key_generation_collision", extra={"attempt": attempt})
                continue
            except StoreError:
                logger.exception("key_update_failed", extra={"api_key_id": str(key_id)})
                raise BackendUnavailable()

            if record is None:
                raise NotFound()

            if rotate:
                logger.info("key_rotated", extra={"api_key_id": str(record.id)})
            return record

        raise BackendUnavailable("Unable to generate a unique API key. Please try again.")
