import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from keysmith.core.keys import key_preview
from keysmith.core.lifecycle import UPDATABLE_FIELDS, KeyLifecycle
from keysmith.core.store import ApiKeyRecord
from keysmith.deps.owner_auth import require_owner
from keysmith.deps.store import get_lifecycle

router = APIRouter(prefix="/keys", tags=["keys"])


class ApiKeyCreateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Any = None
    key_type: Any = Field(default=None, alias="keyType")
    monthly_limit: Any = Field(default=None, alias="monthlyLimit")


class ApiKeyUpdateIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Any = None
    key_type: Any = Field(default=None, alias="keyType")
    monthly_limit: Any = Field(default=None, alias="monthlyLimit")
    is_active: Any = Field(default=None, alias="isActive")
    rotate: Any = None


class ApiKeyOut(BaseModel):
    id: uuid.UUID
    user_id: str
    name: str
    key_preview: str
    key_type: str
    monthly_limit: int | None
    usage_count: int
    is_active: bool
    created_at: datetime
    last_used_at: datetime | None
    updated_at: datetime

    @classmethod
    def from_record(cls, record: ApiKeyRecord):
        return cls(**asdict(record), key_preview=key_preview(record.key))


class ApiKeySecretOut(ApiKeyOut):
    # plaintext secret; only returned right after creation or rotation
    key: str


@router.post("", response_model=ApiKeySecretOut, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    payload: ApiKeyCreateIn,
    owner_id: str = Depends(require_owner),
    lifecycle: KeyLifecycle = Depends(get_lifecycle),
):
    record = await lifecycle.create(
        owner_id,
        name=payload.name,
        key_type=payload.key_type or "dev",
        monthly_limit=payload.monthly_limit,
    )
    return ApiKeySecretOut.from_record(record)


@router.get("", response_model=list[ApiKeyOut])
async def list_api_keys(
    owner_id: str = Depends(require_owner),
    lifecycle: KeyLifecycle = Depends(get_lifecycle),
):
    return [ApiKeyOut.from_record(r) for r in await lifecycle.list_for_owner(owner_id)]


@router.get("/{key_id}", response_model=ApiKeyOut)
async def get_api_key(
    key_id: uuid.UUID,
    owner_id: str = Depends(require_owner),
    lifecycle: KeyLifecycle = Depends(get_lifecycle),
):
    return ApiKeyOut.from_record(await lifecycle.get(key_id, owner_id))


@router.patch("/{key_id}")
async def update_api_key(
    key_id: uuid.UUID,
    payload: ApiKeyUpdateIn,
    owner_id: str = Depends(require_owner),
    lifecycle: KeyLifecycle = Depends(get_lifecycle),
):
    fields = {f: getattr(payload, f) for f in payload.model_fields_set if f in UPDATABLE_FIELDS}
    rotate = payload.rotate is True

    record = await lifecycle.update_limits_and_type(key_id, owner_id, fields, rotate=rotate)
    if rotate:
        return ApiKeySecretOut.from_record(record)
    return ApiKeyOut.from_record(record)


@router.delete("/{key_id}")
async def delete_api_key(
    key_id: uuid.UUID,
    owner_id: str = Depends(require_owner),
    lifecycle: KeyLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete(key_id, owner_id)
    return {"status": "deleted", "key_id": str(key_id)}
