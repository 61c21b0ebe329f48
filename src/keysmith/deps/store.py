from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from keysmith.core.lifecycle import KeyLifecycle
from keysmith.core.sql_store import SqlKeyStore
from keysmith.core.store import KeyStore
from keysmith.deps.db import get_db


async def get_key_store(db: AsyncSession = Depends(get_db)) -> KeyStore:
    return SqlKeyStore(db)


async def get_lifecycle(store: KeyStore = Depends(get_key_store)) -> KeyLifecycle:
    return KeyLifecycle(store)
