import logging

from keysmith.core.errors import (
    BackendUnavailable,
    InvalidCredential,
    MissingCredential,
    RevokedCredential,
)
from keysmith.core.store import AccountingView, KeyStore, StoreError

logger = logging.getLogger(__name__)

# width of the api_keys.key column
MAX_SECRET_LENGTH = 255


class KeyValidator:
    """Resolves a bearer token to the accounting view of an active key. Never mutates."""

    def __init__(self, store: KeyStore):
        self.store = store

    async def validate(self, token: str | None) -> AccountingView:
        if not token or not isinstance(token, str) or not token.strip():
            raise MissingCredential()

        token = token.strip()
        # never issued, and Postgres text cannot hold NUL
        if len(token) > MAX_SECRET_LENGTH or "\x00" in token:
            raise InvalidCredential()

        try:
            record = await self.store.get_by_secret(token)
        except StoreError:
            logger.exception("key_lookup_failed")
            raise BackendUnavailable()

        if record is None:
            raise InvalidCredential()

        if not record.is_active:
            logger.info("revoked_key_presented", extra={"api_key_id": str(record.id)})
            raise RevokedCredential()

        return record.accounting()
