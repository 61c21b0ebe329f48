import logging
from datetime import datetime, timezone

from keysmith.core.errors import BackendUnavailable, InvalidCredential, QuotaExceeded
from keysmith.core.store import AccountingView, KeyStore, StoreError

logger = logging.getLogger(__name__)


def over_quota(usage_count: int, monthly_limit: int | None) -> bool:
    return monthly_limit is not None and usage_count >= monthly_limit


class UsageMeter:
    """
    Enforces the monthly quota and records one unit of consumption.

    The increment is a single atomic store statement. When concurrent
    requests race past the limit the extra increments stay recorded and the
    late requests are rejected; usage may overshoot the limit by at most the
    number of racing requests.
    """

    def __init__(self, store: KeyStore):
        self.store = store

    async def consume(self, view: AccountingView) -> AccountingView:
        if over_quota(view.usage_count, view.monthly_limit):
            logger.info(
                "quota_exceeded",
                extra={"api_key_id": str(view.id), "usage": view.usage_count, "limit": view.monthly_limit},
            )
            raise QuotaExceeded(usage=view.usage_count, limit=view.monthly_limit)

        try:
            updated = await self.store.increment_usage(view.id, datetime.now(timezone.utc))
        except StoreError:
            logger.exception("usage_increment_failed", extra={"api_key_id": str(view.id)})
            raise BackendUnavailable("Unable to record API usage. Please try again later.")

        if updated is None:
            # deleted between validation and increment
            raise InvalidCredential()

        if updated.monthly_limit is not None and updated.usage_count > updated.monthly_limit:
            logger.warning(
                "quota_overshoot",
                extra={
                    "api_key_id": str(updated.id),
                    "usage": updated.usage_count,
                    "limit": updated.monthly_limit,
                },
            )
            raise QuotaExceeded(usage=updated.usage_count, limit=updated.monthly_limit)

        return updated.accounting()
