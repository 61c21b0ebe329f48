import logging

from fastapi import Depends, Request

from keysmith.core.errors import ApiError
from keysmith.core.gate import RequestGate, extract_credential
from keysmith.core.store import AccountingView, KeyStore
from keysmith.deps.store import get_key_store

logger = logging.getLogger(__name__)


async def require_client_key(
    request: Request,
    store: KeyStore = Depends(get_key_store),
) -> AccountingView:
    request.state.api_key_id = None

    try:
        view = await RequestGate(store).admit(extract_credential(request))
    except ApiError as e:
        logger.info("client_key_rejected", extra={"reason": e.error, "path": request.url.path})
        raise

    request.state.api_key_id = view.id
    return view
