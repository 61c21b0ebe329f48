from starlette.requests import Request

from keysmith.core.store import AccountingView, KeyStore
from keysmith.core.usage import UsageMeter
from keysmith.core.validator import KeyValidator

BEARER_PREFIX = "Bearer "


def extract_credential(request: Request) -> str | None:
    """Authorization bearer token, then x-api-key header, then ?key=. First match wins."""
    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):]

    api_key_header = request.headers.get("x-api-key")
    if api_key_header:
        return api_key_header

    return request.query_params.get("key")


class RequestGate:
    """The one entry point for quota-protected endpoints: validate, then consume once."""

    def __init__(self, store: KeyStore):
        self.validator = KeyValidator(store)
        self.meter = UsageMeter(store)

    async def admit(self, raw_credential: str | None) -> AccountingView:
        view = await self.validator.validate(raw_credential)
        return await self.meter.consume(view)
