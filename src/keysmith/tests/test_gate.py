import pytest
from starlette.requests import Request

from keysmith.core.errors import (
    InvalidCredential,
    MissingCredential,
    QuotaExceeded,
    RevokedCredential,
)
from keysmith.core.gate import extract_credential


def make_request(headers: dict | None = None, query: str = "") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope)


class TestExtractCredential:
    def test_bearer_header_wins(self):
        request = make_request(
            {"Authorization": "Bearer from-bearer", "x-api-key": "from-header"}, "key=from-query"
        )

        assert extract_credential(request) == "from-bearer"

    def test_x_api_key_beats_query(self):
        request = make_request({"x-api-key": "from-header"}, "key=from-query")

        assert extract_credential(request) == "from-header"

    def test_query_param_fallback(self):
        assert extract_credential(make_request(query="key=from-query")) == "from-query"

    def test_non_bearer_authorization_is_ignored(self):
        request = make_request({"Authorization": "Basic dXNlcjpwYXNz", "x-api-key": "from-header"})

        assert extract_credential(request) == "from-header"

    def test_empty_bearer_still_wins(self):
        request = make_request({"Authorization": "Bearer ", "x-api-key": "from-header"})

        assert extract_credential(request) == ""

    def test_no_credential(self):
        assert extract_credential(make_request()) is None


class TestAdmit:
    async def test_admit_increments_exactly_once(self, gate, store):
        record = store.seed(key="sk_ok", usage_count=0)

        view = await gate.admit("sk_ok")

        assert view.usage_count == 1
        assert store.rows[record.id].usage_count == 1
        assert store.calls.count("increment_usage") == 1

    @pytest.mark.parametrize("raw", [None, "", "  "])
    async def test_missing_credential_short_circuits(self, gate, store, raw):
        with pytest.raises(MissingCredential):
            await gate.admit(raw)

        assert store.calls == []

    async def test_invalid_credential_does_not_meter(self, gate, store):
        store.seed(key="sk_ok")

        with pytest.raises(InvalidCredential):
            await gate.admit("sk_nope")

        assert "increment_usage" not in store.calls

    async def test_revoked_credential_does_not_meter(self, gate, store):
        record = store.seed(key="sk_off", is_active=False)

        with pytest.raises(RevokedCredential):
            await gate.admit("sk_off")

        assert store.rows[record.id].usage_count == 0

    async def test_quota_exceeded_reports_usage_and_limit(self, gate, store):
        store.seed(key="sk_full", usage_count=5, monthly_limit=5)

        with pytest.raises(QuotaExceeded) as exc:
            await gate.admit("sk_full")

        assert (exc.value.usage, exc.value.limit) == (5, 5)


async def test_create_consume_rotate_scenario(gate, lifecycle, owner):
    record = await lifecycle.create(owner, name="ci", key_type="dev", monthly_limit=2)
    old_secret = record.key

    assert (await gate.admit(old_secret)).usage_count == 1
    assert (await gate.admit(old_secret)).usage_count == 2

    with pytest.raises(QuotaExceeded) as exc:
        await gate.admit(old_secret)
    assert exc.value.to_payload()["usage"] == 2
    assert exc.value.to_payload()["limit"] == 2

    rotated = await lifecycle.rotate(record.id, owner)

    with pytest.raises(InvalidCredential):
        await gate.admit(old_secret)

    # rotation does not reset the counter; the limit is lifted to let the new key through
    await lifecycle.update_limits_and_type(record.id, owner, {"monthly_limit": None})
    assert (await gate.admit(rotated.key)).usage_count == 3
