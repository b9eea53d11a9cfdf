"""HTTP surface: auth gating, envelope shape and error mapping.

The database dependency is replaced by a mock session; engine-level
behaviour is covered by the in-memory tests.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.main import app
from src.pm_common.database import get_db_session
from src.pm_common.errors import AlreadyResolvedError, MarketNotFoundError
from src.pm_gateway.auth.jwt_handler import create_access_token
from src.pm_resolution.application.schemas import CancelMarketResponse

ADMIN = {"Authorization": f"Bearer {create_access_token('admin-1', is_admin=True)}"}
USER = {"Authorization": f"Bearer {create_access_token('user-1')}"}

RESOLVE_BODY = {
    "winning_option_id": "yes",
    "evidence": [{"type": "url", "content": "https://example.com/result"}],
}


@pytest.fixture(autouse=True)
def fake_db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()

    async def _override():
        yield session

    app.dependency_overrides[get_db_session] = _override
    yield session
    app.dependency_overrides.pop(get_db_session, None)


class TestAuth:
    async def test_missing_token_is_401(self, client) -> None:
        resp = await client.post("/api/v1/admin/markets/mkt_1/resolve", json=RESOLVE_BODY)
        assert resp.status_code == 401

    async def test_non_admin_is_403(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/markets/mkt_1/resolve", json=RESOLVE_BODY, headers=USER
        )
        body = resp.json()
        assert resp.status_code == 403
        assert body["code"] == 1006
        assert body["category"] == "auth"
        assert body["request_id"].startswith("req_")

    async def test_invalid_token_is_401(self, client) -> None:
        resp = await client.get(
            "/api/v1/admin/invariants", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401


class TestResolveEndpoint:
    async def test_validation_error_envelope(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/markets/mkt_1/resolve",
            json={"winning_option_id": "yes", "evidence": []},
            headers=ADMIN,
        )
        body = resp.json()
        assert resp.status_code == 422
        assert body["code"] == 5001
        assert body["category"] == "validation"
        assert body["data"] is None

    async def test_missing_winning_option(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/markets/mkt_1/resolve",
            json={"evidence": RESOLVE_BODY["evidence"]},
            headers=ADMIN,
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 5002

    async def test_already_resolved_maps_to_409(self, client) -> None:
        with patch("src.pm_admin.api.router._engine") as engine:
            engine.resolve = AsyncMock(side_effect=AlreadyResolvedError("mkt_1"))
            resp = await client.post(
                "/api/v1/admin/markets/mkt_1/resolve", json=RESOLVE_BODY, headers=ADMIN
            )
        body = resp.json()
        assert resp.status_code == 409
        assert body["category"] == "invalid_state"
        assert body["code"] == 3004

    async def test_evidence_and_admin_forwarded(self, client) -> None:
        with patch("src.pm_admin.api.router._engine") as engine:
            engine.resolve = AsyncMock(side_effect=MarketNotFoundError("mkt_1"))
            resp = await client.post(
                "/api/v1/admin/markets/mkt_1/resolve",
                json={**RESOLVE_BODY, "creator_fee_percentage": 0.03},
                headers=ADMIN,
            )
        assert resp.status_code == 404
        args = engine.resolve.call_args.args
        assert args[1:3] == ("mkt_1", "yes")
        assert args[3][0].content == "https://example.com/result"
        assert args[4:] == ("admin-1", 0.03)


class TestCancelEndpoint:
    async def test_short_reason(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/markets/mkt_1/cancel", json={"reason": "nope"}, headers=ADMIN
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 5003

    async def test_success_envelope(self, client) -> None:
        result = CancelMarketResponse(
            market_id="mkt_1", refund_tokens=True, total_tokens_refunded=1000,
            users_refunded=2, commitments_affected=2, cancelled_at=None,
        )
        with patch("src.pm_admin.api.router._engine") as engine:
            engine.cancel = AsyncMock(return_value=result)
            resp = await client.post(
                "/api/v1/admin/markets/mkt_1/cancel",
                json={"reason": "Organiser withdrew the event"},
                headers=ADMIN,
            )
        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["category"] is None
        assert body["data"]["total_tokens_refunded"] == 1000
        assert resp.headers["X-Request-ID"] == body["request_id"]


class TestOtherAdminRoutes:
    async def test_issue_tokens_rejects_non_positive(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/tokens/issue", json={"user_id": "u1", "amount": 0}, headers=ADMIN
        )
        body = resp.json()
        assert resp.status_code == 422
        assert body["category"] == "validation"
        assert body["data"]["errors"]

    async def test_preview_requires_winning_option(self, client) -> None:
        resp = await client.get("/api/v1/admin/markets/mkt_1/payout-preview", headers=ADMIN)
        assert resp.status_code == 422

    @pytest.mark.parametrize("fee", ["nan", "inf", "0.00996"])
    async def test_preview_bad_creator_fee(self, client, fee: str) -> None:
        resp = await client.get(
            "/api/v1/admin/markets/mkt_1/payout-preview",
            params={"winning_option_id": "yes", "creator_fee_percentage": fee},
            headers=ADMIN,
        )
        body = resp.json()
        assert resp.status_code == 422
        assert body["code"] == 3007
        assert body["category"] == "validation"

    async def test_creator_fee_nan_body(self, client) -> None:
        resp = await client.post(
            "/api/v1/admin/markets/mkt_1/creator-fee",
            content='{"fee_percentage": NaN}',
            headers={**ADMIN, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"

    async def test_invariants(self, client) -> None:
        with patch("src.pm_admin.api.router._service") as service:
            service.check_invariants = AsyncMock(
                return_value={"healthy": True, "violations": [], "checked_at": "now"}
            )
            resp = await client.get("/api/v1/admin/invariants", headers=ADMIN)
        assert resp.json()["data"]["healthy"] is True


async def test_health(client) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
