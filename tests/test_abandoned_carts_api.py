# tests/test_abandoned_carts_api.py
import uuid

import pytest
from httpx import AsyncClient

from cart_recovery.core.config import settings


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/api/v1/abandoned-carts/track"),
        ("post", "/api/v1/abandoned-carts/recover"),
        ("post", "/api/v1/abandoned-carts/reminders/dispatch"),
        ("get", "/api/v1/abandoned-carts"),
        ("get", "/api/v1/admin/analytics/abandoned-carts"),
    ],
)
async def test_endpoints_require_internal_api_key(anonymous_client: AsyncClient, method, path):
    resp = await getattr(anonymous_client, method)(path)
    assert resp.status_code == 401, resp.text


@pytest.mark.asyncio
async def test_wrong_api_key_is_rejected(anonymous_client: AsyncClient):
    resp = await anonymous_client.get(
        "/api/v1/abandoned-carts",
        headers={settings.INTERNAL_API_KEY_HEADER: "definitely-not-the-key"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_track_list_detail_and_recover_flow(client: AsyncClient, buyer_with_cart):
    track = await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(buyer_with_cart.id)})
    assert track.status_code == 202, track.text
    tracked = track.json()
    assert tracked["ok"] is True
    assert tracked["action"] == "created"
    cart_id = tracked["abandoned_cart_id"]

    again = await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(buyer_with_cart.id)})
    assert again.json()["action"] == "refreshed"

    listing = await client.get("/api/v1/abandoned-carts", params={"status": "abandoned"})
    assert listing.status_code == 200, listing.text
    rows = listing.json()
    assert [row["id"] for row in rows] == [cart_id]
    assert rows[0]["item_count"] == 2
    assert rows[0]["total_value"] == "70.00"

    detail = await client.get(f"/api/v1/abandoned-carts/{cart_id}")
    assert detail.status_code == 200, detail.text
    body = detail.json()
    assert [r["reminder_type"] for r in body["reminders"]] == ["first", "second", "final"]
    assert all(r["status"] == "pending" for r in body["reminders"])
    assert body["cart_snapshot"][0]["title"] == "Vintage Denim Jacket"

    recover = await client.post("/api/v1/abandoned-carts/recover", json={"user_id": str(buyer_with_cart.id)})
    assert recover.status_code == 200, recover.text
    assert recover.json()["carts_recovered"] == 1
    assert recover.json()["reminders_cancelled"] == 3

    recovered = await client.get("/api/v1/abandoned-carts", params={"status": "recovered"})
    assert [row["id"] for row in recovered.json()] == [cart_id]
    still_open = await client.get("/api/v1/abandoned-carts", params={"status": "abandoned"})
    assert still_open.json() == []


@pytest.mark.asyncio
async def test_track_rejects_malformed_user_id(client: AsyncClient):
    resp = await client.post("/api/v1/abandoned-carts/track", json={"user_id": "abc"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_filters_by_user(client: AsyncClient, buyer_with_cart, make_user, make_product, fill_cart):
    other = make_user()
    fill_cart(other, (make_product(), 1))
    await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(buyer_with_cart.id)})
    await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(other.id)})

    resp = await client.get("/api/v1/abandoned-carts", params={"user_id": str(other.id)})

    assert resp.status_code == 200
    assert [row["user_id"] for row in resp.json()] == [str(other.id)]


@pytest.mark.asyncio
async def test_unknown_abandoned_cart_returns_404(client: AsyncClient):
    resp = await client.get("/api/v1/abandoned-carts/999999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Abandoned cart not found"


@pytest.mark.asyncio
async def test_dispatch_endpoint_returns_summary(client: AsyncClient, buyer_with_cart):
    await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(buyer_with_cart.id)})

    resp = await client.post("/api/v1/abandoned-carts/reminders/dispatch")

    assert resp.status_code == 200, resp.text
    summary = resp.json()
    assert summary["ok"] is True
    # Just tracked: the first reminder is an hour away
    assert summary["due"] == 0
    assert summary["sent"] == 0


@pytest.mark.asyncio
async def test_dashboard_stats_endpoint(client: AsyncClient, buyer_with_cart):
    await client.post("/api/v1/abandoned-carts/track", json={"user_id": str(buyer_with_cart.id)})
    await client.post("/api/v1/abandoned-carts/recover", json={"user_id": str(buyer_with_cart.id)})

    resp = await client.get("/api/v1/admin/analytics/abandoned-carts")

    assert resp.status_code == 200, resp.text
    stats = resp.json()
    assert stats["total_abandoned"] == 1
    assert stats["total_recovered"] == 1
    assert stats["recovery_rate"] == 1.0
    assert stats["total_value"] == "70.00"
    assert stats["reminder_stats"]["cancelled"] == 3


@pytest.mark.asyncio
async def test_health_and_metrics_are_public(anonymous_client: AsyncClient):
    root = await anonymous_client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "ok"

    metrics = await anonymous_client.get("/metrics")
    assert metrics.status_code == 200
    assert "cart_recovery_reminders_dispatched_total" in metrics.text


@pytest.mark.asyncio
async def test_recover_unknown_user_is_a_noop(client: AsyncClient):
    resp = await client.post("/api/v1/abandoned-carts/recover", json={"user_id": str(uuid.uuid4())})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "carts_recovered": 0, "reminders_cancelled": 0, "error": None}
