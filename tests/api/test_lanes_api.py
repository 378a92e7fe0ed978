"""Tests for lane endpoints."""

from httpx import AsyncClient

HEADERS = {"X-Actor-Id": "user-1"}


async def test_list_default_lanes(client: AsyncClient):
    response = await client.get("/lanes", headers=HEADERS)
    assert response.status_code == 200
    slugs = [lane["slug"] for lane in response.json()["lanes"]]
    assert slugs[:2] == ["LIVE_HOLDS", "TRAVEL"]
    assert len(slugs) == 6


async def test_create_update_delete(client: AsyncClient):
    response = await client.post(
        "/lanes",
        json={"name": "Radio Sessions", "color": "ff0000", "sortOrder": 50},
        headers=HEADERS,
    )
    assert response.status_code == 201
    lane = response.json()["lane"]
    assert lane["slug"] == "RADIO_SESSIONS"
    assert lane["color"] == "#ff0000"
    assert lane["user_id"] == "user-1"

    response = await client.patch(
        f"/lanes/{lane['id']}", json={"name": "Podcasts"}, headers=HEADERS
    )
    assert response.json()["lane"]["slug"] == "PODCASTS"

    response = await client.delete(f"/lanes/{lane['id']}", headers=HEADERS)
    assert response.json() == {"success": True, "id": lane["id"]}

    response = await client.delete(f"/lanes/{lane['id']}", headers=HEADERS)
    assert response.status_code == 404


async def test_duplicate_slug_conflicts(client: AsyncClient):
    response = await client.post("/lanes", json={"name": "Travel"}, headers=HEADERS)
    assert response.status_code == 409


async def test_lane_in_use_cannot_be_deleted(client: AsyncClient, editor_headers):
    lane = (
        await client.post("/lanes", json={"name": "Radio"}, headers=HEADERS)
    ).json()["lane"]
    await client.post(
        "/projects/proj-1/timeline",
        json={"title": "Session", "lane": "RADIO"},
        headers=editor_headers,
    )

    response = await client.delete(f"/lanes/{lane['id']}", headers=HEADERS)
    assert response.status_code == 409
    assert "error" in response.json()


async def test_workspace_lane_is_read_only(client: AsyncClient):
    lanes = (await client.get("/lanes", headers=HEADERS)).json()["lanes"]
    response = await client.patch(
        f"/lanes/{lanes[0]['id']}", json={"color": "#000000"}, headers=HEADERS
    )
    assert response.status_code == 403


async def test_reapply(client: AsyncClient, editor_headers):
    await client.post(
        "/projects/proj-1/timeline",
        json={"title": "Radio interview", "type": "task"},
        headers=editor_headers,
    )
    await client.post(
        "/lanes",
        json={
            "name": "Radio",
            "sortOrder": 10,
            "autoAssignRules": {"title": {"operator": "contains", "value": "radio"}},
        },
        headers=HEADERS,
    )
    lanes = (await client.get("/lanes", headers=HEADERS)).json()["lanes"]
    promo = next(lane for lane in lanes if lane["slug"] == "PROMO")

    response = await client.post(f"/lanes/{promo['id']}/reapply", headers=HEADERS)
    assert response.status_code == 200
    assert response.json() == {"updated": 1, "unchanged": 0, "skipped": 0}
