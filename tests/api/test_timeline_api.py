"""Tests for timeline, conflict and slot endpoints."""

from httpx import AsyncClient


async def create_item(client: AsyncClient, headers, **body) -> dict:
    response = await client.post("/projects/proj-1/timeline", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_and_list(client: AsyncClient, editor_headers, viewer_headers):
    first = await create_item(
        client,
        editor_headers,
        title="Soundcheck",
        type="task",
        startsAt="2025-06-01T16:00:00Z",
    )
    second = await create_item(
        client,
        editor_headers,
        title="Show",
        startsAt="2025-06-01T20:00:00Z",
        labels={"lane": "LIVE_HOLDS"},
        dependencies=[{"fromItemId": first["item"]["id"], "kind": "FS"}],
    )
    assert first["item"]["lane"] == "PROMO"
    assert second["item"]["lane"] == "LIVE_HOLDS"
    assert second["dependencies"][0]["from_item_id"] == first["item"]["id"]

    response = await client.get("/projects/proj-1/timeline", headers=viewer_headers)
    assert response.status_code == 200
    data = response.json()
    assert [item["title"] for item in data["items"]] == ["Soundcheck", "Show"]
    assert len(data["dependencies"]) == 1


async def test_create_validation_error(client: AsyncClient, editor_headers):
    response = await client.post(
        "/projects/proj-1/timeline",
        json={"title": "Show", "startsAt": "soon"},
        headers=editor_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "startsAt must be an ISO 8601 timestamp"}


async def test_update_and_delete(client: AsyncClient, editor_headers):
    created = await create_item(client, editor_headers, title="Show")
    item_id = created["item"]["id"]

    response = await client.patch(
        f"/projects/proj-1/timeline/{item_id}",
        json={"title": "Festival set", "status": "confirmed"},
        headers=editor_headers,
    )
    assert response.status_code == 200
    assert response.json()["item"]["title"] == "Festival set"
    assert response.json()["item"]["status"] == "confirmed"

    response = await client.delete(f"/projects/proj-1/timeline/{item_id}", headers=editor_headers)
    assert response.json() == {"success": True, "id": item_id}

    response = await client.delete(f"/projects/proj-1/timeline/{item_id}", headers=editor_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Timeline item not found"}


async def test_replace_dependencies_rejects_cycle(client: AsyncClient, editor_headers):
    a = (await create_item(client, editor_headers, title="A"))["item"]["id"]
    b = (await create_item(client, editor_headers, title="B"))["item"]["id"]

    response = await client.put(
        f"/projects/proj-1/timeline/{b}/dependencies",
        json={"dependencies": [{"fromItemId": a}]},
        headers=editor_headers,
    )
    assert response.status_code == 200
    assert len(response.json()["dependencies"]) == 1

    response = await client.put(
        f"/projects/proj-1/timeline/{a}/dependencies",
        json={"dependencies": [{"fromItemId": b}]},
        headers=editor_headers,
    )
    assert response.status_code == 400
    assert "cycle" in response.json()["error"]


async def test_conflicts(client: AsyncClient, editor_headers, viewer_headers):
    for title, start in (("Berlin", "18:00"), ("Hamburg", "19:00")):
        await create_item(
            client,
            editor_headers,
            title=title,
            territory="DE",
            startsAt=f"2025-06-01T{start}:00Z",
        )

    response = await client.get("/projects/proj-1/timeline/conflicts", headers=viewer_headers)
    assert response.status_code == 200
    kinds = sorted(c["kind"] for c in response.json()["conflicts"])
    assert kinds == ["lane", "territory"]

    response = await client.get(
        "/projects/proj-1/timeline/conflicts",
        params={"buffer_hours": 0.5},
        headers=viewer_headers,
    )
    assert [c["kind"] for c in response.json()["conflicts"]] == ["lane"]
    assert response.json()["buffer_hours"] == 0.5


async def test_suggest_slots(client: AsyncClient, editor_headers, viewer_headers):
    await create_item(
        client,
        editor_headers,
        title="Show",
        startsAt="2025-06-01T10:00:00Z",
        endsAt="2025-06-01T12:00:00Z",
    )
    response = await client.post(
        "/timeline/suggest-slots",
        json={
            "dateRange": ["2025-06-01T08:00:00Z", "2025-06-01T18:00:00Z"],
            "durationHours": 3,
            "projectId": "proj-1",
            "maxResults": 1,
        },
        headers=viewer_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data["slots"]) == 1
    assert data["slots"][0]["start"].startswith("2025-06-01T12:00:00")
    assert data["meta"]["scanned_items"] == 1
    assert data["meta"]["requested_duration"] == 3


async def test_suggest_slots_rejects_reversed_range(client: AsyncClient, viewer_headers):
    response = await client.post(
        "/timeline/suggest-slots",
        json={
            "dateRange": ["2025-06-02T00:00:00Z", "2025-06-01T00:00:00Z"],
            "durationHours": 1,
        },
        headers=viewer_headers,
    )
    assert response.status_code == 400
    assert "dateRange" in response.json()["error"]
