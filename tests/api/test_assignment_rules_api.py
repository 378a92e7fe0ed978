"""Tests for assignment rule and project link endpoints."""

from httpx import AsyncClient

HEADERS = {"X-Actor-Id": "user-1"}

RULE = {
    "projectId": "proj-1",
    "name": "Festival mail",
    "conditions": {
        "logic": "or",
        "conditions": [
            {"field": "subject", "operator": "contains", "value": "festival"},
            {"field": "from_email", "operator": "ends_with", "value": "@festival.example"},
        ],
    },
    "actions": {"confidence": "medium"},
}

RECORD = {
    "id": "email-1",
    "subject": "Festival offer",
    "from_email": "alex@festival.example",
}


async def create_rule(client: AsyncClient, body: dict = RULE) -> dict:
    response = await client.post("/assignment-rules", json=body, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()["rule"]


async def test_rule_crud(client: AsyncClient):
    rule = await create_rule(client)
    assert rule["conditions"]["conditions"][0]["id"] == "cond-0"
    assert rule["actions"]["project_id"] == "proj-1"

    listed = await client.get("/assignment-rules", headers=HEADERS)
    assert [r["id"] for r in listed.json()["rules"]] == [rule["id"]]

    response = await client.patch(
        f"/assignment-rules/{rule['id']}", json={"enabled": "false"}, headers=HEADERS
    )
    assert response.json()["rule"]["enabled"] is False

    response = await client.delete(f"/assignment-rules/{rule['id']}", headers=HEADERS)
    assert response.json() == {"success": True, "id": rule["id"]}
    response = await client.delete(f"/assignment-rules/{rule['id']}", headers=HEADERS)
    assert response.status_code == 404


async def test_rule_without_project_is_rejected(client: AsyncClient):
    response = await client.post(
        "/assignment-rules", json={"name": "Orphan"}, headers=HEADERS
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Rule must target a project"}


async def test_other_users_rules_are_invisible(client: AsyncClient):
    rule = await create_rule(client)
    response = await client.patch(
        f"/assignment-rules/{rule['id']}",
        json={"name": "Mine now"},
        headers={"X-Actor-Id": "user-2"},
    )
    assert response.status_code == 404


async def test_dry_run(client: AsyncClient):
    rule = await create_rule(client)
    response = await client.post(
        f"/assignment-rules/{rule['id']}/test",
        json={"records": [RECORD, {"id": "email-2", "subject": "Invoice"}]},
        headers=HEADERS,
    )
    results = response.json()["results"]
    assert [(r["record_id"], r["matched"]) for r in results] == [
        ("email-1", True),
        ("email-2", False),
    ]
    assert results[0]["matches"][0]["condition_id"] == "cond-0"


async def test_apply_then_unlink(client: AsyncClient, editor_headers, viewer_headers):
    await create_rule(client)
    response = await client.post(
        "/assignment-rules/apply", json={"records": [RECORD]}, headers=HEADERS
    )
    [link] = response.json()["links"]
    assert link["project_id"] == "proj-1"
    assert link["source"] == "rule"
    assert link["confidence"] == 0.7

    listed = await client.get("/projects/proj-1/links", headers=viewer_headers)
    assert [item["record_id"] for item in listed.json()["links"]] == ["email-1"]

    response = await client.delete("/projects/proj-1/links/email-1", headers=editor_headers)
    assert response.json() == {"success": True, "removed": True}

    response = await client.post(
        "/assignment-rules/replay", json={"records": [RECORD]}, headers=HEADERS
    )
    assert response.json() == {"processed": 1, "links_created": 0, "skipped": 1}
