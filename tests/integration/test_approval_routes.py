import pytest


async def submit_health(client, family_id: str, amount: float):
    resp = await client.post(
        "/api/v1/support/health",
        json={"family_id": family_id, "cost_lines": {"health": {"total_cost": amount, "months": 1}}},
    )
    assert resp.status_code == 201
    return resp.json()["record"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approve_keeps_aggregate(client, add_family):
    family_id = await add_family()
    record = await submit_health(client, family_id, 50000)

    resp = await client.put(
        f"/api/v1/approval/health/{record['id']}",
        json={"status": "Approved", "remarks": "verified", "action_by": "manager"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["record"]["approval_status"] == "Approved"
    assert data["record"]["remarks"] == "verified"
    assert data["snapshot"]["already_used"] == 50000.0

    log = (await client.get("/api/v1/approval/log", params={"family_id": family_id})).json()
    assert log["count"] == 1
    assert log["entries"][0]["from_status"] == "Pending"
    assert log["entries"][0]["to_status"] == "Approved"
    assert log["entries"][0]["action_by"] == "manager"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reject_frees_budget(client, add_family):
    family_id = await add_family()
    record = await submit_health(client, family_id, 400000)

    resp = await client.put(f"/api/v1/approval/health/{record['id']}", json={"status": "Rejected"})
    assert resp.status_code == 200
    assert resp.json()["snapshot"]["already_used"] == 0.0

    # The full cap is usable again
    await submit_health(client, family_id, 468000)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_decided_records_are_locked(client, add_family):
    family_id = await add_family()
    record = await submit_health(client, family_id, 1000)
    url = f"/api/v1/approval/health/{record['id']}"

    assert (await client.put(url, json={"status": "Approved"})).status_code == 200

    resp = await client.put(url, json={"status": "Rejected"})
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation_error"

    resp = await client.put(
        f"/api/v1/support/health/{record['id']}",
        json={"cost_lines": {"health": {"total_cost": 10, "months": 1}}},
    )
    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation_error"

    resp = await client.delete(f"/api/v1/support/health/{record['id']}")
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_decisions(client, add_family):
    family_id = await add_family()
    record = await submit_health(client, family_id, 1000)
    url = f"/api/v1/approval/health/{record['id']}"

    assert (await client.put(url, json={"status": "Pending"})).status_code == 422
    assert (await client.put(url, json={"status": "Maybe"})).json()["kind"] == "validation_error"
    assert (await client.put("/api/v1/approval/health/9999", json={"status": "Approved"})).status_code == 404
