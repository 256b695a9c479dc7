"""Flake, coverage and artifact API tests."""

from datetime import datetime, timedelta, timezone
from urllib.parse import urlsplit

import pytest


async def _seed(history):
    await history.project()
    suite_id = await history.suite()
    flaky = await history.test_case(suite_id, title="Checkout")
    await history.outcomes(flaky, ["passed", "failed", "passed", "failed", "passed", "failed"])
    now = datetime.now(timezone.utc)
    run_id = await history.run(created_at=now - timedelta(minutes=5))
    await history.result(run_id, flaky, "passed", now - timedelta(minutes=5), logs="GET /api/users/1 200\nPOST /api/auth/login 200")
    return flaky


@pytest.mark.asyncio
async def test_flakes_requires_project_id(client):
    response = await client.get("/api/v1/analytics/flakes")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_flakes_unknown_project(client):
    response = await client.get("/api/v1/analytics/flakes", params={"project_id": "nope"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_flakes_project_overview(client, history):
    flaky = await _seed(history)

    response = await client.get("/api/v1/analytics/flakes", params={"project_id": "proj_1", "time_window": 7})
    assert response.status_code == 200
    data = response.json()
    assert data["time_window"] == 7
    assert [t["test_case_id"] for t in data["flaky_tests"]] == [flaky]
    assert data["flaky_tests"][0]["title"] == "Checkout"
    assert data["summary"]["total_flaky"] == 1


@pytest.mark.asyncio
async def test_flakes_single_test(client, history):
    flaky = await _seed(history)

    response = await client.get("/api/v1/analytics/flakes", params={"project_id": "proj_1", "test_case_id": flaky})
    data = response.json()
    assert data["test_case_id"] == flaky
    assert data["stats"]["total"] == 7
    assert data["is_flaky"] is True
    assert data["confidence"]["level"] == 0.95


@pytest.mark.asyncio
async def test_flakes_single_test_from_other_project(client, history):
    flaky = await _seed(history)
    await history.project("proj_2", name="Other")

    response = await client.get("/api/v1/analytics/flakes", params={"project_id": "proj_2", "test_case_id": flaky})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"

    response = await client.get("/api/v1/analytics/flakes", params={"project_id": "proj_1", "test_case_id": "tc_missing"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_analyze_flakes_with_options(client, history):
    await _seed(history)

    response = await client.post(
        "/api/v1/analytics/flakes/analyze",
        json={"project_id": "proj_1", "options": {"min_runs": 10}},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["flaky_tests"] == []
    assert "analyzed_at" in data


@pytest.mark.asyncio
async def test_analyze_flakes_rejects_unknown_options(client, history):
    await history.project()
    response = await client.post(
        "/api/v1/analytics/flakes/analyze",
        json={"project_id": "proj_1", "options": {"threshold": 5}},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_coverage_discovered_only(client, history):
    await _seed(history)

    response = await client.get("/api/v1/analytics/coverage", params={"project_id": "proj_1", "include_trends": False})
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["total_routes"] == 2
    assert data["summary"]["coverage_percentage"] == 100.0
    assert data["trends"] is None
    assert {(r["method"], r["path"]) for r in data["discovered_routes"]} == {
        ("GET", "/api/users/:id"),
        ("POST", "/api/auth/login"),
    }


@pytest.mark.asyncio
async def test_coverage_report_with_inventory(client, history):
    await _seed(history)

    response = await client.post(
        "/api/v1/analytics/coverage",
        json={
            "project_id": "proj_1",
            "defined_routes": [
                {"method": "GET", "path": "/api/users/:id", "category": "users"},
                {"method": "DELETE", "path": "/api/users/:id", "category": "users"},
                {"method": "POST", "path": "/api/payment/charge", "category": "payments"},
            ],
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["tested_routes"] == 1
    assert data["summary"]["coverage_percentage"] == 33.33
    assert [r["path"] for r in data["untested_critical"]] == ["/api/users/:id", "/api/payment/charge"]
    assert data["by_category"]["users"]["tested"] == 1
    assert len(data["trends"]) >= 1


@pytest.mark.asyncio
async def test_coverage_unknown_project(client):
    response = await client.post("/api/v1/analytics/coverage", json={"project_id": "nope"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_signed_artifact_download(client, artifact_store):
    await artifact_store.put("runs/run_1/rt_1/shot.png", b"\x89PNG")
    url = urlsplit(artifact_store.signed_url("runs/run_1/rt_1/shot.png", expires_in=60))

    response = await client.get(f"{url.path}?{url.query}")
    assert response.status_code == 200
    assert response.content == b"\x89PNG"
    assert response.headers["content-type"] == "image/png"


@pytest.mark.asyncio
async def test_artifact_download_bad_signature(client, artifact_store):
    await artifact_store.put("runs/run_1/rt_1/shot.png", b"\x89PNG")
    response = await client.get(
        "/api/v1/artifacts/runs/run_1/rt_1/shot.png",
        params={"expires": 9_999_999_999, "signature": "0" * 64},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
