"""Tests for HTTP handler."""

import json
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from health_tracker.backend import HealthBackend
from health_tracker.config import GoalSettings, HTTPSettings
from health_tracker.http_handler import HTTPHandler


def _make_settings() -> HTTPSettings:
    """Create HTTPSettings isolated from env vars."""
    return HTTPSettings(_env_file=None, host="127.0.0.1", port=8080)


def _make_handler(backend: HealthBackend, goals: GoalSettings | None = None) -> HTTPHandler:
    return HTTPHandler(settings=_make_settings(), backend=backend, goals=goals)


async def _client_for(handler: HTTPHandler) -> AsyncClient:
    transport = ASGITransport(app=handler.app)
    return AsyncClient(transport=transport, base_url="http://test")


REGISTRATION = {
    "name": "alice",
    "age": 30,
    "weightKg": 70.0,
    "heightM": 1.75,
    "password": "secret",
}


@pytest.fixture
def handler(backend: HealthBackend) -> HTTPHandler:
    return _make_handler(backend)


@pytest.fixture
async def client(handler: HTTPHandler):
    async with await _client_for(handler) as client:
        yield client


@pytest.fixture
async def auth(client: AsyncClient) -> dict[str, str]:
    """Register the sample user over HTTP and return its auth header."""
    resp = await client.post("/register", json=REGISTRATION)
    assert resp.status_code == 200
    return {"X-Auth-Token": resp.json()["token"]}


class TestServiceEndpoints:
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "message": "health tracker running"}

    async def test_info(self, client: AsyncClient):
        resp = await client.get("/info")

        assert resp.status_code == 200
        assert resp.json()["name"] == "health-tracker"

    async def test_metrics_exposes_request_counter(self, client: AsyncClient):
        await client.get("/health")
        resp = await client.get("/metrics")

        assert resp.status_code == 200
        assert "health_tracker_http_requests_total" in resp.text

    async def test_unknown_route_is_404(self, client: AsyncClient):
        resp = await client.get("/nope")
        assert resp.status_code == 404


class TestUserEndpoints:
    async def test_register_returns_working_token(self, client: AsyncClient):
        resp = await client.post("/register", json=REGISTRATION)

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert len(body["token"]) == 24

        bmi = await client.get("/user/bmi", headers={"X-Auth-Token": body["token"]})
        assert bmi.json()["bmi"] == pytest.approx(70.0 / 1.75**2)

    async def test_register_duplicate_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post("/register", json=REGISTRATION)

        assert resp.status_code == 400
        assert resp.json() == {
            "status": "error",
            "errorMessage": "User already exists or invalid input",
        }

    async def test_register_invalid_value_is_400(self, client: AsyncClient):
        resp = await client.post("/register", json={**REGISTRATION, "age": 200})
        assert resp.status_code == 400

    async def test_register_missing_field_lists_details(self, client: AsyncClient):
        payload = {k: v for k, v in REGISTRATION.items() if k != "password"}

        resp = await client.post("/register", json=payload)

        assert resp.status_code == 400
        body = resp.json()
        assert body["errorMessage"] == "Missing or invalid fields"
        assert {"field": "password", "message": "required"} in body["details"]

    async def test_invalid_json_returns_400(self, client: AsyncClient):
        resp = await client.post(
            "/register", content=b"{broken", headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Invalid JSON"

    async def test_non_object_body_returns_400(self, client: AsyncClient):
        resp = await client.post("/login", json=["alice", "secret"])

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Body must be a JSON object"

    async def test_login(self, client: AsyncClient, auth: dict):
        resp = await client.post("/login", json={"name": "alice", "password": "secret"})

        assert resp.status_code == 200
        token = resp.json()["token"]
        assert token != auth["X-Auth-Token"]

        stale = await client.get("/water/all", headers=auth)
        assert stale.status_code == 401

    async def test_login_wrong_password_is_401(self, client: AsyncClient, auth: dict):
        resp = await client.post("/login", json={"name": "alice", "password": "nope"})

        assert resp.status_code == 401
        assert resp.json()["errorMessage"] == "Invalid name or password"

    async def test_update_and_delete(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/user/update",
            json={"age": 31, "weightKg": 81.0, "heightM": 1.8, "password": "newpass"},
            headers=auth,
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "User updated"

        resp = await client.post("/user/delete", headers=auth)
        assert resp.status_code == 200
        assert resp.json()["message"] == "User deleted"

        resp = await client.get("/user/bmi", headers=auth)
        assert resp.status_code == 401

    async def test_update_with_invalid_value_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/user/update",
            json={"age": 31, "weightKg": 600.0, "heightM": 1.8, "password": "newpass"},
            headers=auth,
        )
        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Failed to update user"


class TestWaterEndpoints:
    async def test_add_list_edit_delete(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/water/add", json={"date": "2024-01-01", "amountMl": 1500}, headers=auth
        )
        assert resp.json() == {"status": "ok", "message": "Water record added"}

        resp = await client.post(
            "/water/edit",
            json={"index": 0, "date": "2024-01-02", "amountMl": 1750},
            headers=auth,
        )
        assert resp.json()["message"] == "Water record updated"

        resp = await client.get("/water/all", headers=auth)
        assert resp.json()["records"] == [{"date": "2024-01-02", "amountMl": 1750.0}]

        resp = await client.post("/water/delete", json={"index": 0}, headers=auth)
        assert resp.json()["message"] == "Water record deleted"

        resp = await client.get("/water/all", headers=auth)
        assert resp.json()["records"] == []

    async def test_bad_index_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post("/water/delete", json={"index": 3}, headers=auth)

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Failed to delete water record"

    async def test_bad_date_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/water/add", json={"date": "01/01/2024", "amountMl": 100}, headers=auth
        )

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Failed to add water record"

    async def test_weekly_average_and_goal(self, client: AsyncClient, auth: dict):
        for amount in (1000, 2000):
            await client.post(
                "/water/add", json={"date": "2024-01-01", "amountMl": amount}, headers=auth
            )

        resp = await client.get("/water/weekly_average", headers=auth)
        assert resp.json()["weeklyAverageMl"] == pytest.approx(1500.0)

        resp = await client.get("/water/is_enough", headers=auth)
        assert resp.json() == {"status": "ok", "goal": 1500.0, "enough": True}

        resp = await client.get("/water/is_enough", params={"goal": 1600}, headers=auth)
        assert resp.json()["enough"] is False

    async def test_non_numeric_goal_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.get("/water/is_enough", params={"goal": "lots"}, headers=auth)

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Invalid request parameters"
        assert resp.json()["details"] == [{"field": "goal", "message": "invalid goal"}]

    @pytest.mark.parametrize("literal", [b"Infinity", b"-Infinity", b"NaN"])
    async def test_non_finite_amount_is_rejected(
        self, client: AsyncClient, auth: dict, snapshot_path: Path, literal: bytes
    ):
        before = snapshot_path.read_text(encoding="utf-8")

        resp = await client.post(
            "/water/add",
            content=b'{"date": "2024-01-01", "amountMl": ' + literal + b"}",
            headers={**auth, "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Invalid JSON"
        assert snapshot_path.read_text(encoding="utf-8") == before

    async def test_default_goal_comes_from_settings(self, backend: HealthBackend):
        handler = _make_handler(backend, goals=GoalSettings(water_daily_ml=500))
        async with await _client_for(handler) as client:
            token = (await client.post("/register", json=REGISTRATION)).json()["token"]
            headers = {"X-Auth-Token": token}
            await client.post(
                "/water/add", json={"date": "2024-01-01", "amountMl": 600}, headers=headers
            )
            resp = await client.get("/water/is_enough", headers=headers)

        assert resp.json()["goal"] == 500.0
        assert resp.json()["enough"] is True


class TestSleepEndpoints:
    async def test_sleep_flow(self, client: AsyncClient, auth: dict):
        await client.post("/sleep/add", json={"date": "2024-01-01", "hours": 8}, headers=auth)
        await client.post("/sleep/add", json={"date": "2024-01-02", "hours": 6}, headers=auth)

        resp = await client.get("/sleep/last_hours", headers=auth)
        assert resp.json()["lastHours"] == 6.0

        resp = await client.get("/sleep/is_enough", headers=auth)
        assert resp.json() == {"status": "ok", "minHours": 7.0, "enough": False}

        resp = await client.get("/sleep/is_enough", params={"min": 5.5}, headers=auth)
        assert resp.json()["enough"] is True

        resp = await client.post(
            "/sleep/edit", json={"index": 1, "date": "2024-01-02", "hours": 9}, headers=auth
        )
        assert resp.json()["message"] == "Sleep record updated"

        resp = await client.post("/sleep/delete", json={"index": 0}, headers=auth)
        assert resp.json()["message"] == "Sleep record deleted"

        resp = await client.get("/sleep/all", headers=auth)
        assert resp.json()["records"] == [{"date": "2024-01-02", "hours": 9.0}]


class TestActivityEndpoints:
    async def test_sort_by_duration_returns_and_persists_order(
        self, client: AsyncClient, auth: dict, snapshot_path: Path
    ):
        for minutes, intensity in ((60, "high"), (15, "low"), (30, "mid")):
            await client.post(
                "/activity/add",
                json={"date": "2024-01-01", "minutes": minutes, "intensity": intensity},
                headers=auth,
            )

        resp = await client.get("/activity/sort_by_duration", headers=auth)

        assert resp.status_code == 200
        assert [r["minutes"] for r in resp.json()["records"]] == [15, 30, 60]
        stored = json.loads(snapshot_path.read_text(encoding="utf-8"))["activity"]["alice"]
        assert [r["intensity"] for r in stored] == ["low", "mid", "high"]

        resp = await client.post("/activity/delete", json={"index": 0}, headers=auth)
        assert resp.json()["message"] == "Activity record deleted"
        resp = await client.get("/activity/all", headers=auth)
        assert [r["minutes"] for r in resp.json()["records"]] == [30, 60]

    async def test_sort_accepts_post(self, client: AsyncClient, auth: dict):
        resp = await client.post("/activity/sort_by_duration", headers=auth)
        assert resp.json() == {"status": "ok", "records": []}

    async def test_edit_and_intensity_default(self, client: AsyncClient, auth: dict):
        await client.post(
            "/activity/add", json={"date": "2024-01-01", "minutes": 20}, headers=auth
        )

        resp = await client.post(
            "/activity/edit",
            json={"index": 0, "date": "2024-01-01", "minutes": 25, "intensity": "mid"},
            headers=auth,
        )
        assert resp.json()["message"] == "Activity record updated"

        resp = await client.get("/activity/all", headers=auth)
        assert resp.json()["records"] == [
            {"date": "2024-01-01", "minutes": 25, "intensity": "mid"}
        ]

    async def test_negative_minutes_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/activity/add", json={"date": "2024-01-01", "minutes": -5}, headers=auth
        )
        assert resp.status_code == 400


class TestOtherEndpoints:
    async def test_create_only_acknowledges(self, client: AsyncClient, auth: dict):
        resp = await client.post("/other/create", json={"categoryName": "mood"}, headers=auth)
        assert resp.status_code == 200

        resp = await client.get("/other/categories", headers=auth)
        assert resp.json()["categories"] == []

    async def test_record_flow(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/other/add_record",
            json={"categoryName": "steps", "date": "2024-01-01", "value": 8000, "note": "walk"},
            headers=auth,
        )
        assert resp.json()["message"] == "Record added"

        resp = await client.post(
            "/other/edit_record",
            json={"categoryName": "steps", "index": 0, "date": "2024-01-01", "value": 9000},
            headers=auth,
        )
        assert resp.json()["message"] == "Record updated"

        resp = await client.get(
            "/other/get_records", params={"category": "steps"}, headers=auth
        )
        assert resp.json()["records"] == [{"date": "2024-01-01", "value": 9000.0, "note": ""}]

        resp = await client.post(
            "/other/delete_record", json={"categoryName": "steps", "index": 0}, headers=auth
        )
        assert resp.json()["message"] == "Record deleted"

        resp = await client.get("/other/categories", headers=auth)
        assert resp.json()["categories"] == ["steps"]

    async def test_delete_from_unknown_category_is_400(self, client: AsyncClient, auth: dict):
        resp = await client.post(
            "/other/delete_record", json={"categoryName": "mood", "index": 0}, headers=auth
        )

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Failed to delete record"

    async def test_get_records_requires_category(self, client: AsyncClient, auth: dict):
        resp = await client.get("/other/get_records", headers=auth)

        assert resp.status_code == 400
        assert resp.json()["errorMessage"] == "Missing category param"


async def test_unhandled_error_returns_500(backend: HealthBackend, monkeypatch):
    handler = _make_handler(backend)
    async with await _client_for(handler) as client:
        token = (await client.post("/register", json=REGISTRATION)).json()["token"]

        def explode(token: str) -> float:
            raise RuntimeError("boom")

        monkeypatch.setattr(backend, "get_bmi", explode)
        resp = await client.get("/user/bmi", headers={"X-Auth-Token": token})

    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "errorMessage": "Internal server error"}
