"""
AtlasPM Backend — API Route Tests
==================================

What:  Full request/response cycle through the FastAPI app, over SQLite.
How:   Uses the `test_client` fixture (HTTPX AsyncClient on ASGITransport),
       so middleware, exception handlers and envelopes are all exercised.

What we test:
    ✅ Health on /health and /v1/healthcheck
    ✅ Client CRUD: 201 + Location, 409 edit_conflict, delete message
    ✅ List envelopes: metadata, X-Total-Count, empty metadata, bad sort
    ✅ Error body shape for schema errors, duplicates and missing rows
    ✅ The project scenario end to end: Acme → Acme+Skynet, stale retry is 409
    ✅ Users never expose their password
    ✅ X-Request-ID echoed back
"""

import pytest


class TestHealth:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/health", "/v1/healthcheck"])
    async def test_healthy(self, test_client, path):
        response = await test_client.get(path)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"


class TestClientEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, test_client):
        response = await test_client.post("/v1/client", json={"name": "Acme", "address": "1 Quay St"})

        assert response.status_code == 201
        client = response.json()["client"]
        assert client["version"] == 1
        assert response.headers["Location"] == f"/v1/client/{client['id']}"

        fetched = await test_client.get(response.headers["Location"])
        assert fetched.json()["client"]["name"] == "Acme"

    @pytest.mark.asyncio
    async def test_stale_patch_is_409(self, test_client):
        created = (await test_client.post("/v1/client", json={"name": "Acme"})).json()["client"]
        url = f"/v1/client/{created['id']}"

        first = await test_client.patch(url, json={"note": "key account", "version": 1})
        assert first.status_code == 200
        assert first.json()["client"]["version"] == 2

        second = await test_client.patch(url, json={"note": "lapsed", "version": 1})
        assert second.status_code == 409
        body = second.json()
        assert body["error"] == "edit_conflict"
        assert "edit conflict" in body["message"]

    @pytest.mark.asyncio
    async def test_delete(self, test_client):
        created = (await test_client.post("/v1/client", json={"name": "Acme"})).json()["client"]
        url = f"/v1/client/{created['id']}"

        response = await test_client.delete(url)
        assert response.status_code == 200
        assert response.json() == {"message": "client successfully deleted"}

        missing = await test_client.get(url)
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_blank_name_is_422(self, test_client):
        response = await test_client.post("/v1/client", json={"name": "   "})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert "name" in body["details"]["fields"]

    @pytest.mark.asyncio
    async def test_list_metadata_and_total_header(self, test_client):
        for name in ("Acme", "Skynet", "Initech"):
            await test_client.post("/v1/client", json={"name": name})

        response = await test_client.get("/v1/client", params={"page_size": 2, "sort": "name"})

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        body = response.json()
        assert [c["name"] for c in body["clients"]] == ["Acme", "Initech"]
        assert body["metadata"]["last_page"] == 2

    @pytest.mark.asyncio
    async def test_empty_list(self, test_client):
        response = await test_client.get("/v1/client")
        body = response.json()
        assert body["clients"] == []
        assert body["metadata"]["total_records"] is None
        assert response.headers["X-Total-Count"] == "0"

    @pytest.mark.asyncio
    async def test_unknown_sort_key_is_422(self, test_client):
        response = await test_client.get("/v1/client", params={"sort": "password"})
        assert response.status_code == 422
        assert "sort" in response.json()["details"]["fields"]


class TestRoleEndpoints:

    @pytest.mark.asyncio
    async def test_duplicate_name(self, test_client):
        await test_client.post("/v1/role", json={"name": "Surveyor"})
        response = await test_client.post("/v1/role", json={"name": "Surveyor"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "duplicate_key"
        assert "name" in body["details"]["fields"]


class TestUserEndpoints:

    @pytest.mark.asyncio
    async def test_password_never_returned(self, test_client):
        response = await test_client.post(
            "/v1/user",
            json={
                "email": "Ada@Example.com",
                "first_name": "Ada",
                "last_name": "Lovelace",
                "password": "correct horse battery",
            },
        )

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "ada@example.com"
        assert "password" not in user
        assert "password_hash" not in user

        listed = (await test_client.get("/v1/user")).json()["users"]
        assert all("password_hash" not in u for u in listed)

    @pytest.mark.asyncio
    async def test_bad_email(self, test_client):
        response = await test_client.post(
            "/v1/user",
            json={"email": "not-an-email", "first_name": "A", "last_name": "B", "password": "12345678"},
        )
        assert response.status_code == 422
        assert "email" in response.json()["details"]["fields"]


class TestProjectEndpoints:

    @pytest.mark.asyncio
    async def test_client_set_scenario(self, test_client, seed):
        created = await test_client.post(
            "/v1/project",
            json={
                "project_id": 24001,
                "proposal_id": "P001-24",
                "name": "Harbour survey",
                "status": "active",
                "client_names": ["Acme"],
                "feature": {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [151.21, -33.86]},
                    "properties": {"name": "Harbour", "full_address": "1 Quay St, Sydney"},
                },
            },
        )
        assert created.status_code == 201
        assert created.headers["Location"] == "/v1/project/24001"

        updated = await test_client.patch(
            "/v1/project/24001", json={"client_names": ["Acme", "Skynet"], "version": 1}
        )
        assert updated.status_code == 200
        project = updated.json()["project"]
        assert project["version"] == 2
        assert sorted(c["client_name"] for c in project["clients"]) == ["Acme", "Skynet"]

        stale = await test_client.patch(
            "/v1/project/24001", json={"client_names": ["Acme"], "version": 1}
        )
        assert stale.status_code == 409

        listed = await test_client.get("/v1/project", params={"bbox": "151,-34,152,-33"})
        assert [p["project_id"] for p in listed.json()["projects"]] == [24001]

    @pytest.mark.asyncio
    async def test_unknown_client_name(self, test_client, seed):
        response = await test_client.post(
            "/v1/project",
            json={
                "project_id": 24001,
                "proposal_id": "P001-24",
                "name": "Harbour survey",
                "status": "active",
                "client_names": ["Umbrella"],
            },
        )
        assert response.status_code == 422
        assert response.json()["details"]["fields"] == {"client_names": "Umbrella cannot be found"}

    @pytest.mark.asyncio
    async def test_out_of_range_latitude(self, test_client, seed):
        response = await test_client.post(
            "/v1/project",
            json={
                "project_id": 24001,
                "proposal_id": "P001-24",
                "name": "Harbour survey",
                "status": "active",
                "client_names": ["Acme"],
                "feature": {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [151.21, -133.86]},
                    "properties": {"name": "Harbour", "full_address": "1 Quay St"},
                },
            },
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_malformed_bbox(self, test_client):
        response = await test_client.get("/v1/project", params={"bbox": "1,2,three,4"})
        assert response.status_code == 422
        assert "bbox" in response.json()["details"]["fields"]


class TestTimesheetEndpoints:

    @pytest.mark.asyncio
    async def test_inverted_date_range(self, test_client):
        response = await test_client.get(
            "/v1/timesheet", params={"from_date": "2024-03-10", "to_date": "2024-03-01"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_id(self, test_client):
        response = await test_client.get("/v1/timesheet/whatever")
        assert response.status_code == 404


class TestRequestID:

    @pytest.mark.asyncio
    async def test_echoes_caller_id(self, test_client):
        response = await test_client.get("/v1/client", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get("/v1/client/999", headers={"X-Request-ID": "trace-1"})
        assert response.status_code == 404
        assert response.json()["request_id"] == "trace-1"
