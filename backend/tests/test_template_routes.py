"""
Lime Core Backend — Template API Tests
========================================

What:  /templates endpoints through the full ASGI stack.
"""

import pytest


async def _create(client, headers, **fields):
    payload = {"name": "Welcome", "content": "Hi {{first_name}}", "variables": ["first_name"]}
    payload.update(fields)
    response = await client.post("/templates", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


class TestTemplateEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client, auth_headers):
        created = await _create(test_client, auth_headers)

        response = await test_client.get(f"/templates/{created['id']}", headers=auth_headers)

        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "Template retrieved successfully"
        assert body["data"]["channel"] == "EMAIL"
        assert body["data"]["status"] == "DRAFT"

    @pytest.mark.asyncio
    async def test_invalid_channel_rejected(self, test_client, auth_headers):
        response = await test_client.post(
            "/templates", json={"name": "Bad", "channel": "FAX"}, headers=auth_headers
        )

        body = response.json()
        assert response.status_code == 400
        assert body["status"] == "error"
        assert body["data"] is None
        assert "channel" in body["message"]

    @pytest.mark.asyncio
    async def test_missing_name_rejected(self, test_client, auth_headers):
        response = await test_client.post(
            "/templates", json={"content": "no name"}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_filters(self, test_client, auth_headers):
        await _create(test_client, auth_headers, name="Welcome")
        await _create(test_client, auth_headers, name="Flash sale", channel="SMS")

        response = await test_client.get(
            "/templates", params={"channel": "SMS"}, headers=auth_headers
        )

        assert response.json()["message"] == "Templates retrieved successfully"
        assert [t["name"] for t in response.json()["data"]] == ["Flash sale"]

    @pytest.mark.asyncio
    async def test_list_limit_out_of_range(self, test_client, auth_headers):
        response = await test_client.get(
            "/templates", params={"limit": 0}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["status"] == "error"

    @pytest.mark.asyncio
    async def test_update_missing_is_404(self, test_client, auth_headers):
        response = await test_client.put(
            "/templates/missing-id", json={"name": "x"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Template not found"

    @pytest.mark.asyncio
    async def test_failed_create_leaves_no_row(self, test_client, auth_headers, monkeypatch):
        class UnserializableResponse:
            @classmethod
            def model_validate(cls, obj):
                raise RuntimeError("serialization failed")

        monkeypatch.setattr(
            "lime_core.services.template_service.TemplateResponse", UnserializableResponse
        )
        response = await test_client.post(
            "/templates", json={"name": "Welcome"}, headers=auth_headers
        )
        monkeypatch.undo()

        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "data": None,
            "message": "Failed to create template",
        }
        listed = await test_client.get("/templates", headers=auth_headers)
        assert listed.json()["data"] == []

    @pytest.mark.asyncio
    async def test_delete_twice(self, test_client, auth_headers):
        created = await _create(test_client, auth_headers)

        first = await test_client.delete(f"/templates/{created['id']}", headers=auth_headers)
        second = await test_client.delete(f"/templates/{created['id']}", headers=auth_headers)

        assert first.json()["data"] is True
        assert second.json()["status"] == "success"
        assert second.json()["data"] is False


class TestTemplateDuplicateEndpoint:

    @pytest.mark.asyncio
    async def test_duplicate(self, test_client, auth_headers):
        created = await _create(test_client, auth_headers)

        response = await test_client.post(
            f"/templates/{created['id']}/duplicate", headers=auth_headers
        )

        body = response.json()
        assert response.status_code == 201
        assert body["message"] == "Template duplicated successfully"
        assert body["data"]["name"] == "Welcome (Copy)"
        assert body["data"]["id"] != created["id"]

        listed = await test_client.get("/templates", headers=auth_headers)
        assert len(listed.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_duplicate_other_tenants_template(
        self, test_client, auth_headers, other_auth_headers
    ):
        created = await _create(test_client, auth_headers)

        response = await test_client.post(
            f"/templates/{created['id']}/duplicate", headers=other_auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {
            "status": "error",
            "data": None,
            "message": "Template not found",
        }


class TestTemplateTenancy:

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_update_or_delete(
        self, test_client, auth_headers, other_auth_headers
    ):
        created = await _create(test_client, auth_headers)

        updated = await test_client.put(
            f"/templates/{created['id']}", json={"name": "Hijacked"}, headers=other_auth_headers
        )
        deleted = await test_client.delete(
            f"/templates/{created['id']}", headers=other_auth_headers
        )

        assert updated.status_code == 404
        assert updated.json()["message"] == "Template not found"
        assert deleted.json()["data"] is False

        still_there = await test_client.get(f"/templates/{created['id']}", headers=auth_headers)
        assert still_there.json()["data"]["name"] == "Welcome"
