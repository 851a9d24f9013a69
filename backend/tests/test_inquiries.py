"""
Tests for inquiry endpoints and follow-ups.
"""
import pytest
from httpx import AsyncClient

BASE = "/api/v1/inquiries"


async def create_inquiry(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"name": "Ravi", "phone": "5551112222", "source": "Walk-in"}
    payload.update(overrides)
    response = await client.post(BASE, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["inquiry"]


class TestInquiries:
    """Inquiry CRUD, filters and follow-ups."""

    @pytest.mark.asyncio
    async def test_create_defaults(self, client: AsyncClient, auth_headers: dict):
        inquiry = await create_inquiry(client, auth_headers)
        assert inquiry["status"] == "New"
        assert inquiry["follow_ups"] == []
        assert inquiry["created_by_name"] == "Front Desk"

    @pytest.mark.asyncio
    async def test_create_invalid_status(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(BASE, json={"name": "Ravi", "phone": "1", "status": "Maybe"}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_filter_and_search(self, client: AsyncClient, auth_headers: dict):
        await create_inquiry(client, auth_headers)
        await create_inquiry(client, auth_headers, name="Meera", phone="5553334444", status="Interested", source="Instagram")

        response = await client.get(BASE, params={"status": "Interested"}, headers=auth_headers)
        assert [i["name"] for i in response.json()["items"]] == ["Meera"]

        response = await client.get(BASE, params={"search": "insta"}, headers=auth_headers)
        assert [i["name"] for i in response.json()["items"]] == ["Meera"]

        response = await client.get(BASE, headers=auth_headers)
        assert [i["name"] for i in response.json()["items"]] == ["Meera", "Ravi"]

    @pytest.mark.asyncio
    async def test_list_invalid_status(self, client: AsyncClient, auth_headers: dict):
        response = await client.get(BASE, params={"status": "Maybe"}, headers=auth_headers)
        assert response.status_code == 400
        assert "Allowed values" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_follow_up_appended(self, client: AsyncClient, auth_headers: dict):
        inquiry = await create_inquiry(client, auth_headers)

        response = await client.put(f"{BASE}/{inquiry['id']}", json={
            "status": "Follow Up",
            "follow_up": {"date": "2024-04-02", "note": "Call after payday"},
        }, headers=auth_headers)

        assert response.status_code == 200
        updated = response.json()["inquiry"]
        assert updated["status"] == "Follow Up"
        assert len(updated["follow_ups"]) == 1
        follow_up = updated["follow_ups"][0]
        assert follow_up["date"] == "2024-04-02"
        assert follow_up["status"] == "Planned"
        assert follow_up["by"]["name"] == "Front Desk"
        assert updated["last_contacted_at"] is None

    @pytest.mark.asyncio
    async def test_done_follow_up_stamps_last_contact(self, client: AsyncClient, auth_headers: dict):
        inquiry = await create_inquiry(client, auth_headers)
        await client.put(f"{BASE}/{inquiry['id']}", json={
            "follow_up": {"date": "2024-04-02", "status": "Planned"},
        }, headers=auth_headers)

        response = await client.put(f"{BASE}/{inquiry['id']}", json={
            "follow_up": {"date": "2024-04-02", "status": "Done", "note": "Joining next week"},
        }, headers=auth_headers)

        updated = response.json()["inquiry"]
        assert [f["status"] for f in updated["follow_ups"]] == ["Planned", "Done"]
        assert updated["last_contacted_at"] is not None

    @pytest.mark.asyncio
    async def test_update_cannot_clear_name(self, client: AsyncClient, auth_headers: dict):
        inquiry = await create_inquiry(client, auth_headers)
        response = await client.put(f"{BASE}/{inquiry['id']}", json={"name": None}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_inquiry(self, client: AsyncClient, auth_headers: dict):
        inquiry = await create_inquiry(client, auth_headers)
        response = await client.delete(f"{BASE}/{inquiry['id']}", headers=auth_headers)
        assert response.status_code == 200
        response = await client.put(f"{BASE}/{inquiry['id']}", json={"note": "x"}, headers=auth_headers)
        assert response.status_code == 404
