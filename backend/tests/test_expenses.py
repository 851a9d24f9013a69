"""
Tests for expense endpoints.
"""
import pytest
from httpx import AsyncClient

BASE = "/api/v1/expenses"


async def create_expense(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"name": "Electricity", "amount": 2500, "date": "2024-03-05"}
    payload.update(overrides)
    response = await client.post(BASE, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["expense"]


class TestExpenses:
    """Expense CRUD and listing."""

    @pytest.mark.asyncio
    async def test_create_expense(self, client: AsyncClient, auth_headers: dict):
        expense = await create_expense(client, auth_headers, note="March bill")
        assert expense["name"] == "Electricity"
        assert expense["amount"] == 2500
        assert expense["date"] == "2024-03-05"
        assert expense["created_by_name"] == "Front Desk"

    @pytest.mark.asyncio
    async def test_create_requires_name(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(BASE, json={"name": "   ", "amount": 10, "date": "2024-03-05"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_negative_amount(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(BASE, json={"name": "Refund", "amount": -5, "date": "2024-03-05"}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_with_date_range_and_total(self, client: AsyncClient, auth_headers: dict):
        await create_expense(client, auth_headers, name="Rent", amount=20000, date="2024-02-01")
        await create_expense(client, auth_headers, name="Electricity", amount=2500, date="2024-03-05")
        await create_expense(client, auth_headers, name="Cleaning", amount=800.5, date="2024-03-20")

        response = await client.get(BASE, params={"date_from": "2024-03-01", "date_to": "2024-03-31"}, headers=auth_headers)

        body = response.json()
        assert body["totalItems"] == 2
        assert body["total_amount"] == 3300.5
        assert [e["name"] for e in body["items"]] == ["Cleaning", "Electricity"]

    @pytest.mark.asyncio
    async def test_empty_list(self, client: AsyncClient, auth_headers: dict):
        response = await client.get(BASE, headers=auth_headers)
        body = response.json()
        assert body["totalItems"] == 0
        assert body["totalPages"] == 1
        assert body["total_amount"] == 0

    @pytest.mark.asyncio
    async def test_update_expense(self, client: AsyncClient, auth_headers: dict):
        expense = await create_expense(client, auth_headers)
        response = await client.put(f"{BASE}/{expense['id']}", json={"amount": 2700}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["expense"]["amount"] == 2700
        assert response.json()["expense"]["name"] == "Electricity"

    @pytest.mark.asyncio
    async def test_update_cannot_clear_required(self, client: AsyncClient, auth_headers: dict):
        expense = await create_expense(client, auth_headers)
        response = await client.put(f"{BASE}/{expense['id']}", json={"date": None}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_expense(self, client: AsyncClient, auth_headers: dict):
        expense = await create_expense(client, auth_headers)
        response = await client.delete(f"{BASE}/{expense['id']}", headers=auth_headers)
        assert response.status_code == 200

        response = await client.delete(f"{BASE}/{expense['id']}", headers=auth_headers)
        assert response.status_code == 404
