"""
Tests for the member dashboard statistics.
"""
import pytest
from datetime import datetime, timedelta, timezone
from dateutil.relativedelta import relativedelta
from httpx import AsyncClient

MEMBERS = "/api/v1/members"


class TestMemberDashboard:
    @pytest.mark.asyncio
    async def test_empty(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/v1/dashboard/members", headers=auth_headers)
        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["total_members"] == 0
        assert stats["total_due_now"] == 0
        assert stats["by_payment_status"] == {"Paid": 0, "Pending": 0, "Free Trial": 0}
        assert stats["expiring_soon"] == []
        assert stats["expiring_soon_count"] == 0

    @pytest.mark.asyncio
    async def test_totals_and_expiring(self, client: AsyncClient, auth_headers: dict):
        today = datetime.now(timezone.utc).date()
        # Current cycle ends three days from now
        recent_start = (today + timedelta(days=3) - relativedelta(months=1)).isoformat()

        paid = await client.post(MEMBERS, json={
            "name": "Paid Up", "phone": "5550000001", "start_date": recent_start,
            "fee": 1000, "paid_amount": 1000,
        }, headers=auth_headers)
        assert paid.status_code == 201
        await client.post(MEMBERS, json={
            "name": "Owes Money", "phone": "5550000002", "start_date": "2024-01-01",
            "fee": 2000, "paid_amount": 500, "membership_type": "Premium",
        }, headers=auth_headers)
        trial = await client.post(MEMBERS, json={
            "name": "Trial", "phone": "5550000003", "start_date": recent_start,
            "fee": 0, "payment_status": "Free Trial",
        }, headers=auth_headers)
        await client.post(
            f"{MEMBERS}/{trial.json()['member']['id']}/status",
            json={"member_status": "Inactive"},
            headers=auth_headers,
        )

        response = await client.get("/api/v1/dashboard/members", headers=auth_headers)

        stats = response.json()["stats"]
        assert stats["total_members"] == 3
        assert stats["active_members"] == 2
        assert stats["total_fee"] == 3000
        assert stats["total_paid"] == 1500
        assert stats["total_remaining"] == 1500
        # Owes Money is many cycles behind
        assert stats["total_due_now"] > 1500
        assert stats["pending_count"] == 1
        assert stats["by_payment_status"] == {"Paid": 1, "Pending": 1, "Free Trial": 1}
        assert stats["by_membership_type"] == {"Basic": 2, "Premium": 1}
        assert [m["name"] for m in stats["expiring_soon"]] == ["Paid Up"]
        assert stats["expiring_soon_count"] == 1

    @pytest.mark.asyncio
    async def test_expiring_list_is_capped_but_counted(self, client: AsyncClient, auth_headers: dict):
        today = datetime.now(timezone.utc).date()
        for i in range(10):
            start = (today + timedelta(days=4 + i % 4) - relativedelta(months=1)).isoformat()
            response = await client.post(MEMBERS, json={
                "name": f"Member {i}", "phone": f"555000{i:04d}", "start_date": start, "fee": 500,
            }, headers=auth_headers)
            assert response.status_code == 201

        response = await client.get("/api/v1/dashboard/members", headers=auth_headers)

        stats = response.json()["stats"]
        assert stats["expiring_soon_count"] == 10
        assert len(stats["expiring_soon"]) == 8
        end_dates = [m["end_date"] for m in stats["expiring_soon"]]
        assert end_dates == sorted(end_dates)

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/dashboard/members")
        assert response.status_code == 401
