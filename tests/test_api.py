"""HTTP API tests."""

import pytest


async def create_funded_task(client, auth_headers, budget: int = 500_000) -> int:
    response = await client.post("/api/spending/tasks", json={"title": "Field trip"}, headers=auth_headers)
    assert response.status_code == 201
    task_id = response.json()["id"]
    response = await client.post(
        f"/api/spending/tasks/{task_id}/funding", json={"amount": budget}, headers=auth_headers
    )
    assert response.status_code == 201
    return task_id


def receipt_body(total: int) -> dict:
    return {
        "vendor": "Toko Jaya",
        "total_amount": total,
        "items": [{"description": "Tickets", "quantity": 2, "unit_price": total // 2}],
    }


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_writes_require_user(client):
    response = await client.post("/api/spending/tasks", json={"title": "No user"})

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "UNAUTHORIZED"


class TestSpendingApi:
    @pytest.mark.asyncio
    async def test_task_flow(self, client, auth_headers):
        task_id = await create_funded_task(client, auth_headers)

        response = await client.post(
            f"/api/spending/tasks/{task_id}/receipts", json=receipt_body(300_000), headers=auth_headers
        )
        assert response.status_code == 201
        receipt = response.json()
        assert len(receipt["items"]) == 1

        summary = (await client.get(f"/api/spending/tasks/{task_id}/summary")).json()
        assert summary["refund_due"] == 200_000
        assert summary["reimburse_due"] == 0

        response = await client.post(
            f"/api/spending/receipts/{receipt['id']}/cashbacks",
            json={"amount": 15_000},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["wallet_entry"]["source"] == "CASHBACK"

        response = await client.post(
            f"/api/spending/tasks/{task_id}/refund", json={"notes": "Cash returned"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "DONE"
        assert response.json()["amount"] == 200_000

        detail = (await client.get(f"/api/spending/tasks/{task_id}")).json()
        assert detail["task"]["status"] == "SETTLED"
        assert detail["summary"]["is_locked"] is True

        wallet = (await client.get("/api/wallet")).json()
        assert wallet["balance"] == 15_000

    @pytest.mark.asyncio
    async def test_locked_task_returns_423(self, client, auth_headers):
        task_id = await create_funded_task(client, auth_headers)
        await client.post(
            f"/api/spending/tasks/{task_id}/receipts", json=receipt_body(100_000), headers=auth_headers
        )
        await client.post(f"/api/spending/tasks/{task_id}/refund", headers=auth_headers)

        response = await client.post(
            f"/api/spending/tasks/{task_id}/receipts", json=receipt_body(100_000), headers=auth_headers
        )

        assert response.status_code == 423
        assert response.json()["detail"] == {
            "success": False,
            "error_code": "TASK_LOCKED",
            "error_message": "Spending task is locked by a completed settlement",
            "field": None,
        }

    @pytest.mark.asyncio
    async def test_second_funding_returns_409(self, client, auth_headers):
        task_id = await create_funded_task(client, auth_headers)

        response = await client.post(
            f"/api/spending/tasks/{task_id}/funding", json={"amount": 1}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error_code"] == "FUNDING_ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_receipt_mismatch_returns_400(self, client, auth_headers):
        task_id = await create_funded_task(client, auth_headers)
        body = receipt_body(100_000)
        body["total_amount"] = 99_999

        response = await client.post(
            f"/api/spending/tasks/{task_id}/receipts", json=body, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error_code"] == "RECEIPT_TOTAL_MISMATCH"
        assert response.json()["detail"]["field"] == "total_amount"

    @pytest.mark.asyncio
    async def test_settlement_not_required_returns_400(self, client, auth_headers):
        task_id = await create_funded_task(client, auth_headers)
        await client.post(
            f"/api/spending/tasks/{task_id}/receipts", json=receipt_body(500_000), headers=auth_headers
        )

        response = await client.post(f"/api/spending/tasks/{task_id}/reimburse", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["error_code"] == "SETTLEMENT_NOT_REQUIRED"

    @pytest.mark.asyncio
    async def test_unknown_task_returns_404(self, client):
        response = await client.get("/api/spending/tasks/999")

        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list_tasks_by_status(self, client, auth_headers):
        await create_funded_task(client, auth_headers)
        await client.post("/api/spending/tasks", json={"title": "Still a draft"}, headers=auth_headers)

        response = await client.get("/api/spending/tasks", params={"status": "DRAFT"})

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 1
        assert body["items"][0]["task"]["title"] == "Still a draft"


class TestLedgerApi:
    @pytest.mark.asyncio
    async def test_balance_with_and_without_fuel(self, client, auth_headers):
        for kind, amount in [("INCOME", 1000), ("EXPENSE", 400), ("FUEL_PURCHASE", 100)]:
            response = await client.post(
                "/api/ledger/entries",
                json={
                    "kind": kind,
                    "amount": amount,
                    "occurred_at": "2025-03-01T10:00:00",
                    "description": kind.lower(),
                },
                headers=auth_headers,
            )
            assert response.status_code == 201

        operating = (await client.get("/api/ledger/balance")).json()
        everything = (await client.get("/api/ledger/balance", params={"include_fuel": True})).json()
        listed = (await client.get("/api/ledger/entries")).json()

        assert operating["balance"] == 600
        assert everything["balance"] == 500
        assert listed["total"] == 2

    @pytest.mark.asyncio
    async def test_recompute_and_consistency(self, client, auth_headers):
        for day, amount in [(10, 1000), (2, 300)]:
            await client.post(
                "/api/ledger/income",
                json={"source": "Donor", "amount": amount, "occurred_at": f"2025-03-{day:02d}T00:00:00"},
                headers=auth_headers,
            )

        before = (await client.get("/api/ledger/consistency")).json()
        recomputed = (await client.post("/api/ledger/recompute", headers=auth_headers)).json()
        after = (await client.get("/api/ledger/consistency")).json()

        assert before["is_consistent"] is False
        assert recomputed["final_balance"] == 1300
        assert after["is_consistent"] is True

    @pytest.mark.asyncio
    async def test_fuel_for_unknown_vehicle_returns_404(self, client, auth_headers):
        response = await client.post(
            "/api/ledger/fuel",
            json={
                "vehicle_id": 42,
                "liter_amount": "10",
                "price_per_liter": 10_000,
                "occurred_at": "2025-03-01T10:00:00",
            },
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"]["field"] == "vehicle_id"


class TestReportsApi:
    @pytest.mark.asyncio
    async def test_monthly_ledger_report(self, client, auth_headers):
        await client.post(
            "/api/ledger/income",
            json={"source": "Zakat", "amount": 5000, "occurred_at": "2025-03-15T09:00:00"},
            headers=auth_headers,
        )

        response = await client.get("/api/reports/ledger", params={"hijri_year": 1446, "hijri_month": 9})

        body = response.json()
        assert response.status_code == 200
        assert body["window"]["label"] == "Ramadhan 1446 H"
        assert body["total_income"] == 5000
        assert body["closing_balance"] == 5000

    @pytest.mark.asyncio
    async def test_spending_report_rejects_bad_month(self, client):
        response = await client.get("/api/reports/spending", params={"year": 2025, "month": 13})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_spending_report_rejects_bad_year(self, client):
        response = await client.get("/api/reports/spending", params={"year": 1800, "month": 1})

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "year"
