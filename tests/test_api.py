"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from tests.conftest import WEEK_ENDING, full_week_rows, punch_csv
from weekly_payroll.api.app import create_app
from weekly_payroll.api.dependencies import get_operations


@pytest.fixture
def client(ops):
    app = create_app()
    app.dependency_overrides[get_operations] = lambda: ops
    return TestClient(app)


def create_payslip(client, **overrides):
    body = {"employee_id": "E001", "week_ending": WEEK_ENDING.isoformat(), "hours": 39, "minutes": 30}
    body.update(overrides)
    return client.post("/api/v1/payslips", json=body, headers={"X-User": "clerk"})


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "healthy"

    def test_health_degraded_without_roster(self, client, store):
        store.drop_table("EMPLOYEE DETAILS")

        response = client.get("/health")

        assert response.json()["status"] == "degraded"

    def test_live(self, client):
        assert client.get("/live").json() == {"status": "alive"}


class TestPayslipEndpoints:
    def test_create_returns_201(self, client):
        response = create_payslip(client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["payslip"]["net_pay"] == "1328.01"
        assert body["data"]["payslip"]["created_by"] == "clerk"
        assert body["data"]["ledger"]["action"] == "noop"

    def test_duplicate_returns_409(self, client):
        create_payslip(client)

        response = create_payslip(client)

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE"
        assert response.json()["details"]["record_number"] == 1

    def test_validation_returns_400(self, client):
        response = create_payslip(client, minutes=75)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_get_and_list(self, client):
        create_payslip(client)

        assert client.get("/api/v1/payslips/1").json()["data"]["hours"] == 39
        listed = client.get("/api/v1/payslips", params={"employee_id": "E001"}).json()
        assert [p["record_number"] for p in listed["data"]] == [1]
        assert client.get("/api/v1/payslips/2").status_code == 404

    def test_patch_loan_fields(self, client):
        client.post(
            "/api/v1/loans/transactions",
            json={"employee_id": "E001", "amount": "300", "transaction_type": "Disbursement",
                  "transaction_date": "2024-03-01"},
        )
        create_payslip(client)

        response = client.patch("/api/v1/payslips/1/loan", json={"loan_deduction_this_week": "100"})

        assert response.status_code == 200
        assert response.json()["data"]["ledger"]["action"] == "created"
        balance = client.get("/api/v1/loans/E001/balance").json()
        assert balance["data"] == {"employee_id": "E001", "balance": "200.00"}

    def test_patch_after_deadline_returns_409(self, client, clock):
        create_payslip(client)
        clock.advance(days=3)

        response = client.patch("/api/v1/payslips/1", json={"bonus_pay": "10"})

        assert response.status_code == 409
        assert response.json()["code"] == "EDIT_WINDOW_EXPIRED"

    def test_delete(self, client):
        create_payslip(client)

        assert client.delete("/api/v1/payslips/1").status_code == 200
        assert client.get("/api/v1/payslips/1").status_code == 404


class TestLoanEndpoints:
    def test_invalid_transaction(self, client):
        response = client.post(
            "/api/v1/loans/transactions",
            json={"employee_id": "E001", "amount": "-5", "transaction_type": "Disbursement"},
        )

        assert response.status_code == 400

    def test_history_and_recalculate(self, client):
        client.post(
            "/api/v1/loans/transactions",
            json={"employee_id": "E002", "amount": "80", "transaction_type": "Disbursement"},
        )

        history = client.get("/api/v1/loans/E002/history").json()["data"]
        recalculated = client.post("/api/v1/loans/E002/recalculate").json()["data"]

        assert [e["amount"] for e in history] == ["80.00"]
        assert recalculated["balance"] == "80.00"


class TestImportAndReview:
    def test_upload_then_approve(self, client):
        content = punch_csv(full_week_rows("101", "Jane Doe"))

        uploaded = client.post(
            "/api/v1/imports",
            files={"file": ("week11.csv", content, "text/csv")},
            headers={"X-User": "clerk"},
        )

        assert uploaded.status_code == 201
        assert uploaded.json()["data"]["timesheets_created"] == [1]

        again = client.post("/api/v1/imports", files={"file": ("week11.csv", content, "text/csv")})
        assert again.status_code == 409
        assert again.json()["code"] == "DUPLICATE_IMPORT"

        pending = client.get("/api/v1/timesheets", params={"status": "Pending"}).json()["data"]
        assert [t["id"] for t in pending] == [1]

        approved = client.post("/api/v1/timesheets/1/approve", headers={"X-User": "manager"})
        assert approved.status_code == 200
        data = approved.json()["data"]
        assert data["timesheet"]["status"] == "Approved"
        assert data["timesheet"]["is_locked"] is True
        assert data["payslip"]["hours"] == 40

        assert client.post("/api/v1/timesheets/1/approve").status_code == 409

    def test_override_form_field(self, client):
        content = punch_csv(full_week_rows("101", "Jane Doe"))
        client.post("/api/v1/imports", files={"file": ("a.csv", content, "text/csv")})

        response = client.post(
            "/api/v1/imports",
            files={"file": ("a.csv", content, "text/csv")},
            data={"override": "true"},
        )

        assert response.status_code == 201
        assert len(response.json()["data"]["replaced_import_ids"]) == 1

    def test_bad_file_returns_400(self, client):
        response = client.post("/api/v1/imports", files={"file": ("a.csv", b"nothing here", "text/csv")})

        assert response.status_code == 400
        assert response.json()["code"] == "PUNCH_FILE_ERROR"

    def test_manual_timesheet_and_missing_days(self, client):
        created = client.post(
            "/api/v1/timesheets",
            json={"employee_id": "E002", "week_ending": WEEK_ENDING.isoformat(), "hours": 32},
        )
        missing = client.get(
            "/api/v1/timesheets/missing-days",
            params={"employee_name": "John Smith", "week_ending": WEEK_ENDING.isoformat()},
        )

        assert created.status_code == 201
        assert len(missing.json()["data"]) == 5

    def test_approve_with_leave(self, client):
        client.post(
            "/api/v1/timesheets",
            json={"employee_id": "E002", "week_ending": WEEK_ENDING.isoformat(), "hours": 32},
        )

        response = client.post(
            "/api/v1/timesheets/1/approve-with-leave",
            json={"missing_days": ["2024-03-15"], "reason": "Family Responsibility"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["leave_created"] == ["2024-03-15"]

    def test_reject_without_body(self, client):
        client.post("/api/v1/timesheets", json={"employee_id": "E002", "week_ending": "2024-03-15"})

        response = client.post("/api/v1/timesheets/1/reject")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Rejected"

    def test_edit_locked_timesheet_returns_409(self, client):
        client.post("/api/v1/timesheets", json={"employee_id": "E002", "week_ending": "2024-03-15"})
        client.post("/api/v1/timesheets/1/approve")

        response = client.patch("/api/v1/timesheets/1", json={"editable_hours": 10})

        assert response.status_code == 409
        assert response.json()["code"] == "TIMESHEET_LOCKED"

    def test_incomplete_imported_week_returns_409(self, client):
        monday = full_week_rows("101", "Jane Doe")[:2]
        client.post("/api/v1/imports", files={"file": ("week11.csv", punch_csv(monday), "text/csv")})

        response = client.post("/api/v1/timesheets/1/approve")

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "INCOMPLETE_WEEK"
        assert [d["date"] for d in body["details"]["missing_days"]] == [
            "2024-03-12",
            "2024-03-13",
            "2024-03-14",
            "2024-03-15",
        ]
