"""
HTTP tests for the time entry and invoice routers, run against the app
with an in-memory store.
"""

import re

EMPLOYEE_ID = "employee-1"
OTHER_EMPLOYEE_ID = "employee-2"
MANAGER_ID = "manager-1"

API = "/api/v1"


def create_entry(client, headers, **overrides):
    body = {
        "project_id": "project-1",
        "description": "API work",
        "date": "2024-03-04",
        "duration_minutes": 60,
    }
    body.update(overrides)
    response = client.post(f"{API}/time-entries", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_invoice(client, headers, **overrides):
    body = {
        "client_id": "client-1",
        "line_items": [{"description": "Consulting", "quantity": "10", "rate": "100"}],
    }
    body.update(overrides)
    response = client.post(f"{API}/invoices", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestApplicationEndpoints:
    """Test cases for the service endpoints."""

    def test_health(self, client):
        response = client.get(f"{API}/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_path_uses_error_envelope(self, client):
        response = client.get(f"{API}/nowhere")

        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"
        assert body["timestamp"].endswith("Z")


class TestAuthentication:
    """Test cases for bearer token handling."""

    def test_missing_token(self, client):
        response = client.get(f"{API}/time-entries")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_expired_token(self, client, auth_headers):
        response = client.get(f"{API}/time-entries", headers=auth_headers(expires_minutes=-5))

        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get(f"{API}/time-entries", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestTimeEntryEndpoints:
    """Test cases for the time entry router."""

    def test_create_get_and_list(self, client, auth_headers):
        headers = auth_headers()
        entry = create_entry(client, headers)

        assert entry["date"] == "2024-03-04"
        assert entry["status"] == "draft"
        assert entry["user_id"] == EMPLOYEE_ID

        fetched = client.get(f"{API}/time-entries/{entry['id']}", headers=headers)
        listed = client.get(f"{API}/time-entries", params={"date_from": "2024-03-01"}, headers=headers)

        assert fetched.json()["data"]["id"] == entry["id"]
        assert listed.json()["data"]["total"] == 1

    def test_validation_error_lists_fields(self, client, auth_headers):
        response = client.post(
            f"{API}/time-entries",
            json={"date": "2024-03-04", "duration_minutes": 60},
            headers=auth_headers()
        )

        body = response.json()
        assert response.status_code == 400
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert "project_id" in [detail["field"] for detail in body["error"]["details"]]

    def test_domain_validation_error_has_details(self, client, auth_headers):
        response = client.post(
            f"{API}/time-entries",
            json={
                "project_id": "project-1",
                "date": "2024-03-04",
                "start_time": "2024-03-04T09:00:00",
                "end_time": "2024-03-04T10:00:00",
                "duration_minutes": 120,
            },
            headers=auth_headers()
        )

        body = response.json()
        assert response.status_code == 400
        assert body["error"]["details"][0]["field"] == "duration_minutes"

    def test_other_employee_gets_403(self, client, auth_headers):
        entry = create_entry(client, auth_headers())

        response = client.get(f"{API}/time-entries/{entry['id']}", headers=auth_headers(OTHER_EMPLOYEE_ID))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_entry_gets_404(self, client, auth_headers):
        response = client.get(f"{API}/time-entries/missing", headers=auth_headers())

        assert response.status_code == 404

    def test_update_and_delete(self, client, auth_headers):
        headers = auth_headers()
        entry = create_entry(client, headers)

        updated = client.put(
            f"{API}/time-entries/{entry['id']}", json={"description": "Renamed"}, headers=headers
        )
        deleted = client.delete(f"{API}/time-entries/{entry['id']}", headers=headers)

        assert updated.json()["data"]["description"] == "Renamed"
        assert deleted.json()["data"] == {"id": entry["id"], "deleted": True}
        assert client.get(f"{API}/time-entries/{entry['id']}", headers=headers).status_code == 404

    def test_submit_partial_success_is_207(self, client, auth_headers):
        headers = auth_headers()
        entry = create_entry(client, headers)

        response = client.post(f"{API}/time-entries/submit", json={"ids": [entry["id"], "ghost"]}, headers=headers)

        body = response.json()
        assert response.status_code == 207
        assert body["data"]["successful"] == [entry["id"]]
        assert body["data"]["failed"][0]["error"]["code"] == "NOT_FOUND"
        assert body["message"] == "1 of 2 time entries submitted"

    def test_submit_all_failed_is_400(self, client, auth_headers):
        response = client.post(f"{API}/time-entries/submit", json={"ids": ["ghost"]}, headers=auth_headers())

        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"]["code"] == "BULK_OPERATION_FAILED"

    def test_oversized_batch_is_rejected(self, client, auth_headers):
        ids = [f"entry-{index}" for index in range(51)]

        response = client.post(f"{API}/time-entries/submit", json={"ids": ids}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_BATCH_SIZE"

    def test_approval_flow(self, client, auth_headers):
        employee_headers = auth_headers()
        entry = create_entry(client, employee_headers)
        client.post(f"{API}/time-entries/submit", json={"ids": [entry["id"]]}, headers=employee_headers)

        forbidden = client.post(
            f"{API}/time-entries/approve", json={"ids": [entry["id"]]}, headers=employee_headers
        )
        approved = client.post(
            f"{API}/time-entries/approve", json={"ids": [entry["id"]]}, headers=auth_headers(MANAGER_ID, "manager")
        )

        assert forbidden.status_code == 403
        assert approved.status_code == 200
        stored = client.get(f"{API}/time-entries/{entry['id']}", headers=employee_headers).json()["data"]
        assert stored["status"] == "approved"
        assert stored["approved_by"] == MANAGER_ID

    def test_reject_requires_reason(self, client, auth_headers):
        response = client.post(
            f"{API}/time-entries/reject",
            json={"ids": ["entry-1"], "reason": "   "},
            headers=auth_headers(MANAGER_ID, "manager")
        )

        assert response.status_code == 400

    def test_timer_start_twice_conflicts(self, client, auth_headers):
        headers = auth_headers()

        started = client.post(f"{API}/time-entries/timer/start", json={"project_id": "project-1"}, headers=headers)
        again = client.post(f"{API}/time-entries/timer/start", json={"project_id": "project-1"}, headers=headers)
        status = client.get(f"{API}/time-entries/timer/status", headers=headers)

        assert started.status_code == 201
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "TIMER_ALREADY_RUNNING"
        assert status.json()["data"]["is_running"] is True

    def test_stop_without_timer_conflicts(self, client, auth_headers):
        response = client.post(f"{API}/time-entries/timer/stop", json={}, headers=auth_headers())

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NO_ACTIVE_TIMER"

    def test_daily_summary(self, client, auth_headers):
        headers = auth_headers()
        create_entry(client, headers, duration_minutes=240)

        response = client.get(
            f"{API}/time-entries/daily-summary",
            params={"start_date": "2024-03-04", "end_date": "2024-03-08"},
            headers=headers
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert len(data["summaries"]) == 5
        assert data["summaries"][0]["total_hours"] == 4.0

    def test_daily_summary_range_limit(self, client, auth_headers):
        response = client.get(
            f"{API}/time-entries/daily-summary",
            params={"start_date": "2024-01-01", "end_date": "2024-03-01"},
            headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DATE_RANGE_TOO_LARGE"

    def test_weekly_overview_requires_monday(self, client, auth_headers):
        response = client.get(
            f"{API}/time-entries/weekly-overview",
            params={"week_start_date": "2024-03-05"},
            headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DATE_RANGE"


class TestInvoiceEndpoints:
    """Test cases for the invoice router."""

    def test_employee_cannot_create_invoice(self, client, auth_headers):
        response = client.post(f"{API}/invoices", json={"client_id": "client-1"}, headers=auth_headers())

        assert response.status_code == 403

    def test_create_and_pay(self, client, auth_headers):
        headers = auth_headers(MANAGER_ID, "manager")
        invoice = create_invoice(client, headers)

        assert re.match(r"^INV-\d{4}-\d{2}-001$", invoice["invoice_number"])
        assert invoice["total_amount"] == "1000.00"

        payment = client.post(
            f"{API}/invoices/{invoice['id']}/payments",
            json={"amount": "1000.00", "payment_method": "card"},
            headers=headers
        )
        payments = client.get(f"{API}/invoices/{invoice['id']}/payments", headers=headers)

        assert payment.status_code == 201
        assert payment.json()["data"]["invoice"]["status"] == "paid"
        assert payments.json()["data"]["total_paid"] == "1000.00"

    def test_overpayment_is_400(self, client, auth_headers):
        headers = auth_headers(MANAGER_ID, "manager")
        invoice = create_invoice(client, headers)

        response = client.post(
            f"{API}/invoices/{invoice['id']}/payments",
            json={"amount": "1000.01", "payment_method": "card"},
            headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYMENT_EXCEEDS_INVOICE"

    def test_status_transitions(self, client, auth_headers):
        headers = auth_headers(MANAGER_ID, "manager")
        invoice = create_invoice(client, headers)
        url = f"{API}/invoices/{invoice['id']}/status"

        illegal = client.put(url, json={"status": "paid"}, headers=headers)
        sent = client.put(url, json={"status": "sent"}, headers=headers)
        cancelled = client.put(url, json={"status": "cancelled"}, headers=headers)
        payment = client.post(
            f"{API}/invoices/{invoice['id']}/payments",
            json={"amount": "10.00", "payment_method": "card"},
            headers=headers
        )

        assert illegal.status_code == 400
        assert illegal.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"
        assert sent.json()["data"]["status"] == "sent"
        assert cancelled.json()["data"]["status"] == "cancelled"
        assert payment.status_code == 409
        assert payment.json()["error"]["code"] == "INVOICE_NOT_PAYABLE"

    def test_update_paid_invoice_conflicts(self, client, auth_headers):
        headers = auth_headers(MANAGER_ID, "manager")
        invoice = create_invoice(client, headers)
        client.post(
            f"{API}/invoices/{invoice['id']}/payments",
            json={"amount": "1000.00", "payment_method": "card"},
            headers=headers
        )

        response = client.put(f"{API}/invoices/{invoice['id']}", json={"notes": "late"}, headers=headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVOICE_CANNOT_BE_MODIFIED"

    def test_list_invoices(self, client, auth_headers):
        headers = auth_headers(MANAGER_ID, "manager")
        create_invoice(client, headers)
        create_invoice(client, headers, client_id="client-2")

        response = client.get(f"{API}/invoices", params={"client_id": "client-2"}, headers=headers)

        assert response.json()["data"]["total"] == 1
