"""
Tests for the HTTP layer: authentication, error mapping and JSON shapes.
"""

from decimal import Decimal

import pytest


def leave_body(**overrides):
    body = {
        "type_code": "PAID_LEAVE",
        "start_date": "2025-06-02",
        "end_date": "2025-06-04",
        "reason": "Family trip",
    }
    body.update(overrides)
    return body


@pytest.fixture
def alice_headers(org, auth_headers):
    return auth_headers(org.alice)


@pytest.fixture
def maria_headers(org, auth_headers):
    return auth_headers(org.maria)


class TestAuth:

    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_no_token(self, client):
        response = client.get("/request-types")

        assert response.status_code == 401

    def test_bad_token(self, client):
        response = client.get("/request-types", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_cookie_token(self, client, org, auth_headers):
        token = auth_headers(org.alice)["Authorization"].split(" ", 1)[1]
        client.cookies.set("staffdesk_session", token)

        assert client.get("/request-types").status_code == 200


class TestRequestTypes:

    def test_list(self, client, alice_headers):
        response = client.get("/request-types", headers=alice_headers)

        assert response.status_code == 200
        assert len(response.json()) == 10

    def test_include_inactive_is_admin_only(self, client, alice_headers):
        response = client.get("/request-types?include_inactive=true", headers=alice_headers)

        assert response.status_code == 403

    def test_get_by_code(self, client, alice_headers):
        assert client.get("/request-types/paid-leave", headers=alice_headers).json()["code"] == "PAID_LEAVE"
        assert client.get("/request-types/NOPE", headers=alice_headers).status_code == 404


class TestTimeOffFlow:

    def test_submit_approve_balance(self, client, alice_headers, maria_headers):
        response = client.post("/time-off", json=leave_body(), headers=alice_headers)
        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "PENDING"
        assert created["display_id"] == f"REQ-{created['request_id']:03d}"
        assert created["duration_days"] == 3

        response = client.post(
            f"/requests/{created['request_id']}/approve",
            json={"comment": "Enjoy"},
            headers=maria_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"

        balances = {
            b["balance_type"]: b
            for b in client.get("/time-off/balances?year=2025", headers=alice_headers).json()
        }
        assert Decimal(balances["Annual Leave"]["used"]) == Decimal("3")
        assert Decimal(balances["Annual Leave"]["remaining"]) == Decimal("12")

    def test_insufficient_balance(self, client, alice_headers):
        response = client.post(
            "/time-off",
            json=leave_body(start_date="2025-06-01", end_date="2025-06-30"),
            headers=alice_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "insufficient_balance"
        assert Decimal(body["remaining"]) == Decimal("15")
        assert Decimal(body["requested"]) == Decimal("30")

    def test_cancel_by_display_id(self, client, alice_headers):
        created = client.post("/time-off", json=leave_body(), headers=alice_headers).json()

        response = client.post(
            f"/time-off/{created['display_id']}/cancel",
            json={"comment": "Plans changed"},
            headers=alice_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        history = client.get("/time-off/history?status=CANCELLED", headers=alice_headers).json()
        assert history["total"] == 1
        assert history["items"][0]["payload"]["cancellation_comment"] == "Plans changed"

    def test_end_before_start_is_422(self, client, alice_headers):
        response = client.post(
            "/time-off",
            json=leave_body(start_date="2025-06-04", end_date="2025-06-02"),
            headers=alice_headers,
        )

        assert response.status_code == 422


class TestRequestErrors:

    def test_employee_cannot_approve(self, client, alice_headers):
        created = client.post("/time-off", json=leave_body(), headers=alice_headers).json()

        response = client.post(f"/requests/{created['request_id']}/approve", headers=alice_headers)

        assert response.status_code == 403

    def test_approve_twice(self, client, alice_headers, maria_headers):
        created = client.post("/time-off", json=leave_body(), headers=alice_headers).json()
        client.post(f"/requests/{created['request_id']}/approve", headers=maria_headers)

        response = client.post(f"/requests/{created['request_id']}/approve", headers=maria_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_state"

    def test_short_rejection_reason(self, client, alice_headers, maria_headers):
        created = client.post("/time-off", json=leave_body(), headers=alice_headers).json()

        response = client.post(
            f"/requests/{created['request_id']}/reject",
            json={"reason": "no"},
            headers=maria_headers,
        )

        assert response.status_code == 422

    def test_reject(self, client, alice_headers, maria_headers):
        created = client.post("/time-off", json=leave_body(), headers=alice_headers).json()

        response = client.post(
            f"/requests/{created['request_id']}/reject",
            json={"reason": "Release week, sorry"},
            headers=maria_headers,
        )

        assert response.status_code == 200
        assert response.json()["rejection_reason"] == "Release week, sorry"

    def test_not_found(self, client, alice_headers):
        response = client.get("/requests/9999", headers=alice_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_validation_failure_shape(self, client, alice_headers):
        response = client.post(
            "/requests",
            json={"type_code": "SABBATICAL", "reason": "Why not"},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "validation_failed", "detail": "Invalid request type"}

    def test_patch_and_list(self, client, alice_headers):
        created = client.post(
            "/requests",
            json={
                "type_code": "PAID_LEAVE",
                "effective_from": "2025-06-02",
                "effective_to": "2025-06-04",
                "reason": "Trip",
            },
            headers=alice_headers,
        ).json()

        response = client.patch(
            f"/requests/{created['request_id']}",
            json={"reason": "Longer trip", "effective_to": "2025-06-05"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json()["duration_days"] == 4

        page = client.get("/requests?status=pending", headers=alice_headers).json()
        assert page["total"] == 1
        assert page["total_pages"] == 1
        assert page["items"][0]["reason"] == "Longer trip"

    def test_summary(self, client, alice_headers):
        client.post("/time-off", json=leave_body(), headers=alice_headers)

        summary = client.get("/requests/summary?month=2025-05", headers=alice_headers).json()

        assert summary["total"] == 1
        assert summary["by_status"]["pending"] == 1
        assert summary["by_type"] == {"PAID_LEAVE": 1}

    def test_admin_scope_forbidden_for_employee(self, client, alice_headers):
        response = client.get("/requests?scope=all", headers=alice_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"


class TestTimesheetFlow:

    def _week(self, client, headers, task_ids, week="2025-05-05", hours="40"):
        return client.post(
            "/timesheets",
            json={"week_start_date": week, "entries": [{"task_id": task_ids["PROJ-A"], "hours": hours}]},
            headers=headers,
        )

    def test_submit_and_duplicate(self, client, alice_headers, task_ids):
        response = self._week(client, alice_headers, task_ids)
        assert response.status_code == 201
        body = response.json()
        assert body["week_end_date"] == "2025-05-11"
        assert Decimal(body["summary"]["total_hours"]) == Decimal("40")

        response = self._week(client, alice_headers, task_ids)
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_not_a_monday_is_422(self, client, alice_headers, task_ids):
        assert self._week(client, alice_headers, task_ids, week="2025-05-06").status_code == 422

    def test_invalid_task_lists_errors(self, client, alice_headers):
        response = client.post(
            "/timesheets",
            json={"week_start_date": "2025-05-05", "entries": [{"task_id": 999, "hours": "8"}]},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["errors"] == ["Task 999 does not exist"]

    def test_reject_then_adjust(self, client, alice_headers, maria_headers, task_ids):
        request_id = self._week(client, alice_headers, task_ids).json()["request"]["request_id"]

        pending = client.get("/timesheets/pending-approvals", headers=maria_headers).json()
        assert [item["request_id"] for item in pending["items"]] == [request_id]

        client.post(
            f"/timesheets/{request_id}/reject",
            json={"reason": "Please split out meetings"},
            headers=maria_headers,
        )

        response = client.put(
            f"/timesheets/{request_id}",
            json={"entries": [
                {"task_id": task_ids["PROJ-A"], "hours": "36"},
                {"task_id": task_ids["MEETING"], "hours": "4"},
            ]},
            headers=alice_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["request"]["status"] == "REJECTED"
        assert sorted(e["task_code"] for e in body["entries"]) == ["MEETING", "PROJ-A"]

    def test_monthly_hours(self, client, alice_headers, maria_headers, task_ids):
        request_id = self._week(client, alice_headers, task_ids, hours="37.5").json()["request"]["request_id"]
        client.post(f"/timesheets/{request_id}/approve", headers=maria_headers)

        body = client.get("/timesheets/monthly-hours?year=2025&month=5", headers=alice_headers).json()

        assert Decimal(body["total_hours"]) == Decimal("37.5")

    def test_pending_approvals_needs_manager(self, client, alice_headers):
        assert client.get("/timesheets/pending-approvals", headers=alice_headers).status_code == 403

    def test_tasks(self, client, alice_headers):
        tasks = client.get("/timesheets/tasks", headers=alice_headers).json()

        assert len(tasks) == 7

    def test_resubmit_rejected_week(self, client, alice_headers, maria_headers, task_ids):
        first = self._week(client, alice_headers, task_ids).json()["request"]["request_id"]
        client.post(f"/timesheets/{first}/reject", json={"reason": "Hours look short"}, headers=maria_headers)

        response = self._week(client, alice_headers, task_ids, hours="42")
        assert response.status_code == 201
        second = response.json()["request"]["request_id"]

        approved = client.post(f"/timesheets/{second}/approve", headers=maria_headers)
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"


class TestTaskCatalog:

    @pytest.fixture
    def admin_headers(self, org, auth_headers):
        return auth_headers(org.admin)

    def test_create_and_retire(self, client, admin_headers, alice_headers):
        response = client.post(
            "/timesheets/tasks",
            json={"task_code": "jury-duty", "name": "Jury duty", "task_type": "leave"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        task = response.json()
        assert (task["task_code"], task["task_type"], task["is_active"]) == ("JURY-DUTY", "leave", True)

        response = client.patch(
            f"/timesheets/tasks/{task['task_id']}",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        codes = [t["task_code"] for t in client.get("/timesheets/tasks", headers=alice_headers).json()]
        assert "JURY-DUTY" not in codes
        everything = client.get("/timesheets/tasks?include_inactive=true", headers=admin_headers).json()
        assert len(everything) == 8

    def test_duplicate_code_is_409(self, client, admin_headers):
        response = client.post(
            "/timesheets/tasks",
            json={"task_code": "PROJ-A", "name": "Project A"},
            headers=admin_headers,
        )

        assert response.status_code == 409

    def test_employees_cannot_manage_tasks(self, client, alice_headers, task_ids):
        assert client.post(
            "/timesheets/tasks", json={"task_code": "X", "name": "X"}, headers=alice_headers,
        ).status_code == 403
        assert client.patch(
            f"/timesheets/tasks/{task_ids['PROJ-A']}", json={"name": "Mine now"}, headers=alice_headers,
        ).status_code == 403
        assert client.get("/timesheets/tasks?include_inactive=true", headers=alice_headers).status_code == 403

    def test_unknown_task_is_404(self, client, admin_headers):
        response = client.patch("/timesheets/tasks/999", json={"name": "Ghost"}, headers=admin_headers)

        assert response.status_code == 404
