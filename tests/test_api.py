"""
Tests for the FastAPI application (`api/main.py` and the routers).

Runs the app against the in-memory document store with the scheduler off.
"""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from api.config import Settings
from api.main import create_app
from services.telegram_bot import SECRET_HEADER, TelegramClient, WELCOME_TEXT

from conftest import ADMIN, EMPLOYEE

ADMIN_HEADERS = {"X-User-Id": ADMIN.uid}
EMPLOYEE_HEADERS = {"X-User-Id": EMPLOYEE.uid}

NUMBER = {
    "mobile": "9876543210",
    "status": "RTS",
    "purchase_from": "numberwale",
    "purchase_price": "5000",
    "purchase_date": "2025-01-05T00:00:00Z",
    "sale_price": "8000",
}


@pytest.fixture
def telegram_calls() -> list[dict]:
    return []


@pytest.fixture
def client(store, clock, telegram_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        telegram_calls.append({"url": str(request.url), "body": json.loads(request.content)})
        return httpx.Response(200, json={"ok": True, "result": {}})

    telegram = TelegramClient("tok", http=httpx.Client(transport=httpx.MockTransport(handler)))
    settings = Settings(enable_scheduler=False, telegram_webhook_secret="s3cret")
    app = create_app(settings, store=store, clock=clock, telegram_client=telegram)
    with TestClient(app) as test_client:
        yield test_client


def _add_number(client, **overrides) -> str:
    response = client.post("/api/v1/numbers", json={**NUMBER, **overrides}, headers=ADMIN_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()["id"]


class TestHealth:
    def test_health(self, client) -> None:
        """Verify health reports the service and a loaded store."""

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["service"] == "vip-numbers-api"
        assert body["store_loaded"] is True

    def test_root(self, client) -> None:
        assert client.get("/").json()["docs"] == "/docs"


class TestCallerIdentity:
    def test_missing_user_header(self, client) -> None:
        assert client.get("/api/v1/numbers").status_code == 401

    def test_unknown_user(self, client) -> None:
        assert client.get("/api/v1/numbers", headers={"X-User-Id": "nobody"}).status_code == 401

    def test_me(self, client) -> None:
        body = client.get("/api/v1/users/me", headers=EMPLOYEE_HEADERS).json()

        assert body["uid"] == EMPLOYEE.uid
        assert body["role"] == "employee"


class TestNumbers:
    def test_add_and_list(self, client) -> None:
        number_id = _add_number(client)

        body = client.get("/api/v1/numbers", headers=ADMIN_HEADERS).json()

        assert body["total_items"] == 1
        item = body["items"][0]
        assert item["id"] == number_id
        assert item["sum"] == 9
        assert item["two_digit_sum"] == 45
        assert item["history"][0]["action"] == "Created"

    def test_duplicate_is_conflict(self, client) -> None:
        _add_number(client)

        response = client.post("/api/v1/numbers", json=NUMBER, headers=ADMIN_HEADERS)

        assert response.status_code == 409
        assert response.json()["mobile"] == "9876543210"

    def test_validation_problem_is_bad_request(self, client) -> None:
        response = client.post("/api/v1/numbers", json={**NUMBER, "status": "Non-RTS"}, headers=ADMIN_HEADERS)

        assert response.status_code == 400
        assert "RTS date is required for Non-RTS numbers." in response.json()["problems"]

    def test_unknown_sort_column(self, client) -> None:
        response = client.get("/api/v1/numbers?sort=colour", headers=ADMIN_HEADERS)

        assert response.status_code == 400

    def test_advanced_search_query(self, client) -> None:
        _add_number(client)
        _add_number(client, mobile="9814567890")

        body = client.get("/api/v1/numbers?total=45", headers=ADMIN_HEADERS).json()

        assert [n["mobile"] for n in body["items"]] == ["9876543210"]

    def test_employee_cannot_see_unassigned_number(self, client) -> None:
        number_id = _add_number(client)

        assert client.get(f"/api/v1/numbers/{number_id}", headers=EMPLOYEE_HEADERS).status_code == 404
        assert client.get(f"/api/v1/numbers/{number_id}", headers=ADMIN_HEADERS).status_code == 200

    def test_employee_cannot_delete(self, client) -> None:
        number_id = _add_number(client)

        response = client.post(
            "/api/v1/numbers/delete",
            json={"number_ids": [number_id], "reason": "Lost"},
            headers=EMPLOYEE_HEADERS,
        )

        assert response.status_code == 403

    def test_status_update_is_no_content(self, client) -> None:
        number_id = _add_number(client)

        response = client.post(
            f"/api/v1/numbers/{number_id}/status",
            json={"status": "Non-RTS", "rts_date": "2025-04-01T00:00:00+05:30"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 204
        item = client.get(f"/api/v1/numbers/{number_id}", headers=ADMIN_HEADERS).json()
        assert item["status"] == "Non-RTS"
        assert item["rts_date"].startswith("2025-03-31T18:30:00")


class TestSales:
    def test_sell_and_cancel(self, client) -> None:
        """Verify sell -> list -> cancel moves the number and back."""

        number_id = _add_number(client)
        sale = client.post(
            f"/api/v1/numbers/{number_id}/sell",
            json={"sold_to": "numberatm", "sale_price": "8000", "sale_date": "2025-03-09T10:00:00Z"},
            headers=ADMIN_HEADERS,
        )
        assert sale.status_code == 201
        sale_id = sale.json()["id"]

        listing = client.get("/api/v1/sales", headers=ADMIN_HEADERS).json()
        assert listing["summary"]["record_count"] == 1
        assert listing["sold_to_options"] == ["numberatm"]
        assert client.get("/api/v1/numbers", headers=ADMIN_HEADERS).json()["total_items"] == 0

        restored = client.post(f"/api/v1/sales/{sale_id}/cancel", headers=ADMIN_HEADERS)
        assert restored.status_code == 200
        assert client.get("/api/v1/numbers", headers=ADMIN_HEADERS).json()["total_items"] == 1

    def test_missing_sale(self, client) -> None:
        assert client.post("/api/v1/sales/nope/cancel", headers=ADMIN_HEADERS).status_code == 404


class TestWriteRejected:
    def test_rejected_write_is_forbidden_with_path(self, client, documents) -> None:
        documents.reject_writes = True

        response = client.post("/api/v1/numbers", json=NUMBER, headers=ADMIN_HEADERS)

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "permission-error"
        assert body["path"] == "numbers"
        assert body["operation"] == "create"
        assert "request_resource_data" not in body


class TestReminders:
    def test_due_popups_show_once(self, client) -> None:
        created = client.post(
            "/api/v1/reminders",
            json={"task_name": "Call dealer", "assigned_to": ["Ravi"], "due_date": "2025-03-10T00:00:00Z"},
            headers=ADMIN_HEADERS,
        )
        assert created.status_code == 201

        first = client.get("/api/v1/reminders/due", headers=EMPLOYEE_HEADERS).json()
        second = client.get("/api/v1/reminders/due", headers=EMPLOYEE_HEADERS).json()

        assert [r["task_name"] for r in first] == ["Call dealer"]
        assert second == []


class TestTransfers:
    CSV = "Mobile,Status,PurchaseDate,PurchasePrice\n9876543210,RTS,05-01-2025,5000\n9814567890,RTS,05-01-2025,\n"

    def test_import_csv(self, client) -> None:
        response = client.post(
            "/api/v1/imports/numbers",
            content=self.CSV.encode("utf-8"),
            headers={**ADMIN_HEADERS, "Content-Type": "text/csv"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] == ["9876543210"]
        assert body["failed"][0]["row_number"] == 3
        assert body["failed"][0]["reason"] == "Invalid or missing PurchasePrice"

    def test_import_rejects_empty_file(self, client) -> None:
        response = client.post(
            "/api/v1/imports/numbers",
            content=b"Mobile,Status\n",
            headers={**ADMIN_HEADERS, "Content-Type": "text/csv"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "CSV file has no data rows"

    def test_import_rejects_non_utf8(self, client) -> None:
        response = client.post(
            "/api/v1/imports/numbers",
            content=b"Mobile\n\xff\xfe\n",
            headers={**ADMIN_HEADERS, "Content-Type": "text/csv"},
        )

        assert response.status_code == 400

    def test_export_sales_without_sales(self, client) -> None:
        assert client.get("/api/v1/exports/sales", headers=ADMIN_HEADERS).status_code == 404

    def test_export_numbers_attachment(self, client) -> None:
        number_id = _add_number(client)

        response = client.post("/api/v1/exports/numbers", json={"number_ids": [number_id]}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="numbers_export.csv"'
        assert response.headers["x-record-count"] == "1"


class TestTelegramWebhook:
    UPDATE = {"update_id": 1, "message": {"text": "/start", "chat": {"id": 42}}}

    def test_bad_secret_is_forbidden(self, client, telegram_calls) -> None:
        response = client.post("/webhook/telegram", json=self.UPDATE, headers={SECRET_HEADER: "wrong"})

        assert response.status_code == 403
        assert response.text == "Forbidden"
        assert telegram_calls == []

    def test_start_command_gets_welcome(self, client, telegram_calls) -> None:
        response = client.post("/webhook/telegram", json=self.UPDATE, headers={SECRET_HEADER: "s3cret"})

        assert response.status_code == 200
        assert response.text == "OK"
        assert telegram_calls[0]["url"] == "https://api.telegram.org/bottok/sendMessage"
        assert telegram_calls[0]["body"] == {"chat_id": 42, "text": WELCOME_TEXT}

    def test_other_commands_not_implemented(self, client, telegram_calls) -> None:
        update = {"message": {"text": "/stats", "chat": {"id": 7}}}

        client.post("/webhook/telegram", json=update, headers={SECRET_HEADER: "s3cret"})

        assert telegram_calls[0]["body"]["text"] == "Command '/stats' is not yet implemented."

    @pytest.mark.parametrize(
        "update",
        [
            {"message": {"text": 12345, "chat": {"id": 7}}},
            {"message": {"text": {"bold": "/start"}, "chat": {"id": 7}}},
            {"message": "not a message"},
            {"message": {"text": "/start", "chat": "7"}},
        ],
    )
    def test_malformed_update_is_acknowledged(self, client, telegram_calls, update) -> None:
        """Verify odd payloads are answered with OK and no reply is sent."""

        response = client.post("/webhook/telegram", json=update, headers={SECRET_HEADER: "s3cret"})

        assert response.status_code == 200
        assert response.text == "OK"
        assert telegram_calls == []
