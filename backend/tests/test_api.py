"""
Tests for FastAPI endpoints in main.py.
The model client is replaced by the fake_ai fixture where a call is expected.
"""
import pytest
import sys
import os
import uuid

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from conftest import text_block
from database import create_tasks_db, get_task_db, set_subtasks_db
from models import Category, SubTask, Task


def seed(*tasks):
    return create_tasks_db([Task(created_at="", **t) for t in tasks])


class TestTaskEndpoints:
    """Tests for /tasks endpoints."""

    def test_get_tasks_empty(self, app_client):
        """GET /tasks returns empty list when no tasks."""
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_tasks_returns_tasks(self, test_db, app_client):
        seed({"id": "id-1", "name": "Task 1"}, {"id": "id-2", "name": "Task 2"})

        response = app_client.get("/tasks")
        assert response.status_code == 200
        tasks = response.json()
        assert [t["name"] for t in tasks] == ["Task 1", "Task 2"]
        assert tasks[0]["priority"] == "Medium"
        assert tasks[0]["progress"] == 0

    def test_get_tasks_filter(self, test_db, app_client):
        seed({"id": "id-1", "name": "Open"}, {"id": "id-2", "name": "Done", "completed": True})

        active = app_client.get("/tasks", params={"filter": "active"}).json()
        completed = app_client.get("/tasks", params={"filter": "completed"}).json()
        assert [t["id"] for t in active] == ["id-1"]
        assert [t["id"] for t in completed] == ["id-2"]

    def test_get_tasks_bad_filter(self, app_client):
        response = app_client.get("/tasks", params={"filter": "someday"})
        assert response.status_code == 422

    def test_toggle_task(self, test_db, app_client):
        seed({"id": "id-1", "name": "Complete me"})

        response = app_client.post("/tasks/id-1/toggle")
        assert response.status_code == 200
        assert response.json()["completed"] is True

        response = app_client.post("/tasks/id-1/toggle")
        assert response.json()["completed"] is False

    def test_toggle_task_not_found(self, app_client):
        response = app_client.post("/tasks/nonexistent/toggle")
        assert response.status_code == 404

    def test_delete_task(self, test_db, app_client):
        seed({"id": "id-1", "name": "Delete me"})

        response = app_client.delete("/tasks/id-1")
        assert response.status_code == 200
        assert response.json()["status"] == "deleted"

        # Verify task is gone
        assert app_client.get("/tasks").json() == []

    def test_delete_task_not_found(self, app_client):
        response = app_client.delete("/tasks/nonexistent")
        assert response.status_code == 404


class TestSubtaskEndpoints:
    """Tests for breakdown and subtask toggling."""

    def test_breakdown(self, test_db, app_client, fake_ai):
        seed({"id": "id-1", "name": "Plan trip"})
        fake_ai.reply_json([{"name": "Flights"}, {"name": "Hotel"}, {"name": "Pack"}])

        response = app_client.post("/tasks/id-1/breakdown")

        assert response.status_code == 200
        assert [s["name"] for s in response.json()["sub_tasks"]] == ["Flights", "Hotel", "Pack"]

    def test_breakdown_not_found(self, test_db, app_client, fake_ai):
        response = app_client.post("/tasks/nonexistent/breakdown")
        assert response.status_code == 404

    def test_breakdown_gateway_failure(self, test_db, app_client, fake_ai):
        seed({"id": "id-1", "name": "Plan trip"})
        fake_ai.reply(text_block("no"))

        response = app_client.post("/tasks/id-1/breakdown")
        assert response.status_code == 502

    def test_breakdown_not_configured(self, test_db, app_client, monkeypatch):
        monkeypatch.setattr(config, "ANTHROPIC_API_KEY", None)
        seed({"id": "id-1", "name": "Plan trip"})

        response = app_client.post("/tasks/id-1/breakdown")
        assert response.status_code == 502

    def test_toggle_subtask(self, test_db, app_client):
        seed({"id": "id-1", "name": "Plan trip"})
        subs = [SubTask(id=str(uuid.uuid4()), name=n) for n in ("a", "b")]
        set_subtasks_db("id-1", subs)

        response = app_client.post(f"/tasks/id-1/subtasks/{subs[0].id}/toggle")

        assert response.status_code == 200
        assert response.json()["progress"] == 50
        assert get_task_db("id-1").sub_tasks[0].completed is True

    def test_toggle_subtask_not_found(self, test_db, app_client):
        seed({"id": "id-1", "name": "Plan trip"})
        response = app_client.post("/tasks/id-1/subtasks/nope/toggle")
        assert response.status_code == 404


class TestChatEndpoint:
    """Tests for /chat and /messages."""

    def test_chat_creates_tasks(self, test_db, app_client, fake_ai):
        fake_ai.reply_json([{"name": "Call mom", "priority": "High", "category": "Personal",
                             "due_date": "2025-01-21"}])

        response = app_client.post("/chat", json={"text": "Call mom tomorrow"})

        assert response.status_code == 200
        data = response.json()
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert data["messages"][1]["content"] == "Scheduled 1 new item. Check your planner!"
        assert data["tasks"][0]["name"] == "Call mom"
        assert data["tasks"][0]["category"] == "Personal"

    def test_chat_requires_text_or_image(self, app_client):
        response = app_client.post("/chat", json={"text": "   "})
        assert response.status_code == 400

    def test_messages_transcript(self, test_db, app_client, fake_ai):
        assert [m["id"] for m in app_client.get("/messages").json()] == ["welcome"]

        app_client.post("/chat", json={"text": "thanks"})
        transcript = app_client.get("/messages").json()
        assert len(transcript) == 3

    def test_clear_messages(self, test_db, app_client, fake_ai):
        app_client.post("/chat", json={"text": "thanks"})

        response = app_client.delete("/messages")
        assert response.json() == {"status": "cleared", "deleted": 2}
        assert len(app_client.get("/messages").json()) == 1


class TestViewEndpoints:
    """Tests for /calendar and /audit."""

    def test_calendar_month(self, test_db, app_client):
        seed({"id": "id-1", "name": "Dentist", "due_date": "2025-01-20"})

        response = app_client.get("/calendar", params={"year": 2025, "month": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["month_name"] == "January"
        assert data["leading_blanks"] == 3
        assert data["days"][19]["tasks"][0]["name"] == "Dentist"
        assert data["next"] == {"year": 2025, "month": 2}

    def test_calendar_defaults_to_today(self, test_db, app_client, monkeypatch):
        monkeypatch.setattr(config, "today_iso", lambda: "2025-03-10")

        data = app_client.get("/calendar").json()

        assert (data["year"], data["month"]) == (2025, 3)
        assert data["days"][9]["is_today"] is True

    def test_calendar_invalid_month(self, app_client):
        response = app_client.get("/calendar", params={"year": 2025, "month": 13})
        assert response.status_code == 422

    def test_audit(self, test_db, app_client):
        seed(
            {"id": "id-1", "name": "A", "category": Category.WORK, "completed": True},
            {"id": "id-2", "name": "B", "category": Category.WORK},
        )

        data = app_client.get("/audit").json()

        assert data["score"] == 50
        assert data["active"] == 1
        assert data["categories"][0] == {"name": "Work", "count": 2, "percent": 100.0}


class TestNotificationEndpoints:
    """Tests for permission, settings and the notification outbox."""

    def test_default_settings(self, app_client):
        data = app_client.get("/settings").json()
        assert data == {"theme": None, "notification_permission": "default"}

    def test_grant_permission_announces_and_checks(self, test_db, app_client, monkeypatch):
        monkeypatch.setattr(config, "today_iso", lambda: "2025-01-20")
        seed({"id": "id-1", "name": "Pay rent", "priority": "High", "due_date": "2025-01-20"})

        response = app_client.put("/notifications/permission", json={"permission": "granted"})
        assert response.status_code == 200
        assert response.json()["notification_permission"] == "granted"

        notifications = app_client.get("/notifications").json()
        assert [n["title"] for n in notifications] == ["Reminders Active!", "LifeOS Reminder"]
        assert notifications[1]["body"] == "Task due today: Pay rent (High Priority)"

        # Drained
        assert app_client.get("/notifications").json() == []

    def test_every_grant_is_announced(self, test_db, app_client):
        app_client.put("/notifications/permission", json={"permission": "granted"})
        app_client.put("/notifications/permission", json={"permission": "granted"})

        titles = [n["title"] for n in app_client.get("/notifications").json()]
        assert titles == ["Reminders Active!", "Reminders Active!"]

    def test_denied_permission_sends_nothing(self, test_db, app_client):
        app_client.put("/notifications/permission", json={"permission": "denied"})
        assert app_client.get("/notifications").json() == []

    def test_invalid_permission(self, app_client):
        response = app_client.put("/notifications/permission", json={"permission": "maybe"})
        assert response.status_code == 422

    def test_patch_theme(self, test_db, app_client):
        response = app_client.patch("/settings", json={"theme": "dark"})
        assert response.json()["theme"] == "dark"
        assert app_client.get("/settings").json()["theme"] == "dark"

    def test_patch_permission_through_settings(self, test_db, app_client):
        response = app_client.patch("/settings", json={"notification_permission": "granted"})
        assert response.json()["notification_permission"] == "granted"
        assert [n["title"] for n in app_client.get("/notifications").json()] == ["Reminders Active!"]
