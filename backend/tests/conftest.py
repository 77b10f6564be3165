"""
Shared pytest fixtures for backend tests.
Uses a temporary SQLite database per test and a fake model client.
"""
import asyncio
import json
import pytest
import sqlite3
import sys
import os
from types import SimpleNamespace

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import assistant
import config
import database
import reminders


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            priority TEXT NOT NULL DEFAULT 'Medium',
            estimated_time TEXT DEFAULT '',
            category TEXT NOT NULL DEFAULT 'Other',
            due_date TEXT,
            completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            sources TEXT DEFAULT '[]',
            reminded INTEGER DEFAULT 0,
            batch INTEGER DEFAULT 0
        );

        CREATE TABLE subtasks (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            name TEXT NOT NULL,
            completed INTEGER DEFAULT 0
        );

        CREATE TABLE messages (
            id TEXT PRIMARY KEY,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            image TEXT,
            type TEXT DEFAULT 'text',
            sources TEXT DEFAULT '[]'
        );

        CREATE TABLE settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE notifications (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            body TEXT NOT NULL,
            task_id TEXT,
            created_at TEXT NOT NULL,
            delivered INTEGER DEFAULT 0
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


def text_block(text, citations=None):
    return SimpleNamespace(type="text", text=text, citations=citations)


def search_result_block(*results):
    """A web_search_tool_result block holding (title, url) pairs."""
    return SimpleNamespace(
        type="web_search_tool_result",
        content=[SimpleNamespace(type="web_search_result", title=t, url=u) for t, u in results],
    )


class FakeMessages:
    def __init__(self, owner):
        self.owner = owner

    async def create(self, **kwargs):
        self.owner.calls.append(kwargs)
        if self.owner.error is not None:
            raise self.owner.error
        blocks, stop_reason = self.owner.replies.pop(0) if self.owner.replies else ([text_block("[]")], "end_turn")
        return SimpleNamespace(content=blocks, stop_reason=stop_reason)


class FakeAnthropic:
    """
    Stand-in for anthropic.AsyncAnthropic.
    Queue replies (lists of content blocks) with reply()/reply_json(); calls are recorded.
    """

    def __init__(self):
        self.calls = []
        self.replies = []
        self.error = None
        self.messages = FakeMessages(self)

    def reply(self, *blocks, stop_reason="end_turn"):
        self.replies.append((list(blocks), stop_reason))

    def reply_json(self, payload):
        self.reply(text_block(json.dumps(payload)))


@pytest.fixture
def fake_ai(monkeypatch):
    fake = FakeAnthropic()
    monkeypatch.setattr(assistant, "_client", fake)
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "test-key")
    return fake


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic migrations and the background reminder loop.
    """
    from fastapi.testclient import TestClient
    import main

    async def no_loop(*_args, **_kwargs):
        return None

    monkeypatch.setattr(database, "init_db", lambda: None)
    monkeypatch.setattr(reminders, "run_reminder_loop", no_loop)
    monkeypatch.setattr(main, "setup_logging", lambda: None)

    with TestClient(main.app) as client:
        yield client


def run(coro):
    return asyncio.run(coro)
