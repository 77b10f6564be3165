import sqlite3
import json
import logging
import os
import subprocess
from datetime import datetime
from typing import Optional
from contextlib import contextmanager

import config
from models import GroundingSource, Message, Notification, Settings, SubTask, Task
from planner import subtask_progress

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    env = {**os.environ, "LIFEOS_DATABASE_PATH": os.path.abspath(DATABASE_PATH)}
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env=env,
        check=True
    )


def _now() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _load_sources(raw: Optional[str]) -> list[GroundingSource]:
    if not raw:
        return []
    return [GroundingSource(**s) for s in json.loads(raw)]


def _dump_sources(sources: list[GroundingSource]) -> str:
    return json.dumps([s.model_dump() for s in sources])


def _get_subtasks(conn, task_id: str) -> list[SubTask]:
    rows = conn.execute(
        "SELECT * FROM subtasks WHERE task_id = ? ORDER BY position",
        (task_id,)
    ).fetchall()
    return [SubTask(id=r["id"], name=r["name"], completed=bool(r["completed"])) for r in rows]


def _row_to_task(conn, row) -> Task:
    """Convert a database row (plus its subtasks) to a Task model."""
    sub_tasks = _get_subtasks(conn, row["id"])
    return Task(
        id=row["id"],
        name=row["name"],
        priority=row["priority"],
        estimated_time=row["estimated_time"] or "",
        category=row["category"],
        due_date=row["due_date"] or None,
        completed=bool(row["completed"]),
        created_at=row["created_at"],
        sub_tasks=sub_tasks,
        sources=_load_sources(row["sources"]),
        reminded=bool(row["reminded"]),
        progress=subtask_progress(sub_tasks),
    )


# Task operations
def get_all_tasks() -> list[Task]:
    """All tasks, newest batch first; tasks within a batch keep their extraction order."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks ORDER BY batch DESC, rowid ASC"
        ).fetchall()
        return [_row_to_task(conn, row) for row in rows]


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None
        return _row_to_task(conn, row)


def create_tasks_db(tasks: list[Task]) -> list[Task]:
    """
    Insert a batch of tasks sharing one created_at timestamp and batch number.
    Batch numbers only grow, so ordering does not depend on the wall clock.
    Subtasks attached to the tasks are stored as well.
    """
    if not tasks:
        return []
    created_at = _now()
    stored = [t.model_copy(update={"created_at": created_at}) for t in tasks]
    with get_db() as conn:
        # Write lock before reading MAX so concurrent batches get distinct numbers
        conn.execute("BEGIN IMMEDIATE")
        batch = conn.execute("SELECT COALESCE(MAX(batch), 0) + 1 FROM tasks").fetchone()[0]
        for task in stored:
            conn.execute(
                """INSERT INTO tasks
                   (id, name, priority, estimated_time, category, due_date, completed, created_at, sources, reminded, batch)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    task.id,
                    task.name,
                    task.priority.value,
                    task.estimated_time,
                    task.category.value,
                    task.due_date,
                    int(task.completed),
                    created_at,
                    _dump_sources(task.sources),
                    int(task.reminded),
                    batch,
                )
            )
            _insert_subtasks(conn, task.id, task.sub_tasks)
        conn.commit()
    logger.info("Stored %d new task(s)", len(stored))
    return stored


def toggle_task_db(task_id: str) -> Optional[Task]:
    """Flip a task's completed flag. Returns None if the task does not exist."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE tasks SET completed = 1 - completed WHERE id = ?",
            (task_id,)
        )
        conn.commit()
        if cursor.rowcount == 0:
            return None
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(conn, row)


def mark_reminded_db(task_id: str) -> bool:
    """
    Claim a task for its due-today reminder.
    Returns True only for the caller that flipped reminded from 0 to 1.
    """
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE tasks SET reminded = 1 WHERE id = ? AND reminded = 0",
            (task_id,)
        )
        conn.commit()
        return cursor.rowcount == 1


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0


# Subtask operations
def _insert_subtasks(conn, task_id: str, sub_tasks: list[SubTask]):
    for position, sub in enumerate(sub_tasks):
        conn.execute(
            "INSERT INTO subtasks (id, task_id, position, name, completed) VALUES (?, ?, ?, ?, ?)",
            (sub.id, task_id, position, sub.name, int(sub.completed))
        )


def set_subtasks_db(task_id: str, sub_tasks: list[SubTask]) -> Optional[Task]:
    """Replace all subtasks of a task. Returns None if the task does not exist."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None
        conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
        _insert_subtasks(conn, task_id, sub_tasks)
        conn.commit()
        return _row_to_task(conn, row)


def toggle_subtask_db(task_id: str, subtask_id: str) -> Optional[Task]:
    """Flip one subtask's completed flag. Returns None if task or subtask is missing."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE subtasks SET completed = 1 - completed WHERE id = ? AND task_id = ?",
            (subtask_id, task_id)
        )
        conn.commit()
        if cursor.rowcount == 0:
            return None
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None
        return _row_to_task(conn, row)


# Message operations
def _row_to_message(row) -> Message:
    return Message(
        id=row["id"],
        role=row["role"],
        content=row["content"],
        timestamp=row["timestamp"],
        image=row["image"],
        type=row["type"] or "text",
        sources=_load_sources(row["sources"]),
    )


def get_messages() -> list[Message]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM messages ORDER BY rowid").fetchall()
        return [_row_to_message(row) for row in rows]


def add_message(message: Message) -> Message:
    with get_db() as conn:
        conn.execute(
            """INSERT INTO messages (id, role, content, timestamp, image, type, sources)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                message.id,
                message.role,
                message.content,
                message.timestamp,
                message.image,
                message.type,
                _dump_sources(message.sources),
            )
        )
        conn.commit()
    return message


def clear_messages() -> int:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM messages")
        conn.commit()
        return cursor.rowcount


# Settings (key-value)
def get_settings() -> Settings:
    with get_db() as conn:
        rows = conn.execute("SELECT key, value FROM settings").fetchall()
    values = {row["key"]: json.loads(row["value"]) for row in rows}
    return Settings(**{k: v for k, v in values.items() if k in Settings.model_fields})


def update_settings(**changes) -> Settings:
    """Store the given settings. Unknown keys are ignored."""
    with get_db() as conn:
        for key, value in changes.items():
            if key not in Settings.model_fields:
                continue
            conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value))
            )
        conn.commit()
    return get_settings()


# Notification outbox
def add_notification(title: str, body: str, task_id: Optional[str] = None) -> Notification:
    created_at = _now()
    with get_db() as conn:
        cursor = conn.execute(
            "INSERT INTO notifications (title, body, task_id, created_at, delivered) VALUES (?, ?, ?, ?, 0)",
            (title, body, task_id, created_at)
        )
        conn.commit()
        return Notification(id=cursor.lastrowid, title=title, body=body, created_at=created_at, task_id=task_id)


def pop_notifications() -> list[Notification]:
    """Return undelivered notifications in order and mark them delivered."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM notifications WHERE delivered = 0 ORDER BY id"
        ).fetchall()
        if rows:
            conn.executemany(
                "UPDATE notifications SET delivered = 1 WHERE id = ?",
                [(row["id"],) for row in rows]
            )
            conn.commit()
        return [
            Notification(
                id=row["id"],
                title=row["title"],
                body=row["body"],
                created_at=row["created_at"],
                task_id=row["task_id"],
            )
            for row in rows
        ]
