"""Initial schema - tasks, subtasks and chat messages

Revision ID: 001
Revises: None
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            priority TEXT NOT NULL DEFAULT 'Medium',
            estimated_time TEXT DEFAULT '',
            category TEXT NOT NULL DEFAULT 'Other',
            due_date TEXT,
            completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            sources TEXT DEFAULT '[]'
        )
    """))

    # Subtasks keep their generated order via position
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS subtasks (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            name TEXT NOT NULL,
            completed INTEGER DEFAULT 0
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_subtasks_task_id ON subtasks (task_id)"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS messages (
            id TEXT PRIMARY KEY,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            image TEXT,
            type TEXT DEFAULT 'text',
            sources TEXT DEFAULT '[]'
        )
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS messages"))
    conn.execute(text("DROP TABLE IF EXISTS subtasks"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
