"""
Reminder timer.

A small polling loop that queues one notification for every open task due today.
Notifications go to the outbox the client drains; nothing is sent unless the user
granted notification permission.
"""
import asyncio
import logging
from typing import Callable, Optional

import config
from database import add_notification, get_all_tasks, get_settings, mark_reminded_db
from models import Task

logger = logging.getLogger(__name__)

REMINDER_TITLE = "LifeOS Reminder"
PERMISSION_GRANTED_TITLE = "Reminders Active!"
PERMISSION_GRANTED_BODY = "LifeOS will notify you when tasks are due."

Notify = Callable[[str, str, Optional[str]], object]


def reminder_body(task: Task) -> str:
    return f"Task due today: {task.name} ({task.priority.value} Priority)"


def due_for_reminder(tasks: list[Task], today: str) -> list[Task]:
    return [t for t in tasks if t.due_date == today and not t.completed and not t.reminded]


def check_reminders(today: Optional[str] = None, notify: Optional[Notify] = None) -> list[Task]:
    """
    Queue a reminder for each open, not yet reminded task due today and mark it reminded.
    Returns the tasks that were reminded.
    """
    if get_settings().notification_permission != "granted":
        return []

    today = today or config.today_iso()
    notify = notify or add_notification

    reminded = []
    for task in due_for_reminder(get_all_tasks(), today):
        # Another check may have claimed it since the list was read
        if not mark_reminded_db(task.id):
            continue
        notify(REMINDER_TITLE, reminder_body(task), task.id)
        logger.info("Reminder queued for task %s (%s)", task.id, task.name)
        reminded.append(task)
    return reminded


def announce_permission_granted():
    add_notification(PERMISSION_GRANTED_TITLE, PERMISSION_GRANTED_BODY)


async def run_reminder_loop(interval: float = config.REMINDER_INTERVAL_SECONDS):
    """Check immediately, then every interval seconds until cancelled."""
    logger.info("Reminder loop started (every %ss)", interval)
    while True:
        try:
            await asyncio.to_thread(check_reminders)
        except Exception:
            logger.exception("Reminder check failed")
        await asyncio.sleep(interval)
