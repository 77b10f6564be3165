import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

import config
import database
import reminders
from assistant import AssistantError
from audit import build_audit
from chat import breakdown_task, get_transcript, handle_message
from database import (
    clear_messages,
    delete_task_db,
    get_all_tasks,
    get_settings,
    pop_notifications,
    toggle_subtask_db,
    toggle_task_db,
    update_settings,
)
from logging_setup import setup_logging
from models import (
    AuditReport,
    CalendarMonth,
    ChatRequest,
    ChatResponse,
    Message,
    Notification,
    PermissionUpdate,
    Settings,
    SettingsUpdate,
    Task,
    TaskFilter,
)
from planner import build_month, filter_tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    setup_logging()
    database.init_db()
    reminder_task = asyncio.create_task(reminders.run_reminder_loop(config.REMINDER_INTERVAL_SECONDS))
    logger.info("LifeOS backend started (model=%s, database=%s)", config.MODEL, database.DATABASE_PATH)
    yield
    # Shutdown
    reminder_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await reminder_task

app = FastAPI(title="LifeOS", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/tasks")
def get_tasks(task_filter: TaskFilter = Query(default="all", alias="filter")) -> list[Task]:
    return filter_tasks(get_all_tasks(), task_filter)


@app.post("/tasks/{task_id}/toggle")
def toggle_task(task_id: str) -> Task:
    task = toggle_task_db(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.post("/tasks/{task_id}/breakdown")
async def breakdown(task_id: str) -> Task:
    """Generate three subtasks for a task, replacing any existing ones."""
    try:
        task = await breakdown_task(task_id)
    except AssistantError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.post("/tasks/{task_id}/subtasks/{subtask_id}/toggle")
def toggle_subtask(task_id: str, subtask_id: str) -> Task:
    task = toggle_subtask_db(task_id, subtask_id)
    if not task:
        raise HTTPException(status_code=404, detail="Subtask not found")
    return task


@app.get("/messages")
def get_messages_endpoint() -> list[Message]:
    """Chat transcript, starting with the welcome message."""
    return get_transcript()


@app.delete("/messages")
def clear_messages_endpoint() -> dict:
    return {"status": "cleared", "deleted": clear_messages()}


@app.post("/chat")
async def chat(chat_request: ChatRequest) -> ChatResponse:
    """Process a user message through the assistant and return the new messages."""
    if not chat_request.text.strip() and not chat_request.image:
        raise HTTPException(status_code=400, detail="Message needs text or an image")
    messages, tasks = await handle_message(chat_request.text, chat_request.image)
    return ChatResponse(messages=messages, tasks=tasks)


@app.get("/calendar")
def get_calendar(
    year: Optional[int] = Query(default=None, ge=1, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
) -> CalendarMonth:
    today = config.today_iso()
    year = year or int(today[:4])
    month = month or int(today[5:7])
    return build_month(year, month, get_all_tasks(), today)


@app.get("/audit")
def get_audit() -> AuditReport:
    return build_audit(get_all_tasks())


@app.get("/notifications")
def get_notifications() -> list[Notification]:
    """Drain queued notifications; each is returned once."""
    return pop_notifications()


@app.put("/notifications/permission")
def set_notification_permission(update: PermissionUpdate) -> Settings:
    """Store the permission; every grant is announced and runs a reminder check."""
    settings = update_settings(notification_permission=update.permission)
    if update.permission == "granted":
        reminders.announce_permission_granted()
        reminders.check_reminders()
    return settings


@app.get("/settings")
def get_settings_endpoint() -> Settings:
    return get_settings()


@app.patch("/settings")
def patch_settings(update: SettingsUpdate) -> Settings:
    changes = update.model_dump(exclude_unset=True)
    permission = changes.pop("notification_permission", None)
    if permission is not None:
        set_notification_permission(PermissionUpdate(permission=permission))
    return update_settings(**changes)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
