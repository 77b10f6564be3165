import logging
import uuid
from datetime import datetime
from typing import Optional

import assistant
import config
from assistant import AssistantError
from database import add_message, create_tasks_db, get_all_tasks, get_messages, get_task_db, set_subtasks_db
from models import Message, Task

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hello! I am LifeOS. I can now send you reminders for your tasks. "
    "Click the bell icon above to enable notifications!"
)
VISION_BOARD_REPLY = "Visualized your current priorities into a vision board for focus."
NO_TASKS_REPLY = "Understood. How else can I help organize your life today?"
ERROR_REPLY = "Processing error. Please try again."
BRIEFING_ERROR_REPLY = "Summary error."
NOT_CONFIGURED_REPLY = "API key not configured"


def _new_message(role: str, content: str, **fields) -> Message:
    return Message(
        id=str(uuid.uuid4()),
        role=role,
        content=content,
        timestamp=datetime.now().isoformat(),
        **fields,
    )


def scheduled_reply(count: int) -> str:
    return f"Scheduled {count} new item{'s' if count > 1 else ''}. Check your planner!"


def get_transcript() -> list[Message]:
    """Stored messages preceded by the (unstored) welcome message."""
    messages = get_messages()
    welcome_time = messages[0].timestamp if messages else datetime.now().isoformat()
    welcome = Message(id="welcome", role="assistant", content=WELCOME_MESSAGE, timestamp=welcome_time)
    return [welcome] + messages


async def _reply(text: str, image: Optional[str]) -> Optional[Message]:
    """Route the user's message to the model and build the assistant reply."""
    intent = assistant.detect_intent(text)
    tasks = get_all_tasks()

    if intent == "vision":
        try:
            vision_image = await assistant.generate_vision_board(tasks)
        except AssistantError:
            logger.exception("Vision board generation failed")
            return _new_message("assistant", ERROR_REPLY)
        return _new_message("assistant", VISION_BOARD_REPLY, image=vision_image, type="vision_board")

    if intent == "briefing":
        try:
            briefing = await assistant.generate_briefing(tasks)
        except AssistantError:
            logger.exception("Briefing failed")
            briefing = BRIEFING_ERROR_REPLY
        return _new_message("assistant", briefing)

    try:
        new_tasks, sources = await assistant.extract_tasks(text, image)
    except AssistantError:
        logger.exception("Task extraction failed")
        return _new_message("assistant", ERROR_REPLY)

    if new_tasks:
        create_tasks_db(new_tasks)
        return _new_message("assistant", scheduled_reply(len(new_tasks)), sources=sources)
    if text.strip():
        return _new_message("assistant", NO_TASKS_REPLY, sources=sources)
    # Image-only message with nothing actionable gets no reply
    return None


async def handle_message(text: str, image: Optional[str] = None) -> tuple[list[Message], list[Task]]:
    """
    Store the user's message, answer it and return the new messages plus all tasks.
    """
    user_message = add_message(_new_message("user", text, image=image))
    new_messages = [user_message]

    if not config.api_key_configured():
        reply = _new_message("assistant", NOT_CONFIGURED_REPLY)
    else:
        reply = await _reply(text, image)

    if reply is not None:
        new_messages.append(add_message(reply))
    return new_messages, get_all_tasks()


async def breakdown_task(task_id: str) -> Optional[Task]:
    """
    Replace a task's subtasks with freshly generated steps.
    Returns None if the task does not exist; raises AssistantError if generation fails.
    """
    task = get_task_db(task_id)
    if task is None:
        return None
    if not config.api_key_configured():
        raise AssistantError(NOT_CONFIGURED_REPLY)
    subtasks = await assistant.generate_subtasks(task.name)
    logger.info("Generated %d subtask(s) for %s", len(subtasks), task_id)
    return set_subtasks_db(task_id, subtasks)

