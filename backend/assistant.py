"""
Gateway to the hosted model.

Each operation builds a prompt, calls the Messages API and parses the reply.
Failures surface as AssistantError; callers decide what to show the user.
"""
import base64
import json
import logging
import uuid
from datetime import datetime
from typing import Literal, Optional

import anthropic

import config
from models import Category, GroundingSource, Priority, SubTask, Task
from prompts import (
    BRIEFING_PROMPT,
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT,
    IMAGE_ONLY_TEXT,
    SUBTASK_PROMPT,
    VISION_BOARD_PROMPT,
)

logger = logging.getLogger(__name__)

Intent = Literal["vision", "briefing", "extract"]

VISION_TRIGGERS = ("vision board", "visualize my day")
BRIEFING_TRIGGERS = ("morning briefing", "today looking like")

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 3}

EXTRACTION_MAX_TOKENS = 2048
# Resends allowed when the server pauses a turn
MAX_CONTINUATIONS = 3

_client: Optional[anthropic.AsyncAnthropic] = None


class AssistantError(Exception):
    """The model call failed or its reply could not be used."""


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY)
    return _client


def detect_intent(text: str) -> Intent:
    lowered = text.lower()
    if any(trigger in lowered for trigger in VISION_TRIGGERS):
        return "vision"
    if any(trigger in lowered for trigger in BRIEFING_TRIGGERS):
        return "briefing"
    return "extract"


async def _create(**kwargs):
    try:
        response = await get_client().messages.create(**kwargs)
    except anthropic.APIError as e:
        logger.warning("Model call failed: %s", e)
        raise AssistantError(f"API error: {e}") from e
    if getattr(response, "stop_reason", None) == "max_tokens":
        logger.warning("Model reply truncated at max_tokens=%s", kwargs.get("max_tokens"))
    return response


async def _run_turn(kwargs: dict) -> list:
    """
    Run one model turn, resending it while the server pauses it.
    Returns the content blocks of every response in order.
    """
    messages = list(kwargs["messages"])
    response = await _create(**kwargs)
    blocks = list(response.content)
    continuations = 0
    while getattr(response, "stop_reason", None) == "pause_turn":
        if continuations >= MAX_CONTINUATIONS:
            logger.warning("Turn still paused after %d continuations, using partial reply", continuations)
            break
        continuations += 1
        messages = messages + [{"role": "assistant", "content": response.content}]
        response = await _create(**{**kwargs, "messages": messages})
        blocks.extend(response.content)
    return blocks


def _response_text(blocks) -> str:
    """Concatenate the text blocks of a reply (tool blocks are skipped)."""
    parts = [block.text for block in blocks if getattr(block, "type", None) == "text"]
    return "".join(parts).strip()


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text.strip()


def _parse_json_array(text: str) -> list:
    """Parse a JSON array reply, tolerating a code fence or prose around it."""
    cleaned = _strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("["), cleaned.rfind("]")
        if start == -1 or end <= start:
            raise AssistantError("Failed to parse AI response")
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise AssistantError("Failed to parse AI response") from e
    if isinstance(parsed, dict):
        # Some replies wrap the list, e.g. {"tasks": [...]}
        parsed = next((v for v in parsed.values() if isinstance(v, list)), [])
    if not isinstance(parsed, list):
        raise AssistantError("Expected a JSON array")
    return parsed


def _collect_sources(blocks) -> list[GroundingSource]:
    """Web search results and citations, deduplicated by URL in reply order."""
    sources: list[GroundingSource] = []
    seen: set[str] = set()

    def add(title, url):
        if url and url not in seen:
            seen.add(url)
            sources.append(GroundingSource(title=title or "", uri=url))

    for block in blocks:
        block_type = getattr(block, "type", None)
        if block_type == "web_search_tool_result":
            results = getattr(block, "content", None)
            # An error result is a single object, not a list
            if isinstance(results, list):
                for result in results:
                    add(getattr(result, "title", ""), getattr(result, "url", None))
        elif block_type == "text":
            for citation in getattr(block, "citations", None) or []:
                add(getattr(citation, "title", ""), getattr(citation, "url", None))
    return sources


def _image_block(image: str) -> dict:
    """Build an image content block from a data URL or bare base64 string."""
    media_type = "image/jpeg"
    data = image
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        declared = header[5:].split(";")[0]
        if declared:
            media_type = declared
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": data},
    }


def _coerce_enum(enum_cls, value, default):
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    return default


def _coerce_date(value) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        return None


def _to_task(item, sources: list[GroundingSource]) -> Optional[Task]:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    return Task(
        id=str(uuid.uuid4()),
        name=name.strip(),
        priority=_coerce_enum(Priority, item.get("priority"), Priority.MEDIUM),
        estimated_time=str(item.get("estimated_time") or item.get("estimatedTime") or ""),
        category=_coerce_enum(Category, item.get("category"), Category.OTHER),
        due_date=_coerce_date(item.get("due_date", item.get("dueDate"))),
        completed=False,
        created_at=datetime.now().isoformat(),
        sub_tasks=[],
        sources=list(sources),
    )


async def extract_tasks(
    text: str,
    image: Optional[str] = None,
    today: Optional[str] = None,
) -> tuple[list[Task], list[GroundingSource]]:
    """
    Extract tasks from free-form text and/or an image.
    Every extracted task carries all grounding sources of the reply.
    """
    today = today or config.today_iso()
    content: list[dict] = [{
        "type": "text",
        "text": EXTRACTION_USER_PROMPT.format(today=today, text=text.strip() or IMAGE_ONLY_TEXT),
    }]
    if image:
        content.append(_image_block(image))

    kwargs = {
        "model": config.MODEL,
        "max_tokens": EXTRACTION_MAX_TOKENS,
        "system": EXTRACTION_SYSTEM_PROMPT.format(today=today),
        "messages": [{"role": "user", "content": content}],
    }
    if config.WEB_SEARCH_ENABLED:
        kwargs["tools"] = [WEB_SEARCH_TOOL]

    blocks = await _run_turn(kwargs)
    sources = _collect_sources(blocks)
    ai_text = _response_text(blocks)
    logger.debug("Extraction response: %s", ai_text)

    if not ai_text:
        return [], sources

    tasks = []
    for item in _parse_json_array(ai_text):
        task = _to_task(item, sources)
        if task is None:
            logger.warning("Skipping unusable task item: %r", item)
            continue
        tasks.append(task)
    return tasks, sources


async def generate_subtasks(task_name: str) -> list[SubTask]:
    """Break a task into three actionable steps."""
    response = await _create(
        model=config.MODEL,
        max_tokens=512,
        messages=[{"role": "user", "content": SUBTASK_PROMPT.format(task_name=task_name)}],
    )
    ai_text = _response_text(response.content)
    logger.debug("Breakdown response: %s", ai_text)

    subtasks = []
    for item in _parse_json_array(ai_text):
        name = item.get("name") if isinstance(item, dict) else item
        if isinstance(name, str) and name.strip():
            subtasks.append(SubTask(id=str(uuid.uuid4()), name=name.strip(), completed=False))
    return subtasks


async def generate_briefing(tasks: list[Task]) -> str:
    task_summary = "\n".join(f"- {t.name} (Due: {t.due_date or 'No date'})" for t in tasks)
    response = await _create(
        model=config.MODEL,
        max_tokens=512,
        messages=[{"role": "user", "content": BRIEFING_PROMPT.format(task_summary=task_summary)}],
    )
    briefing = _response_text(response.content)
    if not briefing:
        raise AssistantError("Empty briefing")
    return briefing


async def generate_vision_board(tasks: list[Task]) -> str:
    """
    Render the first two open tasks as a 16:9 wallpaper.
    Returns an SVG data URL.
    """
    priorities = ", ".join([t.name for t in tasks if not t.completed][:2])
    response = await _create(
        model=config.IMAGE_MODEL,
        max_tokens=4096,
        messages=[{"role": "user", "content": VISION_BOARD_PROMPT.format(priorities=priorities)}],
    )
    ai_text = _strip_code_fence(_response_text(response.content))
    start, end = ai_text.find("<svg"), ai_text.rfind("</svg>")
    if start == -1 or end == -1:
        raise AssistantError("No SVG in vision board response")
    svg = ai_text[start:end + len("</svg>")]
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
