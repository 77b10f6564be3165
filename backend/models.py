from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Category(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    HEALTH = "Health"
    FINANCE = "Finance"
    OTHER = "Other"


TaskFilter = Literal["all", "active", "completed"]
MessageType = Literal["text", "vision_board", "knowledge_card"]
Permission = Literal["default", "granted", "denied"]
Theme = Literal["light", "dark"]


class SubTask(BaseModel):
    id: str
    name: str
    completed: bool = False


class GroundingSource(BaseModel):
    title: str = ""
    uri: str


class Task(BaseModel):
    id: str
    name: str
    priority: Priority = Priority.MEDIUM
    estimated_time: str = ""  # free text, e.g. "1 hour"
    category: Category = Category.OTHER
    due_date: Optional[str] = None  # ISO format: YYYY-MM-DD
    completed: bool = False
    created_at: str  # ISO format datetime string
    sub_tasks: list[SubTask] = Field(default_factory=list)
    sources: list[GroundingSource] = Field(default_factory=list)
    reminded: bool = False
    progress: int = 0  # percent of sub_tasks completed


class Message(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: str  # ISO format datetime string
    image: Optional[str] = None  # data URL
    type: MessageType = "text"
    sources: list[GroundingSource] = Field(default_factory=list)


class Notification(BaseModel):
    id: int
    title: str
    body: str
    created_at: str
    task_id: Optional[str] = None


class Settings(BaseModel):
    theme: Optional[Theme] = None  # None follows the system preference
    notification_permission: Permission = "default"


class SettingsUpdate(BaseModel):
    theme: Optional[Theme] = None
    notification_permission: Optional[Permission] = None


class PermissionUpdate(BaseModel):
    permission: Permission


class ChatRequest(BaseModel):
    text: str = ""
    image: Optional[str] = None  # data URL or bare base64


class ChatResponse(BaseModel):
    messages: list[Message]
    tasks: list[Task]


class CalendarTask(BaseModel):
    id: str
    name: str
    priority: Priority
    completed: bool


class CalendarDay(BaseModel):
    day: int
    date: str
    is_today: bool
    tasks: list[CalendarTask]


class MonthRef(BaseModel):
    year: int
    month: int


class CalendarMonth(BaseModel):
    year: int
    month: int
    month_name: str
    weekdays: list[str]
    leading_blanks: int  # empty cells before day 1, weeks start on Sunday
    days: list[CalendarDay]
    previous: MonthRef
    next: MonthRef


class CategoryShare(BaseModel):
    name: Category
    count: int
    percent: float


class AuditReport(BaseModel):
    score: int
    total: int
    completed: int
    active: int
    success_rate: int
    headline: str
    categories: list[CategoryShare]
