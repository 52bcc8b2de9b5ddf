from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Declared order doubles as the tie-break order in breakdowns
class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    FINANCE = "finance"
    NEWSHOP = "newshop"
    EDUCATION = "education"
    SHOPPING = "shopping"
    TRAVEL = "travel"
    OTHER = "other"


# Due instant used when a task has no due_time
END_OF_DAY = time(23, 59, 59, 999000)

DUE_TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


class Task(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str = ""
    scheduled_date: date
    due_time: Optional[str] = None  # HH:MM, local time
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    category: Category
    tags: list[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None  # set iff status == completed
    deleted_at: Optional[datetime] = None  # soft delete marker


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    scheduled_date: date
    due_time: Optional[str] = Field(default=None, pattern=DUE_TIME_PATTERN)
    priority: Priority = Priority.MEDIUM
    category: Category
    tags: list[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = Field(default=None, ge=1, le=1440)

    @field_validator("title", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, tags: list[str]) -> list[str]:
        cleaned = [t.strip() for t in tags if t.strip()]
        for tag in cleaned:
            if len(tag) > 50:
                raise ValueError("Tag cannot be more than 50 characters")
        return cleaned


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a spreadsheet does: 0.5 always goes away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def completion_rate(completed: int, total: int) -> float:
    """Percentage of completed tasks, two decimals; 0 for an empty bucket."""
    if total == 0:
        return 0.0
    return round_half_up(completed / total * 100, 2)


def due_instant(task: Task) -> datetime:
    """The moment a task falls due: its date plus due_time, or the end of that day."""
    if task.due_time:
        hours, minutes = task.due_time.split(":")
        return datetime.combine(task.scheduled_date, time(int(hours), int(minutes)))
    return datetime.combine(task.scheduled_date, END_OF_DAY)


def is_overdue(task: Task, now: datetime) -> bool:
    return task.status == TaskStatus.PENDING and now > due_instant(task)


def completion_time_minutes(task: Task) -> Optional[int]:
    """Minutes between creation and completion, None until both are known."""
    if task.completed_at is None or task.created_at is None:
        return None
    elapsed = (task.completed_at - task.created_at) / timedelta(minutes=1)
    return int(round_half_up(elapsed))


# Aggregation results

class CompletionRatePoint(BaseModel):
    date: str
    total: int = 0
    completed: int = 0
    completion_rate: float = 0.0


class WeeklyPoint(BaseModel):
    week: str
    created: int = 0
    completed: int = 0


class MonthlyPoint(BaseModel):
    month: str
    total: int = 0
    completed: int = 0
    completion_rate: float = 0.0


class CategoryBreakdown(BaseModel):
    category: Category
    count: int
    completed: int
    completion_rate: float


class PriorityBreakdown(BaseModel):
    priority: Priority
    count: int
    completed: int
    completion_rate: float


class KPIs(BaseModel):
    current_streak: int = 0
    average_completion_time: int = 0
    overdue_count: int = 0
    monthly_completion_rate: int = 0
    average_tasks_per_day: float = 0.0


class DashboardData(BaseModel):
    completion_rate_trend: list[CompletionRatePoint]
    weekly_data: list[WeeklyPoint]
    category_breakdown: list[CategoryBreakdown]
    priority_breakdown: list[PriorityBreakdown]
    kpis: KPIs


class TodayStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0


class ProductivityInsights(BaseModel):
    best_day: Optional[str] = None
    top_category: Optional[Category] = None


# Reports

class ReportFilters(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[TaskStatus] = None
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    tags: list[str] = Field(default_factory=list)
    include_deleted: bool = False  # soft-deleted tasks only appear when asked for

    @field_validator("status", "category", "priority", mode="before")
    @classmethod
    def _all_means_unfiltered(cls, value):
        if value is None or (isinstance(value, str) and value.strip().lower() in ("", "all")):
            return None
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _blank_date(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [t.strip() for t in value if t and t.strip()]

    @field_validator("include_deleted", mode="before")
    @classmethod
    def _blank_flag(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return False
        return value


class ReportRow(BaseModel):
    task: Task
    is_overdue: bool
    completion_time_minutes: Optional[int] = None


class ReportSummary(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    cancelled: int = 0
    overdue: int = 0
    by_priority: dict[Priority, int] = Field(
        default_factory=lambda: {p: 0 for p in Priority}
    )
    by_category: dict[Category, int] = Field(default_factory=dict)
    average_completion_time: int = 0


# Rewards

class Achievement(BaseModel):
    key: str
    name: str
    description: str
    icon: str


class Quote(BaseModel):
    quote: str
    author: str
    category: str


class CompletionRewards(BaseModel):
    motivational_quote: Quote
    streak_message: Optional[Quote] = None
    milestone_message: Optional[Quote] = None
    new_achievements: list[Achievement] = Field(default_factory=list)
    current_streak: int = 0
