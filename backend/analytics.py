"""
Dashboard aggregation: trends, breakdowns, streaks and KPIs over one owner's tasks.

Every function receives the reference time `now` from its caller, so results
only depend on the store contents and that instant. Soft-deleted tasks never
contribute.
"""
import asyncio
import logging
from collections import Counter, defaultdict
from datetime import datetime
from enum import Enum
from typing import Type

import bucketing
import config
from bucketing import Granularity
from database import find_tasks
from models import (
    Category,
    CategoryBreakdown,
    CompletionRatePoint,
    DashboardData,
    KPIs,
    MonthlyPoint,
    Priority,
    PriorityBreakdown,
    ProductivityInsights,
    Task,
    TaskStatus,
    TodayStats,
    WeeklyPoint,
    completion_rate,
    completion_time_minutes,
    is_overdue,
    round_half_up,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _scheduled_in_days(owner_id: str, now: datetime, days: int) -> list[Task]:
    start, end = bucketing.day_window(now, days)
    return find_tasks(owner_id, scheduled_from=start.date(), scheduled_to=end.date())


def get_completion_rate_trend(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> list[CompletionRatePoint]:
    """One point per calendar day of the window, oldest first, bucketed by scheduled_date."""
    keys = bucketing.day_keys(now, days)
    totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for task in _scheduled_in_days(owner_id, now, days):
        bucket = totals[bucketing.bucket_key(task.scheduled_date, Granularity.DAY)]
        bucket[0] += 1
        if task.status == TaskStatus.COMPLETED:
            bucket[1] += 1

    trend = []
    for key in keys:
        total, completed = totals.get(key, (0, 0))
        trend.append(CompletionRatePoint(
            date=key,
            total=total,
            completed=completed,
            completion_rate=completion_rate(completed, total),
        ))
    return trend


def get_weekly_created_vs_completed(
    owner_id: str, now: datetime, weeks: int = config.DEFAULT_TREND_WEEKS
) -> list[WeeklyPoint]:
    """
    Per ISO week: tasks created that week and tasks completed that week.
    The two counts are bucketed independently, so one task may land in
    different weeks for each.
    """
    keys = bucketing.week_keys(now, weeks)
    start, end = bucketing.week_window(now, weeks)

    created = Counter(
        bucketing.bucket_key(task.created_at, Granularity.WEEK)
        for task in find_tasks(owner_id, created_from=start, created_to=end)
    )
    completed = Counter(
        bucketing.bucket_key(task.completed_at, Granularity.WEEK)
        for task in find_tasks(
            owner_id, status=TaskStatus.COMPLETED, completed_from=start, completed_to=end
        )
        if task.completed_at is not None
    )
    return [WeeklyPoint(week=key, created=created[key], completed=completed[key]) for key in keys]


def _breakdown(tasks: list[Task], attribute: str, enum_cls: Type[Enum]) -> list[tuple]:
    counts: Counter = Counter()
    done: Counter = Counter()
    for task in tasks:
        value = getattr(task, attribute)
        counts[value] += 1
        if task.status == TaskStatus.COMPLETED:
            done[value] += 1

    declared = list(enum_cls)
    ordered = sorted(counts, key=lambda member: (-counts[member], declared.index(member)))
    return [
        (member, counts[member], done[member], completion_rate(done[member], counts[member]))
        for member in ordered
    ]


def get_category_breakdown(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> list[CategoryBreakdown]:
    """Categories present in the window, most frequent first, ties in declared order."""
    tasks = _scheduled_in_days(owner_id, now, days)
    return [
        CategoryBreakdown(category=member, count=count, completed=completed, completion_rate=rate)
        for member, count, completed, rate in _breakdown(tasks, "category", Category)
    ]


def get_priority_breakdown(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> list[PriorityBreakdown]:
    tasks = _scheduled_in_days(owner_id, now, days)
    return [
        PriorityBreakdown(priority=member, count=count, completed=completed, completion_rate=rate)
        for member, count, completed, rate in _breakdown(tasks, "priority", Priority)
    ]


def get_current_streak(owner_id: str, now: datetime) -> int:
    """Consecutive days, walking back from today, with at least one completion."""
    today = now.date()
    completed = find_tasks(
        owner_id,
        status=TaskStatus.COMPLETED,
        completed_to=bucketing.end_of_day(today),
    )
    days = {task.completed_at.date() for task in completed if task.completed_at is not None}
    return bucketing.consecutive_days(days, today)


def get_average_completion_time(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> int:
    """Mean minutes from creation to completion for tasks completed in the window."""
    start, end = bucketing.day_window(now, days)
    durations = [
        minutes
        for minutes in (
            completion_time_minutes(task)
            for task in find_tasks(
                owner_id, status=TaskStatus.COMPLETED, completed_from=start, completed_to=end
            )
        )
        if minutes is not None
    ]
    if not durations:
        return 0
    return int(round_half_up(sum(durations) / len(durations)))


def get_overdue_tasks_count(owner_id: str, now: datetime) -> int:
    pending = find_tasks(owner_id, status=TaskStatus.PENDING, scheduled_to=now.date())
    return sum(1 for task in pending if is_overdue(task, now))


def get_monthly_completion_rate(owner_id: str, now: datetime) -> int:
    """Whole-percent completion rate of tasks scheduled in the current calendar month."""
    start, end = bucketing.month_window(now, 1)
    tasks = find_tasks(owner_id, scheduled_from=start.date(), scheduled_to=end.date())
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    return int(round_half_up(completion_rate(completed, len(tasks))))


def get_average_tasks_per_day(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> float:
    # Averaged over the days that have tasks; empty days are not counted
    per_day = Counter(task.scheduled_date for task in _scheduled_in_days(owner_id, now, days))
    if not per_day:
        return 0.0
    return round_half_up(sum(per_day.values()) / len(per_day), 1)


def get_monthly_trend(
    owner_id: str, now: datetime, months: int = config.DEFAULT_TREND_MONTHS
) -> list[MonthlyPoint]:
    keys = bucketing.month_keys(now, months)
    start, end = bucketing.month_window(now, months)
    totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for task in find_tasks(owner_id, scheduled_from=start.date(), scheduled_to=end.date()):
        bucket = totals[bucketing.bucket_key(task.scheduled_date, Granularity.MONTH)]
        bucket[0] += 1
        if task.status == TaskStatus.COMPLETED:
            bucket[1] += 1
    trend = []
    for key in keys:
        total, completed = totals.get(key, (0, 0))
        trend.append(MonthlyPoint(
            month=key,
            total=total,
            completed=completed,
            completion_rate=completion_rate(completed, total),
        ))
    return trend


def get_today_stats(owner_id: str, now: datetime) -> TodayStats:
    today = now.date()
    tasks = find_tasks(owner_id, scheduled_from=today, scheduled_to=today)
    return TodayStats(
        total=len(tasks),
        completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
        pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
        overdue=sum(1 for t in tasks if is_overdue(t, now)),
    )


def get_productivity_score(owner_id: str, now: datetime) -> int:
    """
    Today's completion rate, plus 10 when every task of the day is done,
    minus 5 per overdue task (any day), clamped to 0..100.
    """
    stats = get_today_stats(owner_id, now)
    score = completion_rate(stats.completed, stats.total)
    if stats.total > 0 and stats.completed == stats.total:
        score += 10
    score = max(0.0, score - get_overdue_tasks_count(owner_id, now) * 5)
    return int(round_half_up(min(100.0, score)))


def get_productivity_insights(
    owner_id: str, now: datetime, days: int = config.DEFAULT_TREND_DAYS
) -> ProductivityInsights:
    """Weekday and category with the most completed tasks scheduled in the window."""
    completed = [
        task for task in _scheduled_in_days(owner_id, now, days)
        if task.status == TaskStatus.COMPLETED
    ]
    if not completed:
        return ProductivityInsights()

    by_weekday = Counter(task.scheduled_date.weekday() for task in completed)
    best_weekday = min(by_weekday, key=lambda d: (-by_weekday[d], d))
    categories = _breakdown(completed, "category", Category)
    return ProductivityInsights(
        best_day=WEEKDAY_NAMES[best_weekday],
        top_category=categories[0][0],
    )


def get_kpis(owner_id: str, now: datetime) -> KPIs:
    return KPIs(
        current_streak=get_current_streak(owner_id, now),
        average_completion_time=get_average_completion_time(owner_id, now),
        overdue_count=get_overdue_tasks_count(owner_id, now),
        monthly_completion_rate=get_monthly_completion_rate(owner_id, now),
        average_tasks_per_day=get_average_tasks_per_day(owner_id, now),
    )


async def get_kpis_async(owner_id: str, now: datetime) -> KPIs:
    """KPIs with every sub-query run concurrently in worker threads."""
    (
        current_streak,
        average_completion_time,
        overdue_count,
        monthly_completion_rate,
        average_tasks_per_day,
    ) = await asyncio.gather(
        asyncio.to_thread(get_current_streak, owner_id, now),
        asyncio.to_thread(get_average_completion_time, owner_id, now),
        asyncio.to_thread(get_overdue_tasks_count, owner_id, now),
        asyncio.to_thread(get_monthly_completion_rate, owner_id, now),
        asyncio.to_thread(get_average_tasks_per_day, owner_id, now),
    )
    return KPIs(
        current_streak=current_streak,
        average_completion_time=average_completion_time,
        overdue_count=overdue_count,
        monthly_completion_rate=monthly_completion_rate,
        average_tasks_per_day=average_tasks_per_day,
    )


async def get_dashboard_data(owner_id: str, now: datetime) -> DashboardData:
    """
    Every dashboard metric computed concurrently and merged once all finish.
    A failing sub-query fails the whole request; no partial data is returned.
    """
    logger.debug("Building dashboard for owner %s at %s", owner_id, now.isoformat())
    trend, weekly, categories, priorities, kpis = await asyncio.gather(
        asyncio.to_thread(get_completion_rate_trend, owner_id, now),
        asyncio.to_thread(get_weekly_created_vs_completed, owner_id, now),
        asyncio.to_thread(get_category_breakdown, owner_id, now),
        asyncio.to_thread(get_priority_breakdown, owner_id, now),
        get_kpis_async(owner_id, now),
    )
    return DashboardData(
        completion_rate_trend=trend,
        weekly_data=weekly,
        category_breakdown=categories,
        priority_breakdown=priorities,
        kpis=kpis,
    )
