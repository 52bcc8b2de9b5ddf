"""
Streaks, achievement badges and motivational messages shown after task actions.

Two threshold policies live here and must stay separate:
check_achievements fires only when a counter *equals* a threshold (a badge is
awarded once, on the crossing), while get_streak_message and
get_milestone_message pick the highest tier whose threshold is <= the value.
"""
import random
from datetime import datetime, timedelta
from typing import Iterable, Optional

import bucketing
from database import count_completed_db, find_tasks
from models import Achievement, CompletionRewards, Quote, Task, TaskStatus

QUOTES: dict[str, list[Quote]] = {
    "taskCreated": [
        Quote(quote="Every task you create is a step towards your dreams. You're building your future, one task at a time!", author="Your Future Self", category="motivation"),
        Quote(quote="Small steps, big impact. You're a master of consistency and persistence!", author="The Universe", category="consistency"),
        Quote(quote="Your dedication to planning is inspiring. You're creating the life you deserve!", author="Your Inner Guide", category="dedication"),
    ],
    "taskCompleted": [
        Quote(quote="BOOM! Another task conquered! You're absolutely crushing it today!", author="Your Success", category="celebration"),
        Quote(quote="You're a productivity powerhouse! Every completion makes you stronger!", author="Your Power", category="power"),
        Quote(quote="Mission accomplished! You're building unstoppable momentum!", author="Your Momentum", category="momentum"),
    ],
    "taskReset": [
        Quote(quote="Fresh start! You're giving yourself another chance!", author="Your Second Chance", category="fresh_start"),
        Quote(quote="New beginnings! Every reset is growth!", author="Your Growth", category="growth"),
    ],
    "statusChange": [
        Quote(quote="Status updated! You're taking control of your tasks!", author="Your Control", category="control"),
        Quote(quote="Every change is progress! You're moving forward!", author="Your Progress", category="progress"),
    ],
}

# (threshold, message), highest tier last
STREAK_MESSAGES = [
    (3, Quote(quote="3-day streak! You're on fire! Keep this momentum going!", author="Your Fire", category="fire")),
    (7, Quote(quote="7-day streak! You're absolutely unstoppable!", author="Your Unstoppable", category="unstoppable")),
    (30, Quote(quote="30-day streak! You're a diamond in the making!", author="Your Diamond", category="diamond")),
    (100, Quote(quote="100-day streak! You're royalty of consistency!", author="Your Royalty", category="royalty")),
]

MILESTONE_MESSAGES = [
    (10, Quote(quote="10 tasks completed! You're hitting targets like a pro!", author="Your Target", category="target")),
    (50, Quote(quote="50 tasks completed! You're a productivity champion!", author="Your Champion", category="champion")),
    (100, Quote(quote="100 tasks completed! You're absolutely legendary!", author="Your Legend", category="legend")),
    (500, Quote(quote="500 tasks completed! You're the master of your destiny!", author="Your Mastery", category="mastery")),
]

BADGES = {
    "firstTask": Achievement(key="firstTask", name="First Steps", description="Completed your first task", icon="🎯"),
    "streak3": Achievement(key="streak3", name="On Fire", description="3-day completion streak", icon="🔥"),
    "streak7": Achievement(key="streak7", name="Unstoppable", description="7-day completion streak", icon="🌟"),
    "streak30": Achievement(key="streak30", name="Diamond", description="30-day completion streak", icon="💎"),
    "tasks10": Achievement(key="tasks10", name="Target Master", description="Completed 10 tasks", icon="🎯"),
    "tasks50": Achievement(key="tasks50", name="Productivity Champion", description="Completed 50 tasks", icon="🏆"),
    "tasks100": Achievement(key="tasks100", name="Legend", description="Completed 100 tasks", icon="💎"),
    "tasks500": Achievement(key="tasks500", name="Master", description="Completed 500 tasks", icon="👑"),
}

COMPLETION_BADGES = [(1, "firstTask"), (10, "tasks10"), (50, "tasks50"), (100, "tasks100"), (500, "tasks500")]
STREAK_BADGES = [(3, "streak3"), (7, "streak7"), (30, "streak30")]

# Completions older than this cannot extend the streak shown after an action
STREAK_LOOKBACK_DAYS = 30


def get_random_quote(action: str, rng: Optional[random.Random] = None) -> Quote:
    """A quote for the action; unknown actions fall back to the completion quotes."""
    quotes = QUOTES.get(action, QUOTES["taskCompleted"])
    return (rng or random).choice(quotes)


def calculate_streak(tasks: Iterable[Task], now: datetime) -> int:
    """Consecutive days ending today with a completion among `tasks`."""
    days = {task.completed_at.date() for task in tasks if task.completed_at is not None}
    return bucketing.consecutive_days(days, now.date())


def check_achievements(total_completed: int, current_streak: int) -> list[Achievement]:
    """Badges earned exactly now: a threshold must equal the counter, not be exceeded."""
    earned = [BADGES[key] for threshold, key in COMPLETION_BADGES if total_completed == threshold]
    earned += [BADGES[key] for threshold, key in STREAK_BADGES if current_streak == threshold]
    return earned


def _highest_tier(tiers: list[tuple[int, Quote]], value: int) -> Optional[Quote]:
    reached = [message for threshold, message in tiers if value >= threshold]
    return reached[-1] if reached else None


def get_streak_message(streak: int) -> Optional[Quote]:
    return _highest_tier(STREAK_MESSAGES, streak)


def get_milestone_message(task_count: int) -> Optional[Quote]:
    return _highest_tier(MILESTONE_MESSAGES, task_count)


def build_completion_rewards(
    owner_id: str, now: datetime, rng: Optional[random.Random] = None
) -> CompletionRewards:
    """Feedback shown right after the owner completes a task."""
    since = bucketing.start_of_day(now.date() - timedelta(days=STREAK_LOOKBACK_DAYS))
    recent = find_tasks(owner_id, status=TaskStatus.COMPLETED, completed_from=since)
    streak = calculate_streak(recent, now)
    total_completed = count_completed_db(owner_id)
    return CompletionRewards(
        motivational_quote=get_random_quote("taskCompleted", rng),
        streak_message=get_streak_message(streak),
        milestone_message=get_milestone_message(total_completed),
        new_achievements=check_achievements(total_completed, streak),
        current_streak=streak,
    )
