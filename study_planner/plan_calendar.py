"""Week arithmetic shared by the plan generators and the weekly view.

Weekday integers follow the 0 = Sunday .. 6 = Saturday convention used by
stored preferences; ``date.weekday()`` values are converted at the edges.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Iterable, Optional

BLOCK_MINUTES = 30
DAYS_PER_WEEK = 7
SUNDAY = 0


def weeks_until_exam(exam_date: date, plan_created_at: date) -> int:
    """Count plan weeks, the partial last one included. Never below 1."""
    days = (exam_date - plan_created_at).days
    return max(1, math.ceil(days / DAYS_PER_WEEK))


def blocks_per_week(study_hours_per_week: int) -> int:
    return int(study_hours_per_week) * 60 // BLOCK_MINUTES


def week1_start_date(plan_created_at: date) -> date:
    """Week 1 begins on the day the plan is created."""
    return plan_created_at


def week_start(week1_start: date, week_number: int) -> date:
    return week1_start + timedelta(days=(week_number - 1) * DAYS_PER_WEEK)


def week_end(week1_start: date, week_number: int) -> date:
    return week_start(week1_start, week_number) + timedelta(days=DAYS_PER_WEEK - 1)


def weekday_index(day: date) -> int:
    return (day.weekday() + 1) % DAYS_PER_WEEK


def preferred_date(start: date, preferred_days: Iterable[int]) -> date:
    """First day of the 7-day window starting at ``start`` on a preferred weekday."""
    preferred = set(preferred_days)
    for offset in range(DAYS_PER_WEEK):
        candidate = start + timedelta(days=offset)
        if weekday_index(candidate) in preferred:
            return candidate
    return start


def week_number(day: date, week1_start: date) -> int:
    return max(1, (day - week1_start).days // DAYS_PER_WEEK + 1)


def display_week_start(week1_start: date, number: int) -> date:
    """Week 1 starts on plan creation; later weeks start on Mondays."""
    if number <= 1:
        return week1_start
    first_monday = display_week_end(week1_start, 1) + timedelta(days=1)
    return first_monday + timedelta(days=(number - 2) * DAYS_PER_WEEK)


def display_week_end(week1_start: date, number: int) -> date:
    """Week 1 ends on the first Sunday on or after plan creation; later weeks on Sundays."""
    if number <= 1:
        current = weekday_index(week1_start)
        days_to_sunday = 0 if current == SUNDAY else DAYS_PER_WEEK - current
        return week1_start + timedelta(days=days_to_sunday)
    return display_week_start(week1_start, number) + timedelta(days=DAYS_PER_WEEK - 1)


def clamp_date(day: date, upper: Optional[date]) -> date:
    if upper is not None and day > upper:
        return upper
    return day


__all__ = [
    "BLOCK_MINUTES",
    "blocks_per_week",
    "clamp_date",
    "display_week_end",
    "display_week_start",
    "preferred_date",
    "week1_start_date",
    "week_end",
    "week_number",
    "week_start",
    "weekday_index",
    "weeks_until_exam",
]
