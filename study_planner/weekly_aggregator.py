"""Projection of stored plan entries into a week-by-week checklist."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .db.session import session_scope
from .plan_calendar import display_week_end, display_week_start, week1_start_date, week_number
from .repositories.course_content import CourseContentRepository, course_content_repository
from .repositories.study_plans import StudyPlanStore, study_plan_store
from .study_plan_models import (
    ContentKind,
    DailyPlanEntry,
    EntryStatus,
    ModuleSummary,
    WeeklyPlanTask,
    WeeklyPlanWeek,
    WeekPhase,
)

logger = logging.getLogger(__name__)

DEFAULT_EXAM_TITLE = "Practice exam"

_LEARN_TASKS: tuple[tuple[ContentKind, str, bool], ...] = (
    ("QUICK_READ", "Quick read", True),
    ("VIDEO", "Video", False),
    ("DEEP_READ", "Deep read", True),
    ("NOTES", "Notes", False),
    ("QUIZ", "Quiz", False),
)


def group_status(entries: Sequence[DailyPlanEntry]) -> EntryStatus:
    if entries and all(entry.status == "COMPLETED" for entry in entries):
        return "COMPLETED"
    if any(entry.status == "IN_PROGRESS" for entry in entries):
        return "IN_PROGRESS"
    return "PENDING"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def _learn_tasks(entries: Sequence[DailyPlanEntry], modules: Sequence[ModuleSummary]) -> List[WeeklyPlanTask]:
    by_module: Dict[str, List[DailyPlanEntry]] = {}
    for entry in entries:
        if entry.task_type == "LEARN" and entry.target_module_id:
            by_module.setdefault(entry.target_module_id, []).append(entry)

    tasks: List[WeeklyPlanTask] = []
    for number, module in enumerate(modules, start=1):
        module_entries = by_module.get(module.id)
        if not module_entries:
            continue
        for kind, label, off_platform in _LEARN_TASKS:
            matching = [entry for entry in module_entries if entry.content_kind == kind]
            if not matching:
                continue
            tasks.append(
                WeeklyPlanTask(
                    type="LEARN",
                    description=f"{label} {module.title}".strip(),
                    module_id=module.id,
                    module_title=module.title,
                    module_number=number,
                    status=group_status(matching),
                    is_off_platform=off_platform,
                    entry_ids=[entry.id for entry in matching],
                )
            )
    return tasks


def _review_tasks(entries: Sequence[DailyPlanEntry]) -> List[WeeklyPlanTask]:
    review = [entry for entry in entries if entry.task_type == "REVIEW"]
    if not review:
        return []
    # Flashcard sessions first, so the halves line up with their kinds.
    review.sort(key=lambda entry: entry.content_kind != "FLASHCARDS")
    flashcard_count = math.ceil(len(review) / 2)
    activity_count = len(review) - flashcard_count
    status = group_status(review)

    tasks: List[WeeklyPlanTask] = []
    if flashcard_count:
        tasks.append(
            WeeklyPlanTask(
                type="REVIEW",
                description=_plural(flashcard_count, "flashcard session"),
                item_count=flashcard_count,
                status=status,
                entry_ids=[entry.id for entry in review[:flashcard_count]],
            )
        )
    if activity_count:
        tasks.append(
            WeeklyPlanTask(
                type="REVIEW",
                description=_plural(activity_count, "activity session"),
                item_count=activity_count,
                status=status,
                entry_ids=[entry.id for entry in review[flashcard_count:]],
            )
        )
    return tasks


def _practice_tasks(entries: Sequence[DailyPlanEntry], quiz_titles: Mapping[str, str]) -> List[WeeklyPlanTask]:
    practice = [entry for entry in entries if entry.task_type == "PRACTICE"]
    exams = [entry for entry in practice if entry.content_kind == "MOCK_EXAM"]
    sessions = [entry for entry in practice if entry.content_kind != "MOCK_EXAM"]

    tasks = [
        WeeklyPlanTask(
            type="PRACTICE",
            description=quiz_titles.get(entry.target_quiz_id or "") or DEFAULT_EXAM_TITLE,
            status=entry.status,
            entry_ids=[entry.id],
        )
        for entry in exams
    ]
    if sessions:
        tasks.append(
            WeeklyPlanTask(
                type="PRACTICE",
                description=_plural(len(sessions), "quiz session"),
                item_count=len(sessions),
                status=group_status(sessions),
                entry_ids=[entry.id for entry in sessions],
            )
        )
    return tasks


def _week_phase(*groups: List[WeeklyPlanTask]) -> WeekPhase:
    present = [group[0].type for group in groups if group]
    if len(present) == 1:
        return present[0]
    return "MIXED"


def aggregate(
    daily_entries: Iterable[DailyPlanEntry],
    modules: Sequence[ModuleSummary],
    week1_start: date,
    exam_date: Optional[date] = None,
    phase1_end_week: Optional[int] = None,
    quiz_titles: Optional[Mapping[str, str]] = None,
) -> List[WeeklyPlanWeek]:
    """Group entries into numbered weeks. Learn entries past ``phase1_end_week`` are dropped."""
    titles = quiz_titles or {}
    ordered_modules = sorted(modules, key=lambda module: (module.order, module.id))

    buckets: Dict[int, List[DailyPlanEntry]] = {}
    for entry in sorted(daily_entries, key=lambda item: (item.date, item.order, item.id)):
        number = week_number(entry.date, week1_start)
        if phase1_end_week and entry.task_type == "LEARN" and number > phase1_end_week:
            continue
        buckets.setdefault(number, []).append(entry)

    weeks: List[WeeklyPlanWeek] = []
    for number in sorted(buckets):
        entries = buckets[number]
        learn = _learn_tasks(entries, ordered_modules)
        review = _review_tasks(entries)
        practice = _practice_tasks(entries, titles)
        tasks = learn + review + practice
        end = display_week_end(week1_start, number)
        if exam_date is not None and end > exam_date:
            end = exam_date
        weeks.append(
            WeeklyPlanWeek(
                week_number=number,
                week_start_date=display_week_start(week1_start, number),
                week_end_date=end,
                tasks=tasks,
                phase=_week_phase(learn, review, practice),
                estimated_blocks=sum(entry.estimated_blocks for entry in entries),
                completed_tasks=sum(1 for task in tasks if task.status == "COMPLETED"),
                total_tasks=len(tasks),
            )
        )
    return weeks


def load_weekly_plan(
    user_id: str,
    course_id: str,
    *,
    store: Optional[StudyPlanStore] = None,
    repository: Optional[CourseContentRepository] = None,
) -> List[WeeklyPlanWeek]:
    store = store or study_plan_store
    content = repository or course_content_repository
    config = store.get_config(user_id, course_id)
    if config is None:
        raise LookupError(f"No study plan settings for user '{user_id}' in course '{course_id}'.")
    entries = store.list_entries(user_id, course_id)
    phase1_end_week = store.get_phase1_end_week(user_id, course_id)
    exam_ids = sorted(
        {entry.target_quiz_id for entry in entries if entry.content_kind == "MOCK_EXAM" and entry.target_quiz_id}
    )
    with session_scope(commit=False) as session:
        modules = content.list_modules(session, course_id)
        titles = content.quiz_titles(session, exam_ids)

    weeks = aggregate(
        entries,
        modules,
        week1_start_date(config.plan_created_at),
        exam_date=config.exam_date,
        phase1_end_week=phase1_end_week,
        quiz_titles=titles,
    )
    logger.debug("Weekly view for %s in %s: %d weeks from %d entries", user_id, course_id, len(weeks), len(entries))
    return weeks


__all__ = ["DEFAULT_EXAM_TITLE", "aggregate", "group_status", "load_weekly_plan"]
