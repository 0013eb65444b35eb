"""Progress checks layered on top of a generated plan."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from .db.session import session_scope
from .plan_calendar import blocks_per_week, weeks_until_exam
from .repositories.course_content import (
    ContentInventorySource,
    CourseContentRepository,
    content_inventory_source,
    course_content_repository,
)
from .repositories.learner_progress import ProgressSource, progress_source
from .repositories.study_plans import StudyPlanStore, study_plan_store
from .study_plan_models import (
    BehindScheduleReport,
    CourseContentInventory,
    DailyPlanEntry,
    LearnerProgress,
    ModuleSummary,
    Phase3Access,
    StudyPlanConfig,
)

logger = logging.getLogger(__name__)

PENDING_TODAY_THRESHOLD = 2


def check_phase3_access(modules: Sequence[ModuleSummary], progress: LearnerProgress) -> Phase3Access:
    """Practice opens only once every module is marked learned."""
    learned = progress.learned_module_ids()
    unlearned = [module for module in modules if module.id not in learned]
    message: Optional[str] = None
    if unlearned:
        remaining = ", ".join(f"Module {module.order}: {module.title}" for module in unlearned)
        message = f"You must mark all modules as completed to access Phase 3. Remaining modules: {remaining}"
    return Phase3Access(
        can_access=not unlearned,
        learned_modules=len(learned & {module.id for module in modules}),
        total_modules=len(modules),
        unlearned_modules=unlearned,
        message=message,
    )


def check_behind_schedule(
    config: StudyPlanConfig,
    inventory: CourseContentInventory,
    todays_entries: Sequence[DailyPlanEntry],
    progress: LearnerProgress,
    today: date,
) -> BehindScheduleReport:
    total_weeks = weeks_until_exam(config.exam_date, config.plan_created_at)
    available = total_weeks * blocks_per_week(config.study_hours_per_week)
    minimum = inventory.minimum_study_time

    if available < minimum:
        extra_hours = math.ceil((minimum - available) / 2)
        return BehindScheduleReport(
            is_behind=True,
            warning=f"Not enough study time. Minimum required: {minimum} blocks, available: {available} blocks.",
            suggestions=[
                f"Increase your study hours by {extra_hours} hours per week",
                "Change the scheduled exam date to allow more time",
            ],
        )

    pending = sum(1 for entry in todays_entries if entry.status != "COMPLETED")
    days_left = (config.exam_date - today).days
    if pending > PENDING_TODAY_THRESHOLD and days_left < total_weeks * 7 * 0.5:
        learned = progress.learned_module_ids()
        unlearned = sum(1 for module in inventory.modules if module.id not in learned)
        suggestions = []
        if unlearned:
            suggestions.append(f"Mark {unlearned} module(s) as learned if you have already completed them")
        suggestions.append("Increase your study hours per week")
        suggestions.append("Change the scheduled exam date if necessary")
        return BehindScheduleReport(
            is_behind=True,
            warning=f"You have {pending} pending task(s) today. You are at risk of falling behind.",
            suggestions=suggestions,
            unlearned_modules=unlearned,
        )

    return BehindScheduleReport(is_behind=False)


def phase3_access_for_user(
    user_id: str,
    course_id: str,
    *,
    progress: Optional[ProgressSource] = None,
    repository: Optional[CourseContentRepository] = None,
) -> Phase3Access:
    content = repository or course_content_repository
    with session_scope(commit=False) as session:
        if content.get_course(session, course_id) is None:
            raise LookupError(f"Course '{course_id}' was not found.")
        modules = content.list_modules(session, course_id)
    return check_phase3_access(modules, (progress or progress_source).load(user_id, course_id))


def behind_schedule_for_user(
    user_id: str,
    course_id: str,
    *,
    today: Optional[date] = None,
    store: Optional[StudyPlanStore] = None,
    inventory_source: Optional[ContentInventorySource] = None,
    progress: Optional[ProgressSource] = None,
) -> BehindScheduleReport:
    store = store or study_plan_store
    today = today or datetime.now(timezone.utc).date()
    config = store.get_config(user_id, course_id)
    if config is None:
        raise LookupError(f"No study plan settings for user '{user_id}' in course '{course_id}'.")
    inventory = (inventory_source or content_inventory_source).load(course_id)
    todays_entries = store.list_entries(user_id, course_id, start=today, end=today)
    snapshot = (progress or progress_source).load(user_id, course_id)
    report = check_behind_schedule(config, inventory, todays_entries, snapshot, today)
    if report.is_behind:
        logger.info("User %s is behind schedule in course %s", user_id, course_id)
    return report


__all__ = [
    "behind_schedule_for_user",
    "check_behind_schedule",
    "check_phase3_access",
    "phase3_access_for_user",
]
