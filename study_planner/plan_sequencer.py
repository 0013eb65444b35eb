"""Three-phase study plan generation.

Phase 1 walks every module once (learn), Phase 2 books recurring review
sessions, Phase 3 places mock exams and fills the rest of the practice
budget with one-block quiz sessions. The pace calculator decides how the
weekly block budget is split before the phase generators run.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import date
from typing import List, Optional, Sequence

from .config import get_settings
from .content_inventory import (
    DEEP_READ_BLOCKS,
    MOCK_EXAM_BLOCKS,
    NOTE_BLOCKS,
    QUICK_READ_BLOCKS,
    QUIZ_BLOCKS,
    VIDEO_BLOCKS,
    learn_blocks_needed,
)
from .plan_calendar import (
    blocks_per_week,
    clamp_date,
    preferred_date,
    week1_start_date,
    week_end,
    week_start,
    weeks_until_exam,
)
from .plan_validator import validate
from .repositories.course_content import ContentInventorySource, content_inventory_source
from .repositories.study_plans import StudyPlanStore, study_plan_store
from .study_plan_models import (
    CourseContentInventory,
    MockExamRef,
    ModuleInventory,
    StudyBlock,
    StudyPlanConfig,
    StudyPlanResult,
)
from .telemetry import emit_event

logger = logging.getLogger(__name__)

LEARN_SHARE = 0.8
REVIEW_SHARE_WHEN_SHORT = 0.2
PRACTICE_SHARE = 0.4
REVIEW_START_WEEK_THRESHOLD = 6


def _module_learn_blocks(
    module: ModuleInventory,
    day: date,
    videos_enabled: bool,
) -> List[StudyBlock]:
    def _block(kind, blocks, **fields) -> StudyBlock:
        return StudyBlock(
            date=day,
            task_type="LEARN",
            content_kind=kind,
            target_module_id=module.id,
            estimated_blocks=blocks,
            **fields,
        )

    sequence = [_block("QUICK_READ", QUICK_READ_BLOCKS, is_off_platform=True)]
    if videos_enabled:
        if module.video_item_ids:
            sequence.extend(
                _block("VIDEO", VIDEO_BLOCKS, target_content_item_id=item_id) for item_id in module.video_item_ids
            )
        else:
            sequence.append(_block("VIDEO", VIDEO_BLOCKS, is_placeholder=True))
    sequence.append(_block("DEEP_READ", DEEP_READ_BLOCKS, is_off_platform=True))
    if module.note_item_ids:
        sequence.extend(_block("NOTES", NOTE_BLOCKS, target_content_item_id=item_id) for item_id in module.note_item_ids)
    else:
        sequence.append(_block("NOTES", NOTE_BLOCKS, is_placeholder=True))
    if module.quiz_ids:
        sequence.extend(_block("QUIZ", QUIZ_BLOCKS, target_quiz_id=quiz_id) for quiz_id in module.quiz_ids)
    else:
        sequence.append(_block("QUIZ", QUIZ_BLOCKS, is_placeholder=True))
    return sequence


def generate_phase1(
    inventory_modules: Sequence[ModuleInventory],
    week1_start: date,
    phase1_weeks: int,
    preferred_days: Sequence[int],
    exam_date: date,
    videos_enabled: bool = True,
) -> List[StudyBlock]:
    """Schedule the learn pass, a fixed number of modules per week in course order."""
    if not inventory_modules:
        return []
    available_weeks = max(1, phase1_weeks)
    deadline = min(week_end(week1_start, available_weeks), exam_date)
    modules_per_week = math.ceil(len(inventory_modules) / available_weeks)

    blocks: List[StudyBlock] = []
    for index in range(0, len(inventory_modules), modules_per_week):
        week = index // modules_per_week + 1
        day = clamp_date(preferred_date(week_start(week1_start, week), preferred_days), deadline)
        for module in inventory_modules[index : index + modules_per_week]:
            blocks.extend(_module_learn_blocks(module, day, videos_enabled))
    return blocks


def generate_phase2(
    week1_start: date,
    exam_date: date,
    total_weeks: int,
    blocks_per_week: int,
    phase1_end_week: Optional[int],
    preferred_days: Sequence[int],
) -> List[StudyBlock]:
    """Book weekly review sessions. Items are picked when a session is opened."""
    start = 2 if total_weeks >= REVIEW_START_WEEK_THRESHOLD else 1
    flashcard_sessions = math.ceil(blocks_per_week / 2)
    activity_sessions = max(0, blocks_per_week - flashcard_sessions)

    blocks: List[StudyBlock] = []
    for week in range(start, total_weeks + 1):
        day = preferred_date(week_start(week1_start, week), preferred_days)
        if day > exam_date:
            continue
        blocks.extend(
            StudyBlock(date=day, task_type="REVIEW", content_kind="FLASHCARDS", target_flashcard_ids=[], estimated_blocks=1)
            for _ in range(flashcard_sessions)
        )
        blocks.extend(
            StudyBlock(date=day, task_type="REVIEW", content_kind="ACTIVITIES", target_activity_ids=[], estimated_blocks=1)
            for _ in range(activity_sessions)
        )
    return blocks


def _mock_exam_weeks(mock_count: int, first_week: int, last_week: int) -> List[int]:
    if mock_count <= 0:
        return []
    if mock_count == 1:
        return [first_week]
    middle = mock_count - 2
    spacing = (last_week - first_week) // (middle + 1)
    weeks = [first_week]
    weeks.extend(min(first_week + spacing * (i + 1), last_week) for i in range(middle))
    weeks.append(last_week)
    return weeks


def generate_phase3(
    mock_exams: Sequence[MockExamRef],
    week1_start: date,
    exam_date: date,
    total_weeks: int,
    blocks_per_week: int,
    phase1_end_week: Optional[int],
    preferred_days: Sequence[int],
) -> List[StudyBlock]:
    """Place mock exams from the week after Phase 1 to the week before the exam, then fill with quiz sessions."""
    phase1_end = phase1_end_week or 0
    first_week = phase1_end + 1
    last_week = max(first_week, total_weeks - 1)

    blocks: List[StudyBlock] = []
    for mock, week in zip(mock_exams, _mock_exam_weeks(len(mock_exams), first_week, last_week)):
        blocks.append(
            StudyBlock(
                date=clamp_date(week_start(week1_start, week), exam_date),
                task_type="PRACTICE",
                content_kind="MOCK_EXAM",
                target_quiz_id=mock.id,
                estimated_blocks=MOCK_EXAM_BLOCKS,
            )
        )

    practice_weeks = total_weeks - phase1_end
    if practice_weeks <= 0:
        return blocks
    remaining = max(0, blocks_per_week * practice_weeks - MOCK_EXAM_BLOCKS * len(blocks))
    sessions_per_week = remaining // practice_weeks
    for week in range(first_week, total_weeks + 1):
        day = preferred_date(week_start(week1_start, week), preferred_days)
        if day > exam_date:
            continue
        blocks.extend(
            StudyBlock(date=day, task_type="PRACTICE", content_kind="QUIZ_SESSION", estimated_blocks=1)
            for _ in range(sessions_per_week)
        )
    return blocks


class StudyPlanSequencer:
    """Turns a validated configuration and a content inventory into dated study blocks."""

    def __init__(self, phase1_buffer_weeks: Optional[int] = None) -> None:
        self._phase1_buffer_weeks = phase1_buffer_weeks

    @property
    def phase1_buffer_weeks(self) -> int:
        if self._phase1_buffer_weeks is not None:
            return self._phase1_buffer_weeks
        return get_settings().phase1_buffer_weeks

    def generate(
        self,
        config: StudyPlanConfig,
        inventory: CourseContentInventory,
        *,
        today: Optional[date] = None,
    ) -> StudyPlanResult:
        validation = validate(config, len(inventory.modules), today=today)
        if not validation.valid:
            logger.info("Plan rejected for course %s: %s", inventory.course_id, validation.error)
            return StudyPlanResult(warnings=validation.warnings, error=validation.error)

        warnings = list(validation.warnings)
        hours = validation.adjusted_hours or config.study_hours_per_week
        total_weeks = weeks_until_exam(config.exam_date, config.plan_created_at)
        budget = blocks_per_week(hours)
        blocks_available = total_weeks * budget
        week1_start = week1_start_date(config.plan_created_at)
        preferred_days = config.preferred_study_days

        blocks: List[StudyBlock] = []
        phase1_end_week: Optional[int] = None
        required_hours: Optional[int] = None
        suggest_change = False

        if validation.omit_phase1:
            review_budget = budget // 2
            practice_budget = budget - review_budget
            blocks.extend(
                generate_phase2(week1_start, config.exam_date, total_weeks, review_budget, 0, preferred_days)
            )
            blocks.extend(
                generate_phase3(
                    inventory.mock_exams,
                    week1_start,
                    config.exam_date,
                    total_weeks,
                    practice_budget,
                    0,
                    preferred_days,
                )
            )
        else:
            phase1_weeks = total_weeks - self.phase1_buffer_weeks
            learn_budget = max(1, math.floor(budget * LEARN_SHARE))
            review_budget = max(1, budget - learn_budget)
            practice_budget = math.floor(budget * PRACTICE_SHARE)
            needed = learn_blocks_needed(inventory)

            if phase1_weeks <= 0:
                warnings.append("Not enough time to complete Phase 1.")
            elif learn_budget * phase1_weeks < needed:
                required_blocks = math.ceil(needed / phase1_weeks)
                required_hours = math.ceil(required_blocks / 2)
                suggest_change = True
                review_budget = max(1, math.floor(required_hours * 2 * REVIEW_SHARE_WHEN_SHORT))
                warnings.append(f"You need {required_hours} hours/week to complete Phase 1.")
                warnings.append(
                    f"Consider increasing your study hours to {required_hours} hours/week "
                    "or adjusting your exam date."
                )

            phase1_end_week = max(0, phase1_weeks)
            blocks.extend(
                generate_phase1(
                    inventory.modules,
                    week1_start,
                    phase1_weeks,
                    preferred_days,
                    config.exam_date,
                    inventory.videos_enabled,
                )
            )
            blocks.extend(
                generate_phase2(
                    week1_start, config.exam_date, total_weeks, review_budget, phase1_end_week, preferred_days
                )
            )
            blocks.extend(
                generate_phase3(
                    inventory.mock_exams,
                    week1_start,
                    config.exam_date,
                    total_weeks,
                    practice_budget,
                    phase1_end_week,
                    preferred_days,
                )
            )

        for index, block in enumerate(blocks):
            block.order = index
        blocks.sort(key=lambda block: (block.date, block.order))
        for index, block in enumerate(blocks):
            block.order = index

        minimum = inventory.minimum_study_time
        result = StudyPlanResult(
            blocks=blocks,
            warnings=warnings,
            minimum_study_time=minimum,
            blocks_available=blocks_available,
            meets_minimum=blocks_available >= minimum,
            omit_phase1=validation.omit_phase1,
            phase1_end_week=phase1_end_week,
            required_hours_per_week=required_hours,
            suggest_change_exam_date=suggest_change,
        )
        logger.debug(
            "Generated %d blocks over %d weeks for course %s (%s)",
            len(blocks),
            total_weeks,
            inventory.course_id,
            result.counts_by_type(),
        )
        return result


sequencer = StudyPlanSequencer()


def generate_plan_for_user(
    user_id: str,
    course_id: str,
    *,
    store: Optional[StudyPlanStore] = None,
    inventory_source: Optional[ContentInventorySource] = None,
    today: Optional[date] = None,
) -> StudyPlanResult:
    """Regenerate and persist the plan for one student in one course."""
    store = store or study_plan_store
    inventory_source = inventory_source or content_inventory_source
    config = store.get_config(user_id, course_id)
    if config is None:
        raise LookupError(f"No study plan settings for user '{user_id}' in course '{course_id}'.")

    start = time.perf_counter()
    try:
        inventory = inventory_source.load(course_id)
        result = sequencer.generate(config, inventory, today=today)
    except LookupError:
        raise
    except Exception as exc:  # noqa: BLE001
        duration_ms = (time.perf_counter() - start) * 1000.0
        emit_event(
            "study_plan_generation",
            user_id=user_id,
            course_id=course_id,
            status="error",
            duration_ms=round(duration_ms, 2),
            block_count=0,
            error=str(exc),
            exception_type=exc.__class__.__name__,
        )
        logger.exception("Failed to generate study plan for %s in %s", user_id, course_id)
        raise

    if result.error:
        emit_event(
            "study_plan_generation",
            user_id=user_id,
            course_id=course_id,
            status="rejected",
            duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            block_count=0,
            error=result.error,
        )
        return result

    entries = store.replace_entries(user_id, course_id, result.blocks, phase1_end_week=result.phase1_end_week)
    duration_ms = (time.perf_counter() - start) * 1000.0
    counts = result.counts_by_type()
    emit_event(
        "study_plan_generation",
        user_id=user_id,
        course_id=course_id,
        status="success",
        duration_ms=round(duration_ms, 2),
        block_count=len(entries),
        learn_blocks=counts["LEARN"],
        review_blocks=counts["REVIEW"],
        practice_blocks=counts["PRACTICE"],
        carried_completed=sum(1 for entry in entries if entry.status == "COMPLETED"),
        warning_count=len(result.warnings),
        omit_phase1=result.omit_phase1,
        phase1_end_week=result.phase1_end_week,
        meets_minimum=result.meets_minimum,
    )
    return result


__all__ = [
    "StudyPlanSequencer",
    "generate_phase1",
    "generate_phase2",
    "generate_phase3",
    "generate_plan_for_user",
    "sequencer",
]
