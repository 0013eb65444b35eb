"""Plan generation: phase placement, pacing and persistence hand-off."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, List, Optional

import pytest

from study_planner.content_inventory import build_inventory
from study_planner.plan_calendar import week_number
from study_planner.plan_sequencer import (
    StudyPlanSequencer,
    generate_phase1,
    generate_phase2,
    generate_phase3,
    generate_plan_for_user,
)
from study_planner.study_plan_models import (
    CourseContentInventory,
    DailyPlanEntry,
    MockExamRef,
    ModuleInventory,
    StudyBlock,
    StudyPlanConfig,
)
from study_planner.telemetry import TelemetryEvent, clear_listeners, register_listener

MONDAY = date(2025, 1, 6)
WEEKDAYS = [1, 2, 3, 4, 5]


def _module(index: int, *, videos: int = 1, notes: int = 1, quizzes: int = 1) -> ModuleInventory:
    module_id = f"m{index}"
    return ModuleInventory(
        id=module_id,
        title=f"Module {index}",
        order=index,
        video_item_ids=[f"{module_id}-v{n}" for n in range(videos)],
        note_item_ids=[f"{module_id}-n{n}" for n in range(notes)],
        quiz_ids=[f"{module_id}-q{n}" for n in range(quizzes)],
    )


def _inventory(
    module_count: int,
    *,
    mocks: int = 0,
    videos_enabled: bool = True,
    **content: int,
) -> CourseContentInventory:
    return build_inventory(
        "course-1",
        [_module(index, **content) for index in range(1, module_count + 1)],
        mock_exams=[MockExamRef(id=f"mock{n}", title=f"Mock {n}") for n in range(1, mocks + 1)],
        videos_enabled=videos_enabled,
    )


def _config(weeks: int, hours: int = 10, rating: str = "NOVICE", days: Optional[List[int]] = None) -> StudyPlanConfig:
    return StudyPlanConfig(
        exam_date=MONDAY + timedelta(days=7 * weeks),
        study_hours_per_week=hours,
        self_rating=rating,
        preferred_study_days=days or WEEKDAYS,
        plan_created_at=MONDAY,
    )


def _generate(config: StudyPlanConfig, inventory: CourseContentInventory):
    return StudyPlanSequencer(phase1_buffer_weeks=2).generate(config, inventory, today=MONDAY)


def _by_type(blocks: Iterable[StudyBlock], task_type: str) -> List[StudyBlock]:
    return [block for block in blocks if block.task_type == task_type]


def test_standard_twelve_week_plan() -> None:
    config = _config(weeks=12)
    result = _generate(config, _inventory(10, mocks=2))

    assert result.error is None
    assert result.phase1_end_week == 10
    assert not result.omit_phase1
    assert result.meets_minimum
    assert result.blocks_available == 12 * 20

    learn = _by_type(result.blocks, "LEARN")
    assert {block.target_module_id for block in learn} == {f"m{index}" for index in range(1, 11)}
    assert all(week_number(block.date, MONDAY) <= 10 for block in learn)
    for index in range(1, 11):
        module_weeks = {week_number(block.date, MONDAY) for block in learn if block.target_module_id == f"m{index}"}
        assert module_weeks == {index}

    mocks = [block for block in result.blocks if block.content_kind == "MOCK_EXAM"]
    assert [block.target_quiz_id for block in mocks] == ["mock1", "mock2"]
    assert all(week_number(block.date, MONDAY) == 11 for block in mocks)
    assert all(block.estimated_blocks == 4 for block in mocks)


def test_blocks_are_bounded_and_ordered() -> None:
    config = _config(weeks=12)
    result = _generate(config, _inventory(10, mocks=3))

    assert all(block.date <= config.exam_date for block in result.blocks)
    assert all(1 <= block.estimated_blocks <= 4 for block in result.blocks)
    assert [block.order for block in result.blocks] == list(range(len(result.blocks)))
    dates = [block.date for block in result.blocks]
    assert dates == sorted(dates)


def test_learn_sequence_per_module() -> None:
    result = _generate(_config(weeks=12), _inventory(2, videos=2, notes=1, quizzes=1))
    kinds = [block.content_kind for block in result.blocks if block.target_module_id == "m1"]
    assert kinds == ["QUICK_READ", "VIDEO", "VIDEO", "DEEP_READ", "NOTES", "QUIZ"]
    learn = [block for block in result.blocks if block.target_module_id == "m1"]
    assert sum(block.estimated_blocks for block in learn) >= 4
    assert [block.is_off_platform for block in learn] == [True, False, False, True, False, False]


def test_missing_content_becomes_placeholders() -> None:
    result = _generate(_config(weeks=12), _inventory(1, videos=0, notes=0, quizzes=0))
    learn = _by_type(result.blocks, "LEARN")
    placeholders = [block.content_kind for block in learn if block.is_placeholder]
    assert placeholders == ["VIDEO", "NOTES", "QUIZ"]
    assert sum(block.estimated_blocks for block in learn) == 8


def test_video_disabled_course_skips_video_blocks() -> None:
    result = _generate(_config(weeks=12), _inventory(3, videos_enabled=False, videos=2, notes=0, quizzes=0))
    learn = _by_type(result.blocks, "LEARN")
    assert not [block for block in learn if block.content_kind == "VIDEO"]
    per_module = defaultdict(int)
    for block in learn:
        per_module[block.target_module_id] += block.estimated_blocks
    assert set(per_module.values()) == {6}


def test_short_horizon_omits_learning_and_splits_budget() -> None:
    config = _config(weeks=3, hours=10)
    result = _generate(config, _inventory(5))

    assert result.omit_phase1
    assert result.phase1_end_week is None
    assert not _by_type(result.blocks, "LEARN")
    review = _by_type(result.blocks, "REVIEW")
    practice = _by_type(result.blocks, "PRACTICE")
    assert len(review) == 30
    assert len(practice) == 30


def test_hours_below_floor_are_raised_before_pacing() -> None:
    result = _generate(_config(weeks=12, hours=5), _inventory(4))
    assert any("adjusted to 8" in warning for warning in result.warnings)
    assert result.blocks_available == 12 * 16


def test_insufficient_hours_reports_required_pace() -> None:
    result = _generate(_config(weeks=12, hours=8), _inventory(40))

    assert result.required_hours_per_week == 16
    assert result.suggest_change_exam_date
    assert any("16 hours/week" in warning for warning in result.warnings)
    learn = _by_type(result.blocks, "LEARN")
    assert len({block.target_module_id for block in learn}) == 40
    weekly_review = [block for block in result.blocks if block.task_type == "REVIEW" and week_number(block.date, MONDAY) == 2]
    assert len(weekly_review) == 6


def test_invalid_configuration_returns_error_without_blocks() -> None:
    config = _config(weeks=12).model_copy(update={"exam_date": MONDAY - timedelta(days=1)})
    result = _generate(config, _inventory(3))
    assert result.error
    assert result.blocks == []

    empty = _generate(_config(weeks=12), _inventory(0))
    assert empty.error
    assert empty.blocks == []


def test_phase1_without_weeks_compresses_into_first_week() -> None:
    modules = [_module(index) for index in range(1, 4)]
    blocks = generate_phase1(modules, MONDAY, 0, WEEKDAYS, MONDAY + timedelta(days=30))
    assert {block.target_module_id for block in blocks} == {"m1", "m2", "m3"}
    assert {block.date for block in blocks} == {MONDAY}


def test_phase1_dates_follow_preferred_days() -> None:
    modules = [_module(index) for index in range(1, 3)]
    blocks = generate_phase1(modules, MONDAY, 2, [4], MONDAY + timedelta(days=60))
    assert {block.date for block in blocks if block.target_module_id == "m1"} == {date(2025, 1, 9)}
    assert {block.date for block in blocks if block.target_module_id == "m2"} == {date(2025, 1, 16)}


def test_empty_preferred_days_schedule_on_week_start() -> None:
    config = _config(weeks=12).model_copy(update={"preferred_study_days": []})

    result = _generate(config, _inventory(6, mocks=2))

    assert result.blocks
    assert {(block.date - MONDAY).days % 7 for block in result.blocks} == {0}


def test_phase2_starts_in_week_two_for_long_plans() -> None:
    exam = MONDAY + timedelta(days=7 * 8)
    blocks = generate_phase2(MONDAY, exam, 8, 5, 6, WEEKDAYS)
    assert min(week_number(block.date, MONDAY) for block in blocks) == 2
    week_two = [block for block in blocks if week_number(block.date, MONDAY) == 2]
    assert [block.content_kind for block in week_two].count("FLASHCARDS") == 3
    assert [block.content_kind for block in week_two].count("ACTIVITIES") == 2
    assert all(block.target_flashcard_ids == [] for block in week_two if block.content_kind == "FLASHCARDS")

    short = generate_phase2(MONDAY, MONDAY + timedelta(days=35), 5, 2, 3, WEEKDAYS)
    assert min(week_number(block.date, MONDAY) for block in short) == 1


def test_phase2_drops_sessions_after_the_exam() -> None:
    exam = MONDAY + timedelta(days=15)
    blocks = generate_phase2(MONDAY, exam, 3, 2, 1, [6])
    assert all(block.date <= exam for block in blocks)
    assert {week_number(block.date, MONDAY) for block in blocks} == {1, 2}


def test_phase3_spreads_mocks_between_first_and_last_week() -> None:
    exam = MONDAY + timedelta(days=7 * 12)
    mocks = [MockExamRef(id=f"mock{n}") for n in range(1, 5)]
    blocks = generate_phase3(mocks, MONDAY, exam, 12, 0, 4, WEEKDAYS)
    weeks = [week_number(block.date, MONDAY) for block in blocks if block.content_kind == "MOCK_EXAM"]
    assert weeks == [5, 7, 9, 11]


def test_phase3_without_mocks_only_books_quiz_sessions() -> None:
    exam = MONDAY + timedelta(days=7 * 6)
    blocks = generate_phase3([], MONDAY, exam, 6, 4, 4, WEEKDAYS)
    assert {block.content_kind for block in blocks} == {"QUIZ_SESSION"}
    assert len(blocks) == 8


class _FakeStore:
    def __init__(self, config: Optional[StudyPlanConfig]) -> None:
        self.config = config
        self.replaced: List[StudyBlock] = []
        self.phase1_end_week: Optional[int] = None

    def get_config(self, user_id: str, course_id: str) -> Optional[StudyPlanConfig]:
        return self.config

    def replace_entries(self, user_id, course_id, blocks, *, phase1_end_week=None) -> List[DailyPlanEntry]:
        self.replaced = list(blocks)
        self.phase1_end_week = phase1_end_week
        return [
            DailyPlanEntry(id=f"e{index}", user_id=user_id, course_id=course_id, **block.model_dump())
            for index, block in enumerate(self.replaced)
        ]


class _FakeInventory:
    def __init__(self, inventory: Optional[CourseContentInventory] = None) -> None:
        self.inventory = inventory

    def load(self, course_id: str) -> CourseContentInventory:
        if self.inventory is None:
            raise RuntimeError("content store offline")
        return self.inventory


@pytest.fixture()
def events() -> Iterable[List[TelemetryEvent]]:
    clear_listeners()
    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    yield captured
    clear_listeners()


def test_generate_plan_for_user_persists_and_emits(events: List[TelemetryEvent]) -> None:
    config = StudyPlanConfig(exam_date=MONDAY + timedelta(days=70), study_hours_per_week=10, plan_created_at=MONDAY)
    store = _FakeStore(config)

    result = generate_plan_for_user(
        "student", "course-1", store=store, inventory_source=_FakeInventory(_inventory(4, mocks=1)), today=MONDAY
    )

    assert result.error is None
    assert len(store.replaced) == len(result.blocks)
    assert store.phase1_end_week == result.phase1_end_week == 8
    generation = [event for event in events if event.name == "study_plan_generation"]
    assert generation[-1].payload["status"] == "success"
    assert generation[-1].payload["block_count"] == len(result.blocks)


def test_generate_plan_for_user_rejection_is_not_persisted(events: List[TelemetryEvent]) -> None:
    config = StudyPlanConfig(exam_date=MONDAY, study_hours_per_week=10, plan_created_at=MONDAY)
    store = _FakeStore(config)

    result = generate_plan_for_user(
        "student", "course-1", store=store, inventory_source=_FakeInventory(_inventory(2)), today=MONDAY
    )

    assert result.error
    assert store.replaced == []
    assert events[-1].payload["status"] == "rejected"


def test_generate_plan_for_user_failure_is_reported_and_raised(events: List[TelemetryEvent]) -> None:
    store = _FakeStore(StudyPlanConfig(exam_date=MONDAY + timedelta(days=30), study_hours_per_week=10, plan_created_at=MONDAY))

    with pytest.raises(RuntimeError):
        generate_plan_for_user("student", "course-1", store=store, inventory_source=_FakeInventory())

    assert events[-1].payload["status"] == "error"
    assert events[-1].payload["exception_type"] == "RuntimeError"


def test_generate_plan_for_user_requires_settings() -> None:
    with pytest.raises(LookupError):
        generate_plan_for_user("student", "course-1", store=_FakeStore(None), inventory_source=_FakeInventory())
