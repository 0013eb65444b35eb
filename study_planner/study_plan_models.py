"""Domain models shared by the study-plan scheduler, its stores and its API."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

TaskType = Literal["LEARN", "REVIEW", "PRACTICE"]
SelfRating = Literal["NOVICE", "INTERMEDIATE", "RETAKER"]
EntryStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED"]
WeekPhase = Literal["LEARN", "REVIEW", "PRACTICE", "MIXED"]
LearnStatus = Literal["NOT_STARTED", "IN_PROGRESS", "LEARNED"]
ReviewKind = Literal["FLASHCARDS", "ACTIVITIES"]
ContentKind = Literal[
    "QUICK_READ",
    "VIDEO",
    "DEEP_READ",
    "NOTES",
    "QUIZ",
    "FLASHCARDS",
    "ACTIVITIES",
    "MOCK_EXAM",
    "QUIZ_SESSION",
]

DEFAULT_PREFERRED_DAYS: List[int] = [1, 2, 3, 4, 5]

CalendarDate = date


class ModuleSummary(BaseModel):
    """Identity of a course module as shown in plan views."""

    id: str
    title: str = ""
    order: int = 0


class ModuleInventory(ModuleSummary):
    """Learnable content of one module, read fresh for every plan generation."""

    videos: int = Field(default=0, ge=0)
    notes: int = Field(default=0, ge=0)
    quizzes: int = Field(default=0, ge=0)
    flashcards: int = Field(default=0, ge=0)
    learning_activities: int = Field(default=0, ge=0)
    video_item_ids: List[str] = Field(default_factory=list)
    note_item_ids: List[str] = Field(default_factory=list)
    quiz_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _counts_from_ids(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for count_field, ids_field in (
            ("videos", "video_item_ids"),
            ("notes", "note_item_ids"),
            ("quizzes", "quiz_ids"),
        ):
            if data.get(count_field) is None and data.get(ids_field):
                data[count_field] = len(data[ids_field])
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def estimated_blocks(self) -> int:
        return self.videos * 2 + self.quizzes + self.notes


class MockExamRef(BaseModel):
    id: str
    title: str = "Practice exam"


class CourseContentInventory(BaseModel):
    """Aggregate content counts for a course, in module order."""

    course_id: str
    modules: List[ModuleInventory] = Field(default_factory=list)
    total_flashcards: int = 0
    total_learning_activities: int = 0
    total_question_banks: int = 0
    mock_exams: List[MockExamRef] = Field(default_factory=list)
    videos_enabled: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def mock_exam_count(self) -> int:
        return len(self.mock_exams)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_learn_blocks(self) -> int:
        return sum(module.estimated_blocks for module in self.modules)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def practice_block_estimate(self) -> float:
        return self.mock_exam_count * 4 + self.total_question_banks * 1.5

    @computed_field  # type: ignore[prop-decorator]
    @property
    def minimum_study_time(self) -> int:
        return len(self.modules) * 4 + self.mock_exam_count * 4


class StudyPlanConfig(BaseModel):
    """A student's scheduling inputs. Saving a config replaces the previous one."""

    exam_date: date
    study_hours_per_week: int = Field(ge=0, le=168)
    self_rating: SelfRating = "NOVICE"
    preferred_study_days: List[int] = Field(default_factory=lambda: list(DEFAULT_PREFERRED_DAYS))
    plan_created_at: date = Field(default_factory=lambda: datetime.now(timezone.utc).date())

    @field_validator("exam_date", "plan_created_at", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("preferred_study_days")
    @classmethod
    def _normalize_days(cls, value: List[int]) -> List[int]:
        invalid = [day for day in value if day < 0 or day > 6]
        if invalid:
            raise ValueError(f"Preferred study days must be between 0 and 6, got {invalid}.")
        return sorted(set(value))


class StudyBlock(BaseModel):
    """One generated, not yet persisted, unit of scheduled work."""

    date: CalendarDate
    task_type: TaskType
    content_kind: ContentKind
    target_module_id: Optional[str] = None
    target_content_item_id: Optional[str] = None
    target_quiz_id: Optional[str] = None
    target_flashcard_ids: Optional[List[str]] = None
    target_activity_ids: Optional[List[str]] = None
    estimated_blocks: int = Field(ge=1, le=4)
    order: int = 0
    is_off_platform: bool = False
    is_placeholder: bool = False

    def identity_key(self) -> tuple:
        """Key used to carry completion status across a regeneration."""
        return (
            self.date,
            self.task_type,
            self.content_kind,
            self.target_module_id,
            self.target_content_item_id,
            self.target_quiz_id,
        )


class DailyPlanEntry(StudyBlock):
    """Durable form of a study block with its student-driven status."""

    id: str
    user_id: str
    course_id: str
    status: EntryStatus = "PENDING"
    completed_at: Optional[datetime] = None
    actual_time_spent_seconds: Optional[int] = None


class PlanValidation(BaseModel):
    valid: bool
    omit_phase1: bool = False
    warnings: List[str] = Field(default_factory=list)
    adjusted_hours: Optional[int] = None
    error: Optional[str] = None
    weeks_until_exam: int = 1


class StudyPlanResult(BaseModel):
    blocks: List[StudyBlock] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    minimum_study_time: int = 0
    blocks_available: int = 0
    meets_minimum: bool = False
    omit_phase1: bool = False
    phase1_end_week: Optional[int] = None
    required_hours_per_week: Optional[int] = None
    suggest_change_exam_date: bool = False
    error: Optional[str] = None

    def counts_by_type(self) -> Dict[str, int]:
        counts = {"LEARN": 0, "REVIEW": 0, "PRACTICE": 0}
        for block in self.blocks:
            counts[block.task_type] += 1
        return counts


class WeeklyPlanTask(BaseModel):
    type: TaskType
    description: str
    module_id: Optional[str] = None
    module_title: Optional[str] = None
    module_number: Optional[int] = None
    item_count: Optional[int] = None
    status: EntryStatus = "PENDING"
    is_off_platform: bool = False
    entry_ids: List[str] = Field(default_factory=list)


class WeeklyPlanWeek(BaseModel):
    week_number: int
    week_start_date: date
    week_end_date: date
    tasks: List[WeeklyPlanTask] = Field(default_factory=list)
    phase: WeekPhase = "MIXED"
    estimated_blocks: int = 0
    completed_tasks: int = 0
    total_tasks: int = 0


class ModuleProgress(BaseModel):
    module_id: str
    learn_status: LearnStatus = "NOT_STARTED"
    last_learned_at: Optional[datetime] = None


class QuizAttemptRecord(BaseModel):
    quiz_id: str
    module_id: Optional[str] = None
    score: float
    passing_score: Optional[float] = None
    attempted_at: datetime


class LearnerProgress(BaseModel):
    """Read-only snapshot of what a student has learned and struggled with."""

    user_id: str
    course_id: str
    modules: List[ModuleProgress] = Field(default_factory=list)
    quiz_attempts: List[QuizAttemptRecord] = Field(default_factory=list)
    hard_flashcard_ids: List[str] = Field(default_factory=list)
    hard_activity_ids: List[str] = Field(default_factory=list)

    def learned_module_ids(self) -> set[str]:
        return {entry.module_id for entry in self.modules if entry.learn_status == "LEARNED"}


class ReviewSessionItems(BaseModel):
    kind: ReviewKind
    ordered_ids: List[str] = Field(default_factory=list)
    selected_ids: List[str] = Field(default_factory=list)


class Phase3Access(BaseModel):
    can_access: bool
    learned_modules: int
    total_modules: int
    unlearned_modules: List[ModuleSummary] = Field(default_factory=list)
    message: Optional[str] = None


class BehindScheduleReport(BaseModel):
    is_behind: bool
    warning: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    unlearned_modules: Optional[int] = None


__all__ = [
    "BehindScheduleReport",
    "ContentKind",
    "CourseContentInventory",
    "DailyPlanEntry",
    "DEFAULT_PREFERRED_DAYS",
    "EntryStatus",
    "LearnerProgress",
    "LearnStatus",
    "MockExamRef",
    "ModuleInventory",
    "ModuleProgress",
    "ModuleSummary",
    "Phase3Access",
    "PlanValidation",
    "QuizAttemptRecord",
    "ReviewKind",
    "ReviewSessionItems",
    "SelfRating",
    "StudyBlock",
    "StudyPlanConfig",
    "StudyPlanResult",
    "TaskType",
    "WeekPhase",
    "WeeklyPlanTask",
    "WeeklyPlanWeek",
]
