"""ORM models for course content, learner progress and persisted study plans."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON
CalendarDate = date


def _uuid() -> str:
    return str(uuid.uuid4())


class CourseModel(TimestampMixin, Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    component_visibility: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    modules: Mapped[list["CourseModuleModel"]] = relationship(
        back_populates="course", cascade="all, delete-orphan", order_by="CourseModuleModel.order"
    )


class CourseModuleModel(TimestampMixin, Base):
    __tablename__ = "course_modules"
    __table_args__ = (Index("ix_course_modules_course_order", "course_id", "order"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    course: Mapped[CourseModel] = relationship(back_populates="modules")
    content_items: Mapped[list["ContentItemModel"]] = relationship(
        back_populates="module", cascade="all, delete-orphan", order_by="ContentItemModel.order"
    )


class ContentItemModel(Base):
    __tablename__ = "content_items"
    __table_args__ = (Index("ix_content_items_module", "module_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False
    )
    content_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    module: Mapped[CourseModuleModel] = relationship(back_populates="content_items")
    quiz: Mapped[Optional["QuizModel"]] = relationship(back_populates="content_item", uselist=False)


class QuizModel(TimestampMixin, Base):
    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    content_item_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("content_items.id", ondelete="SET NULL"), nullable=True
    )
    course_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    is_mock_exam: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    passing_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    content_item: Mapped[Optional[ContentItemModel]] = relationship(back_populates="quiz")


class FlashcardModel(Base):
    __tablename__ = "flashcards"
    __table_args__ = (Index("ix_flashcards_course", "course_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    module_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True
    )
    front: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class LearningActivityModel(Base):
    __tablename__ = "learning_activities"
    __table_args__ = (Index("ix_learning_activities_module", "module_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class QuestionBankModel(Base):
    __tablename__ = "question_banks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)


class ModuleProgressModel(Base):
    __tablename__ = "module_progress"
    __table_args__ = (UniqueConstraint("user_id", "module_id", name="uq_module_progress_user_module"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False
    )
    learn_status: Mapped[str] = mapped_column(String(16), default="NOT_STARTED", nullable=False)
    last_learned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class QuizAttemptModel(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (Index("ix_quiz_attempts_user_quiz", "user_id", "quiz_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quiz_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class SmartReviewItemModel(Base):
    __tablename__ = "smart_review_items"
    __table_args__ = (Index("ix_smart_review_items_user_course", "user_id", "course_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    flashcard_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=True
    )
    activity_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("learning_activities.id", ondelete="CASCADE"), nullable=True
    )
    last_difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)


class UserCourseSettingsModel(TimestampMixin, Base):
    __tablename__ = "user_course_settings"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course_settings"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    study_hours_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    self_rating: Mapped[str] = mapped_column(String(16), nullable=False)
    preferred_study_days: Mapped[list[int]] = mapped_column(JSONType, default=list, nullable=False)
    plan_created_at: Mapped[date] = mapped_column(Date, nullable=False)
    phase1_end_week: Mapped[int | None] = mapped_column(Integer, nullable=True)


class DailyPlanEntryModel(Base):
    __tablename__ = "daily_plan_entries"
    __table_args__ = (
        Index("ix_daily_plan_entries_user_course_date", "user_id", "course_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[CalendarDate] = mapped_column(Date, nullable=False)
    task_type: Mapped[str] = mapped_column(String(16), nullable=False)
    content_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    target_module_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    target_content_item_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    target_quiz_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    target_flashcard_ids: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    target_activity_ids: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    estimated_blocks: Mapped[int] = mapped_column(Integer, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_off_platform: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_placeholder: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)


__all__ = [
    "ContentItemModel",
    "CourseModel",
    "CourseModuleModel",
    "DailyPlanEntryModel",
    "FlashcardModel",
    "LearningActivityModel",
    "ModuleProgressModel",
    "QuestionBankModel",
    "QuizAttemptModel",
    "QuizModel",
    "SmartReviewItemModel",
    "UserCourseSettingsModel",
]
