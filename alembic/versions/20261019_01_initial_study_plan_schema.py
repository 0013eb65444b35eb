"""Course content, learner progress and study plan tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_initial_study_plan_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("component_visibility", sa.JSON(), nullable=False),
    )

    op.create_table(
        "course_modules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_course_modules_course_order", "course_modules", ["course_id", "order"])

    op.create_table(
        "content_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_content_items_module", "content_items", ["module_id"])

    op.create_table(
        "quizzes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("content_item_id", sa.String(length=36), sa.ForeignKey("content_items.id", ondelete="SET NULL"), nullable=True),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("is_mock_exam", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("passing_score", sa.Float(), nullable=True),
    )
    op.create_index("ix_quizzes_course_id", "quizzes", ["course_id"])

    op.create_table(
        "flashcards",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("front", sa.Text(), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_flashcards_course", "flashcards", ["course_id"])

    op.create_table(
        "learning_activities",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_learning_activities_module", "learning_activities", ["module_id"])

    op.create_table(
        "question_banks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index("ix_question_banks_course_id", "question_banks", ["course_id"])

    op.create_table(
        "module_progress",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("module_id", sa.String(length=36), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("learn_status", sa.String(length=16), nullable=False, server_default="NOT_STARTED"),
        sa.Column("last_learned_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "module_id", name="uq_module_progress_user_module"),
    )
    op.create_index("ix_module_progress_user_id", "module_progress", ["user_id"])

    op.create_table(
        "quiz_attempts",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("quiz_id", sa.String(length=36), sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("attempted_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_quiz_attempts_user_quiz", "quiz_attempts", ["user_id", "quiz_id"])

    op.create_table(
        "smart_review_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flashcard_id", sa.String(length=36), sa.ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=True),
        sa.Column("activity_id", sa.String(length=36), sa.ForeignKey("learning_activities.id", ondelete="CASCADE"), nullable=True),
        sa.Column("last_difficulty", sa.String(length=16), nullable=True),
    )
    op.create_index("ix_smart_review_items_user_course", "smart_review_items", ["user_id", "course_id"])

    op.create_table(
        "user_course_settings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=False),
        sa.Column("study_hours_per_week", sa.Integer(), nullable=False),
        sa.Column("self_rating", sa.String(length=16), nullable=False),
        sa.Column("preferred_study_days", sa.JSON(), nullable=False),
        sa.Column("plan_created_at", sa.Date(), nullable=False),
        sa.Column("phase1_end_week", sa.Integer(), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_user_course_settings"),
    )

    op.create_table(
        "daily_plan_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("task_type", sa.String(length=16), nullable=False),
        sa.Column("content_kind", sa.String(length=16), nullable=False),
        sa.Column("target_module_id", sa.String(length=36), nullable=True),
        sa.Column("target_content_item_id", sa.String(length=36), nullable=True),
        sa.Column("target_quiz_id", sa.String(length=36), nullable=True),
        sa.Column("target_flashcard_ids", sa.JSON(), nullable=True),
        sa.Column("target_activity_ids", sa.JSON(), nullable=True),
        sa.Column("estimated_blocks", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_off_platform", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_placeholder", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_time_spent_seconds", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_daily_plan_entries_user_course_date",
        "daily_plan_entries",
        ["user_id", "course_id", "date"],
    )


def downgrade() -> None:
    op.drop_index("ix_daily_plan_entries_user_course_date", table_name="daily_plan_entries")
    op.drop_table("daily_plan_entries")
    op.drop_table("user_course_settings")
    op.drop_index("ix_smart_review_items_user_course", table_name="smart_review_items")
    op.drop_table("smart_review_items")
    op.drop_index("ix_quiz_attempts_user_quiz", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("ix_module_progress_user_id", table_name="module_progress")
    op.drop_table("module_progress")
    op.drop_index("ix_question_banks_course_id", table_name="question_banks")
    op.drop_table("question_banks")
    op.drop_index("ix_learning_activities_module", table_name="learning_activities")
    op.drop_table("learning_activities")
    op.drop_index("ix_flashcards_course", table_name="flashcards")
    op.drop_table("flashcards")
    op.drop_index("ix_quizzes_course_id", table_name="quizzes")
    op.drop_table("quizzes")
    op.drop_index("ix_content_items_module", table_name="content_items")
    op.drop_table("content_items")
    op.drop_index("ix_course_modules_course_order", table_name="course_modules")
    op.drop_table("course_modules")
    op.drop_table("courses")
