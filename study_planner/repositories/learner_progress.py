"""Learner progress: learned modules, quiz attempts and smart-review difficulty."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import (
    ContentItemModel,
    CourseModuleModel,
    ModuleProgressModel,
    QuizAttemptModel,
    QuizModel,
    SmartReviewItemModel,
)
from ..db.session import session_scope
from ..study_plan_models import LearnerProgress, ModuleProgress, QuizAttemptRecord


class ProgressSource(Protocol):
    def load(self, user_id: str, course_id: str) -> LearnerProgress:  # pragma: no cover - protocol definition
        ...


class LearnerProgressRepository:
    def load(self, session: Session, user_id: str, course_id: str) -> LearnerProgress:
        return LearnerProgress(
            user_id=user_id,
            course_id=course_id,
            modules=self._module_progress(session, user_id, course_id),
            quiz_attempts=self._quiz_attempts(session, user_id, course_id),
            hard_flashcard_ids=self._hard_items(session, user_id, course_id, SmartReviewItemModel.flashcard_id),
            hard_activity_ids=self._hard_items(session, user_id, course_id, SmartReviewItemModel.activity_id),
        )

    def mark_module_learned(
        self,
        session: Session,
        user_id: str,
        course_id: str,
        module_id: str,
    ) -> ModuleProgress:
        module = session.get(CourseModuleModel, module_id)
        if module is None or module.course_id != course_id:
            raise LookupError(f"Module '{module_id}' was not found in course '{course_id}'.")
        stmt = select(ModuleProgressModel).where(
            ModuleProgressModel.user_id == user_id,
            ModuleProgressModel.module_id == module_id,
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            model = ModuleProgressModel(user_id=user_id, course_id=course_id, module_id=module_id)
            session.add(model)
        model.learn_status = "LEARNED"
        model.last_learned_at = datetime.now(timezone.utc)
        session.flush()
        return ModuleProgress(
            module_id=module_id,
            learn_status="LEARNED",
            last_learned_at=model.last_learned_at,
        )

    def _module_progress(self, session: Session, user_id: str, course_id: str) -> List[ModuleProgress]:
        stmt = select(ModuleProgressModel).where(
            ModuleProgressModel.user_id == user_id,
            ModuleProgressModel.course_id == course_id,
        )
        return [
            ModuleProgress(
                module_id=model.module_id,
                learn_status=model.learn_status,
                last_learned_at=model.last_learned_at,
            )
            for model in session.execute(stmt).scalars()
        ]

    def _quiz_attempts(self, session: Session, user_id: str, course_id: str) -> List[QuizAttemptRecord]:
        stmt = (
            select(QuizAttemptModel, QuizModel.passing_score, ContentItemModel.module_id)
            .join(QuizModel, QuizModel.id == QuizAttemptModel.quiz_id)
            .join(ContentItemModel, ContentItemModel.id == QuizModel.content_item_id)
            .join(CourseModuleModel, CourseModuleModel.id == ContentItemModel.module_id)
            # Module checkpoint quizzes only; mock exams never mark a module as failed.
            .where(
                QuizAttemptModel.user_id == user_id,
                CourseModuleModel.course_id == course_id,
                QuizModel.is_mock_exam.is_(False),
            )
            .order_by(QuizAttemptModel.attempted_at)
        )
        return [
            QuizAttemptRecord(
                quiz_id=attempt.quiz_id,
                module_id=module_id,
                score=attempt.score,
                passing_score=passing_score,
                attempted_at=attempt.attempted_at,
            )
            for attempt, passing_score, module_id in session.execute(stmt)
        ]

    def _hard_items(self, session: Session, user_id: str, course_id: str, column) -> List[str]:
        stmt = (
            select(column)
            .where(
                SmartReviewItemModel.user_id == user_id,
                SmartReviewItemModel.course_id == course_id,
                SmartReviewItemModel.last_difficulty == "HARD",
                column.is_not(None),
            )
            .order_by(SmartReviewItemModel.id)
        )
        seen: set[str] = set()
        ordered: List[str] = []
        for item_id in session.execute(stmt).scalars():
            if item_id not in seen:
                seen.add(item_id)
                ordered.append(item_id)
        return ordered


class _DatabaseProgressSource:
    def __init__(self, repository: LearnerProgressRepository) -> None:
        self._repository = repository

    def load(self, user_id: str, course_id: str) -> LearnerProgress:
        with session_scope(commit=False) as session:
            return self._repository.load(session, user_id, course_id)

    def mark_module_learned(self, user_id: str, course_id: str, module_id: str) -> ModuleProgress:
        with session_scope() as session:
            return self._repository.mark_module_learned(session, user_id, course_id, module_id)


learner_progress_repository = LearnerProgressRepository()
progress_source = _DatabaseProgressSource(learner_progress_repository)

__all__ = [
    "LearnerProgressRepository",
    "ProgressSource",
    "learner_progress_repository",
    "progress_source",
]
