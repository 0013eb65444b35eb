"""Read-only access to course content, assembled into inventory snapshots."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Protocol, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..content_inventory import build_inventory, videos_enabled_from_visibility
from ..db.models import (
    ContentItemModel,
    CourseModel,
    CourseModuleModel,
    FlashcardModel,
    LearningActivityModel,
    QuestionBankModel,
    QuizModel,
)
from ..db.session import session_scope
from ..study_plan_models import CourseContentInventory, MockExamRef, ModuleInventory, ModuleSummary

logger = logging.getLogger(__name__)


class ContentInventorySource(Protocol):
    def load(self, course_id: str) -> CourseContentInventory:  # pragma: no cover - protocol definition
        ...


class CourseContentRepository:
    """Queries over the course content tables. Every method takes the caller's session."""

    def get_course(self, session: Session, course_id: str) -> CourseModel | None:
        return session.get(CourseModel, course_id)

    def list_modules(self, session: Session, course_id: str) -> List[ModuleSummary]:
        stmt = (
            select(CourseModuleModel)
            .where(CourseModuleModel.course_id == course_id)
            .order_by(CourseModuleModel.order, CourseModuleModel.id)
        )
        return [
            ModuleSummary(id=model.id, title=model.title, order=model.order)
            for model in session.execute(stmt).scalars()
        ]

    def load_module(self, session: Session, summary: ModuleSummary) -> ModuleInventory:
        stmt = (
            select(ContentItemModel, QuizModel)
            .outerjoin(QuizModel, QuizModel.content_item_id == ContentItemModel.id)
            .where(
                ContentItemModel.module_id == summary.id,
                ContentItemModel.content_type.in_(("VIDEO", "NOTE", "QUIZ")),
            )
            .order_by(ContentItemModel.order, ContentItemModel.id)
        )
        video_ids: List[str] = []
        note_ids: List[str] = []
        quiz_ids: List[str] = []
        for item, quiz in session.execute(stmt):
            if item.content_type == "VIDEO":
                video_ids.append(item.id)
            elif item.content_type == "NOTE":
                note_ids.append(item.id)
            elif quiz is not None and not quiz.is_mock_exam:
                quiz_ids.append(quiz.id)

        flashcards = session.execute(
            select(func.count(FlashcardModel.id)).where(FlashcardModel.module_id == summary.id)
        ).scalar_one()
        activities = session.execute(
            select(func.count(LearningActivityModel.id)).where(LearningActivityModel.module_id == summary.id)
        ).scalar_one()

        return ModuleInventory(
            id=summary.id,
            title=summary.title,
            order=summary.order,
            videos=len(video_ids),
            notes=len(note_ids),
            quizzes=len(quiz_ids),
            flashcards=flashcards,
            learning_activities=activities,
            video_item_ids=video_ids,
            note_item_ids=note_ids,
            quiz_ids=quiz_ids,
        )

    def course_totals(self, session: Session, course_id: str) -> Tuple[int, int, int]:
        flashcards = session.execute(
            select(func.count(FlashcardModel.id)).where(FlashcardModel.course_id == course_id)
        ).scalar_one()
        activities = session.execute(
            select(func.count(LearningActivityModel.id))
            .join(CourseModuleModel, CourseModuleModel.id == LearningActivityModel.module_id)
            .where(CourseModuleModel.course_id == course_id)
        ).scalar_one()
        question_banks = session.execute(
            select(func.count(QuestionBankModel.id)).where(QuestionBankModel.course_id == course_id)
        ).scalar_one()
        return flashcards, activities, question_banks

    def list_mock_exams(self, session: Session, course_id: str) -> List[MockExamRef]:
        # Mock exams hang off the course directly or through a module content item.
        stmt = (
            select(QuizModel)
            .outerjoin(ContentItemModel, ContentItemModel.id == QuizModel.content_item_id)
            .outerjoin(CourseModuleModel, CourseModuleModel.id == ContentItemModel.module_id)
            .where(
                QuizModel.is_mock_exam.is_(True),
                or_(QuizModel.course_id == course_id, CourseModuleModel.course_id == course_id),
            )
            .distinct()
            .order_by(QuizModel.created_at, QuizModel.id)
        )
        return [
            MockExamRef(id=model.id, title=model.title or "Practice exam")
            for model in session.execute(stmt).scalars()
        ]

    def quiz_titles(self, session: Session, quiz_ids: List[str]) -> Dict[str, str]:
        if not quiz_ids:
            return {}
        stmt = select(QuizModel.id, QuizModel.title).where(QuizModel.id.in_(quiz_ids))
        return {quiz_id: title for quiz_id, title in session.execute(stmt)}

    def module_flashcard_ids(self, session: Session, course_id: str) -> Tuple[Dict[str, List[str]], List[str]]:
        stmt = (
            select(FlashcardModel.id, FlashcardModel.module_id)
            .outerjoin(CourseModuleModel, CourseModuleModel.id == FlashcardModel.module_id)
            .where(FlashcardModel.course_id == course_id)
            # Course-level cards without a module go last.
            .order_by(
                CourseModuleModel.order.is_(None),
                CourseModuleModel.order,
                FlashcardModel.order,
                FlashcardModel.id,
            )
        )
        return _group_by_module(session.execute(stmt).all())

    def module_activity_ids(self, session: Session, course_id: str) -> Tuple[Dict[str, List[str]], List[str]]:
        stmt = (
            select(LearningActivityModel.id, LearningActivityModel.module_id)
            .join(CourseModuleModel, CourseModuleModel.id == LearningActivityModel.module_id)
            .where(CourseModuleModel.course_id == course_id)
            .order_by(CourseModuleModel.order, LearningActivityModel.order, LearningActivityModel.id)
        )
        return _group_by_module(session.execute(stmt).all())


def _group_by_module(rows) -> Tuple[Dict[str, List[str]], List[str]]:
    grouped: Dict[str, List[str]] = {}
    ordered: List[str] = []
    for item_id, module_id in rows:
        ordered.append(item_id)
        if module_id is not None:
            grouped.setdefault(module_id, []).append(item_id)
    return grouped, ordered


class SqlContentInventorySource:
    """Builds inventories from the database, reading modules concurrently."""

    def __init__(
        self,
        repository: Optional[CourseContentRepository] = None,
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        self._repository = repository or CourseContentRepository()
        self._max_workers = max_workers

    def load(self, course_id: str) -> CourseContentInventory:
        with session_scope(commit=False) as session:
            course = self._repository.get_course(session, course_id)
            if course is None:
                raise LookupError(f"Course '{course_id}' was not found.")
            videos_enabled = videos_enabled_from_visibility(course.component_visibility)
            summaries = self._repository.list_modules(session, course_id)
            flashcards, activities, question_banks = self._repository.course_totals(session, course_id)

        modules = self._load_modules(summaries)
        mock_exams = self._load_mock_exams(course_id)
        return build_inventory(
            course_id,
            modules,
            total_flashcards=flashcards,
            total_learning_activities=activities,
            total_question_banks=question_banks,
            mock_exams=mock_exams,
            videos_enabled=videos_enabled,
        )

    def _load_modules(self, summaries: List[ModuleSummary]) -> List[ModuleInventory]:
        if not summaries:
            return []
        workers = min(self._max_workers or get_settings().inventory_workers, len(summaries))
        loaded: List[ModuleInventory] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_module = {
                executor.submit(self._load_module, summary): summary for summary in summaries
            }
            for future in as_completed(future_to_module):
                loaded.append(future.result())
        return sorted(loaded, key=lambda module: (module.order, module.id))

    def _load_module(self, summary: ModuleSummary) -> ModuleInventory:
        with session_scope(commit=False) as session:
            return self._repository.load_module(session, summary)

    def _load_mock_exams(self, course_id: str) -> List[MockExamRef]:
        try:
            with session_scope(commit=False) as session:
                return self._repository.list_mock_exams(session, course_id)
        except SQLAlchemyError:
            logger.warning("Mock exam lookup failed for course %s; planning without mocks", course_id, exc_info=True)
            return []


course_content_repository = CourseContentRepository()
content_inventory_source = SqlContentInventorySource(course_content_repository)

__all__ = [
    "ContentInventorySource",
    "CourseContentRepository",
    "SqlContentInventorySource",
    "content_inventory_source",
    "course_content_repository",
]
