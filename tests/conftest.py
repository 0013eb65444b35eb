from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Sequence

import pytest
from sqlalchemy.orm import Session

from study_planner.config import get_settings
from study_planner.db.base import Base
from study_planner.db.models import (
    ContentItemModel,
    CourseModel,
    CourseModuleModel,
    FlashcardModel,
    LearningActivityModel,
    QuestionBankModel,
    QuizModel,
)
from study_planner.db.session import dispose_engine, get_engine, session_scope


@pytest.fixture()
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """File-backed SQLite so inventory worker threads share the schema."""
    monkeypatch.setenv("STUDY_PLANNER_DATABASE_URL", f"sqlite:///{tmp_path / 'planner.db'}")
    get_settings.cache_clear()
    dispose_engine()
    Base.metadata.create_all(get_engine())
    yield
    dispose_engine()
    get_settings.cache_clear()


def seed_course(
    course_id: str = "course-1",
    *,
    module_count: int = 3,
    videos: int = 1,
    notes: int = 1,
    quizzes: int = 1,
    flashcards_per_module: int = 0,
    activities_per_module: int = 0,
    mock_exams: Sequence[str] = (),
    question_banks: int = 0,
    videos_enabled: bool = True,
) -> list[str]:
    """Insert a course and return its module ids in course order."""
    created = datetime(2025, 1, 1, tzinfo=timezone.utc)
    module_ids: list[str] = []
    with session_scope() as session:
        session.add(
            CourseModel(
                id=course_id,
                title="Exam prep",
                component_visibility={} if videos_enabled else {"videos": False},
            )
        )
        for index in range(module_count):
            module_id = f"{course_id}-m{index + 1}"
            module_ids.append(module_id)
            session.add(CourseModuleModel(id=module_id, course_id=course_id, title=f"Module {index + 1}", order=index + 1))
            _seed_module_content(session, course_id, module_id, videos, notes, quizzes)
            for card in range(flashcards_per_module):
                session.add(
                    FlashcardModel(id=f"{module_id}-f{card + 1:02d}", course_id=course_id, module_id=module_id, order=card)
                )
            for activity in range(activities_per_module):
                session.add(
                    LearningActivityModel(id=f"{module_id}-a{activity + 1:02d}", module_id=module_id, order=activity)
                )
        for index, title in enumerate(mock_exams):
            session.add(
                QuizModel(
                    id=f"{course_id}-mock{index + 1}",
                    course_id=course_id,
                    title=title,
                    is_mock_exam=True,
                    created_at=created + timedelta(days=index),
                )
            )
        for index in range(question_banks):
            session.add(QuestionBankModel(id=f"{course_id}-bank{index + 1}", course_id=course_id, title="Bank"))
    return module_ids


def _seed_module_content(
    session: Session,
    course_id: str,
    module_id: str,
    videos: int,
    notes: int,
    quizzes: int,
) -> None:
    order = 0
    for index in range(videos):
        session.add(ContentItemModel(id=f"{module_id}-v{index + 1}", module_id=module_id, content_type="VIDEO", order=order))
        order += 1
    for index in range(notes):
        session.add(ContentItemModel(id=f"{module_id}-n{index + 1}", module_id=module_id, content_type="NOTE", order=order))
        order += 1
    for index in range(quizzes):
        item_id = f"{module_id}-q{index + 1}"
        session.add(ContentItemModel(id=item_id, module_id=module_id, content_type="QUIZ", order=order))
        session.add(
            QuizModel(
                id=f"{item_id}-quiz",
                content_item_id=item_id,
                course_id=course_id,
                title=f"Quiz {index + 1}",
                passing_score=70,
            )
        )
        order += 1


@pytest.fixture()
def seed(database: None):
    return seed_course
