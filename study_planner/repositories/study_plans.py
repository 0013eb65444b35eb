"""Persistence for study-plan settings and dated plan entries."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import DailyPlanEntryModel, UserCourseSettingsModel
from ..db.session import session_scope
from ..study_plan_models import DailyPlanEntry, EntryStatus, StudyBlock, StudyPlanConfig

logger = logging.getLogger(__name__)


class StudyPlanStore(Protocol):  # pragma: no cover - protocol definition
    def get_config(self, user_id: str, course_id: str) -> StudyPlanConfig | None: ...

    def save_config(self, user_id: str, course_id: str, config: StudyPlanConfig) -> StudyPlanConfig: ...

    def get_phase1_end_week(self, user_id: str, course_id: str) -> Optional[int]: ...

    def replace_entries(
        self,
        user_id: str,
        course_id: str,
        blocks: Iterable[StudyBlock],
        *,
        phase1_end_week: Optional[int] = None,
    ) -> List[DailyPlanEntry]: ...

    def list_entries(
        self,
        user_id: str,
        course_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyPlanEntry]: ...

    def update_entry_status(
        self,
        user_id: str,
        entry_id: str,
        status: EntryStatus,
        *,
        actual_time_spent_seconds: Optional[int] = None,
        course_id: Optional[str] = None,
    ) -> DailyPlanEntry: ...


class StudyPlanRepository:
    """Session-scoped queries; callers own the transaction."""

    def get_config(self, session: Session, user_id: str, course_id: str) -> StudyPlanConfig | None:
        model = self._settings_model(session, user_id, course_id)
        if model is None:
            return None
        return StudyPlanConfig(
            exam_date=model.exam_date,
            study_hours_per_week=model.study_hours_per_week,
            self_rating=model.self_rating,
            preferred_study_days=list(model.preferred_study_days or []),
            plan_created_at=model.plan_created_at,
        )

    def save_config(
        self,
        session: Session,
        user_id: str,
        course_id: str,
        config: StudyPlanConfig,
    ) -> StudyPlanConfig:
        model = self._settings_model(session, user_id, course_id)
        if model is None:
            model = UserCourseSettingsModel(user_id=user_id, course_id=course_id)
            session.add(model)
        model.exam_date = config.exam_date
        model.study_hours_per_week = config.study_hours_per_week
        model.self_rating = config.self_rating
        model.preferred_study_days = list(config.preferred_study_days)
        model.plan_created_at = config.plan_created_at
        session.flush()
        return config

    def get_phase1_end_week(self, session: Session, user_id: str, course_id: str) -> Optional[int]:
        model = self._settings_model(session, user_id, course_id)
        return model.phase1_end_week if model is not None else None

    def replace_entries(
        self,
        session: Session,
        user_id: str,
        course_id: str,
        blocks: Iterable[StudyBlock],
        *,
        phase1_end_week: Optional[int] = None,
    ) -> List[DailyPlanEntry]:
        """Swap the stored plan for ``blocks``, keeping completion of unchanged entries."""
        completed: Dict[Tuple, DailyPlanEntryModel] = {}
        for existing in self._entry_models(session, user_id, course_id):
            if existing.status == "COMPLETED":
                completed.setdefault(_model_identity(existing), existing)
        carried = {
            key: (model.completed_at, model.actual_time_spent_seconds) for key, model in completed.items()
        }

        session.execute(
            delete(DailyPlanEntryModel).where(
                DailyPlanEntryModel.user_id == user_id,
                DailyPlanEntryModel.course_id == course_id,
            )
        )

        models: List[DailyPlanEntryModel] = []
        for block in blocks:
            model = DailyPlanEntryModel(
                user_id=user_id,
                course_id=course_id,
                date=block.date,
                task_type=block.task_type,
                content_kind=block.content_kind,
                target_module_id=block.target_module_id,
                target_content_item_id=block.target_content_item_id,
                target_quiz_id=block.target_quiz_id,
                target_flashcard_ids=list(block.target_flashcard_ids or []),
                target_activity_ids=list(block.target_activity_ids or []),
                estimated_blocks=block.estimated_blocks,
                order=block.order,
                is_off_platform=block.is_off_platform,
                is_placeholder=block.is_placeholder,
                status="PENDING",
            )
            prior = carried.pop(block.identity_key(), None)
            if prior is not None:
                model.status = "COMPLETED"
                model.completed_at, model.actual_time_spent_seconds = prior
            session.add(model)
            models.append(model)

        settings_model = self._settings_model(session, user_id, course_id)
        if settings_model is not None:
            settings_model.phase1_end_week = phase1_end_week
        session.flush()
        return [_to_domain(model) for model in models]

    def list_entries(
        self,
        session: Session,
        user_id: str,
        course_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyPlanEntry]:
        return [_to_domain(model) for model in self._entry_models(session, user_id, course_id, start=start, end=end)]

    def update_entry_status(
        self,
        session: Session,
        user_id: str,
        entry_id: str,
        status: EntryStatus,
        *,
        actual_time_spent_seconds: Optional[int] = None,
        course_id: Optional[str] = None,
    ) -> DailyPlanEntry:
        model = session.get(DailyPlanEntryModel, entry_id)
        if model is None or model.user_id != user_id or (course_id is not None and model.course_id != course_id):
            raise LookupError(f"Plan entry '{entry_id}' was not found.")
        model.status = status
        if status == "COMPLETED":
            model.completed_at = model.completed_at or datetime.now(timezone.utc)
        else:
            model.completed_at = None
        if actual_time_spent_seconds is not None:
            model.actual_time_spent_seconds = actual_time_spent_seconds
        session.flush()
        return _to_domain(model)

    def _settings_model(self, session: Session, user_id: str, course_id: str) -> UserCourseSettingsModel | None:
        stmt = select(UserCourseSettingsModel).where(
            UserCourseSettingsModel.user_id == user_id,
            UserCourseSettingsModel.course_id == course_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _entry_models(
        self,
        session: Session,
        user_id: str,
        course_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyPlanEntryModel]:
        stmt = select(DailyPlanEntryModel).where(
            DailyPlanEntryModel.user_id == user_id,
            DailyPlanEntryModel.course_id == course_id,
        )
        if start is not None:
            stmt = stmt.where(DailyPlanEntryModel.date >= start)
        if end is not None:
            stmt = stmt.where(DailyPlanEntryModel.date <= end)
        stmt = stmt.order_by(DailyPlanEntryModel.date, DailyPlanEntryModel.order)
        return list(session.execute(stmt).scalars())


def _model_identity(model: DailyPlanEntryModel) -> Tuple:
    return (
        model.date,
        model.task_type,
        model.content_kind,
        model.target_module_id,
        model.target_content_item_id,
        model.target_quiz_id,
    )


def _to_domain(model: DailyPlanEntryModel) -> DailyPlanEntry:
    return DailyPlanEntry(
        id=model.id,
        user_id=model.user_id,
        course_id=model.course_id,
        date=model.date,
        task_type=model.task_type,
        content_kind=model.content_kind,
        target_module_id=model.target_module_id,
        target_content_item_id=model.target_content_item_id,
        target_quiz_id=model.target_quiz_id,
        target_flashcard_ids=list(model.target_flashcard_ids or []),
        target_activity_ids=list(model.target_activity_ids or []),
        estimated_blocks=model.estimated_blocks,
        order=model.order,
        is_off_platform=model.is_off_platform,
        is_placeholder=model.is_placeholder,
        status=model.status,
        completed_at=model.completed_at,
        actual_time_spent_seconds=model.actual_time_spent_seconds,
    )


class _DatabaseStudyPlanStore:
    """Wraps :class:`StudyPlanRepository` calls in their own transactions."""

    def __init__(self, repository: StudyPlanRepository) -> None:
        self._repository = repository

    def get_config(self, user_id: str, course_id: str) -> StudyPlanConfig | None:
        with session_scope(commit=False) as session:
            return self._repository.get_config(session, user_id, course_id)

    def save_config(self, user_id: str, course_id: str, config: StudyPlanConfig) -> StudyPlanConfig:
        with session_scope() as session:
            return self._repository.save_config(session, user_id, course_id, config)

    def get_phase1_end_week(self, user_id: str, course_id: str) -> Optional[int]:
        with session_scope(commit=False) as session:
            return self._repository.get_phase1_end_week(session, user_id, course_id)

    def replace_entries(
        self,
        user_id: str,
        course_id: str,
        blocks: Iterable[StudyBlock],
        *,
        phase1_end_week: Optional[int] = None,
    ) -> List[DailyPlanEntry]:
        with session_scope() as session:
            entries = self._repository.replace_entries(
                session,
                user_id,
                course_id,
                blocks,
                phase1_end_week=phase1_end_week,
            )
        logger.info("Stored %d plan entries for user %s in course %s", len(entries), user_id, course_id)
        return entries

    def list_entries(
        self,
        user_id: str,
        course_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyPlanEntry]:
        with session_scope(commit=False) as session:
            return self._repository.list_entries(session, user_id, course_id, start=start, end=end)

    def update_entry_status(
        self,
        user_id: str,
        entry_id: str,
        status: EntryStatus,
        *,
        actual_time_spent_seconds: Optional[int] = None,
        course_id: Optional[str] = None,
    ) -> DailyPlanEntry:
        with session_scope() as session:
            return self._repository.update_entry_status(
                session,
                user_id,
                entry_id,
                status,
                actual_time_spent_seconds=actual_time_spent_seconds,
                course_id=course_id,
            )


study_plan_repository = StudyPlanRepository()
study_plan_store = _DatabaseStudyPlanStore(study_plan_repository)

__all__ = [
    "StudyPlanRepository",
    "StudyPlanStore",
    "study_plan_repository",
    "study_plan_store",
]
