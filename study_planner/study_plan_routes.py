"""REST endpoints for study-plan settings, generation and plan views."""

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from .config import get_settings
from .db.session import session_scope
from .plan_health import behind_schedule_for_user, phase3_access_for_user
from .plan_sequencer import generate_plan_for_user
from .plan_validator import validate
from .repositories.course_content import course_content_repository
from .repositories.learner_progress import progress_source
from .repositories.study_plans import study_plan_store
from .review_prioritizer import resolve_review_session
from .study_plan_models import (
    BehindScheduleReport,
    DailyPlanEntry,
    EntryStatus,
    ModuleProgress,
    Phase3Access,
    PlanValidation,
    ReviewKind,
    ReviewSessionItems,
    SelfRating,
    StudyPlanConfig,
    StudyPlanResult,
    WeeklyPlanWeek,
)
from .telemetry import emit_event
from .weekly_aggregator import load_weekly_plan

router = APIRouter(prefix="/api/courses/{course_id}/study-plan", tags=["study-plan"])
logger = logging.getLogger(__name__)


class StudyPlanSettingsRequest(BaseModel):
    exam_date: date
    study_hours_per_week: int = Field(..., ge=0, le=168)
    self_rating: SelfRating = "NOVICE"
    preferred_study_days: Optional[List[int]] = None
    plan_created_at: Optional[date] = None

    def to_config(self) -> StudyPlanConfig:
        payload = self.model_dump(exclude_none=True)
        payload.setdefault("preferred_study_days", get_settings().default_preferred_days)
        return StudyPlanConfig(**payload)


class EntryStatusUpdateRequest(BaseModel):
    status: EntryStatus
    actual_time_spent_seconds: Optional[int] = Field(default=None, ge=0)


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.put("/settings", response_model=PlanValidation, status_code=status.HTTP_200_OK)
def save_settings(
    course_id: str,
    payload: StudyPlanSettingsRequest,
    user_id: str = Query(..., min_length=1),
) -> PlanValidation:
    try:
        config = payload.to_config()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    with session_scope(commit=False) as session:
        if course_content_repository.get_course(session, course_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Course '{course_id}' was not found.",
            )
        module_count = len(course_content_repository.list_modules(session, course_id))
    validation = validate(config, module_count)
    if not validation.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation.error)
    study_plan_store.save_config(user_id, course_id, config)
    return validation


@router.post("/generate", response_model=StudyPlanResult, status_code=status.HTTP_200_OK)
def generate_plan(course_id: str, user_id: str = Query(..., min_length=1)) -> StudyPlanResult:
    try:
        result = generate_plan_for_user(user_id, course_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure generating study plan for %s in %s", user_id, course_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to generate the study plan. Try again shortly.",
        ) from exc
    if result.error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    return result


@router.get("/weekly", response_model=List[WeeklyPlanWeek], status_code=status.HTTP_200_OK)
def get_weekly_plan(course_id: str, user_id: str = Query(..., min_length=1)) -> List[WeeklyPlanWeek]:
    started_at = perf_counter()
    try:
        weeks = load_weekly_plan(user_id, course_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    emit_event(
        "weekly_plan_view",
        user_id=user_id,
        course_id=course_id,
        week_count=len(weeks),
        task_count=sum(week.total_tasks for week in weeks),
        duration_ms=round((perf_counter() - started_at) * 1000.0, 2),
    )
    return weeks


@router.get("/entries", response_model=List[DailyPlanEntry], status_code=status.HTTP_200_OK)
def list_entries(
    course_id: str,
    user_id: str = Query(..., min_length=1),
    start: Optional[date] = Query(default=None, description="First day to include."),
    end: Optional[date] = Query(default=None, description="Last day to include."),
) -> List[DailyPlanEntry]:
    if start is not None and end is not None and end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end must not be before start.")
    return study_plan_store.list_entries(user_id, course_id, start=start, end=end)


@router.patch("/entries/{entry_id}", response_model=DailyPlanEntry, status_code=status.HTTP_200_OK)
def update_entry(
    course_id: str,
    entry_id: str,
    payload: EntryStatusUpdateRequest,
    user_id: str = Query(..., min_length=1),
) -> DailyPlanEntry:
    try:
        entry = study_plan_store.update_entry_status(
            user_id,
            entry_id,
            payload.status,
            actual_time_spent_seconds=payload.actual_time_spent_seconds,
            course_id=course_id,
        )
    except LookupError as exc:
        raise _not_found(exc) from exc
    return entry


@router.get("/review-session", response_model=ReviewSessionItems, status_code=status.HTTP_200_OK)
def get_review_session(
    course_id: str,
    user_id: str = Query(..., min_length=1),
    kind: ReviewKind = Query(..., description="FLASHCARDS or ACTIVITIES."),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
) -> ReviewSessionItems:
    try:
        return resolve_review_session(user_id, course_id, kind, limit)
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.post("/modules/{module_id}/learned", response_model=ModuleProgress, status_code=status.HTTP_200_OK)
def mark_module_learned(
    course_id: str,
    module_id: str,
    user_id: str = Query(..., min_length=1),
) -> ModuleProgress:
    try:
        return progress_source.mark_module_learned(user_id, course_id, module_id)
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.get("/phase3-access", response_model=Phase3Access, status_code=status.HTTP_200_OK)
def get_phase3_access(course_id: str, user_id: str = Query(..., min_length=1)) -> Phase3Access:
    try:
        return phase3_access_for_user(user_id, course_id)
    except LookupError as exc:
        raise _not_found(exc) from exc


@router.get("/behind-schedule", response_model=BehindScheduleReport, status_code=status.HTTP_200_OK)
def get_behind_schedule(course_id: str, user_id: str = Query(..., min_length=1)) -> BehindScheduleReport:
    try:
        return behind_schedule_for_user(user_id, course_id)
    except LookupError as exc:
        raise _not_found(exc) from exc


__all__ = ["router"]
