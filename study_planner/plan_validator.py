"""Front-loaded, side-effect free validation of a student's plan settings."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from .plan_calendar import weeks_until_exam
from .study_plan_models import PlanValidation, SelfRating, StudyPlanConfig

logger = logging.getLogger(__name__)

MIN_WEEKS_FOR_PHASE1 = 4
LONG_HORIZON_WEEKS = 15
MINIMUM_HOURS_BY_RATING: Dict[str, int] = {
    "NOVICE": 8,
    "INTERMEDIATE": 7,
    "RETAKER": 8,
}

PAST_EXAM_ERROR = "The exam date must be in the future. Please select another date."
NO_MODULES_ERROR = "This course has no modules to schedule."


def minimum_hours(self_rating: SelfRating) -> int:
    return MINIMUM_HOURS_BY_RATING.get(self_rating, 8)


def validate(
    config: StudyPlanConfig,
    module_count: int,
    *,
    today: Optional[date] = None,
) -> PlanValidation:
    """Decide whether ``config`` can be scheduled and collect every warning."""
    today = today or datetime.now(timezone.utc).date()
    weeks = weeks_until_exam(config.exam_date, config.plan_created_at)

    if config.exam_date <= today:
        return PlanValidation(valid=False, error=PAST_EXAM_ERROR, weeks_until_exam=weeks)
    if module_count <= 0:
        return PlanValidation(valid=False, error=NO_MODULES_ERROR, weeks_until_exam=weeks)

    warnings: List[str] = []
    omit_phase1 = weeks < MIN_WEEKS_FOR_PHASE1
    if omit_phase1:
        warnings.append(
            f"Less than {MIN_WEEKS_FOR_PHASE1} weeks before the exam. Phase 1 omitted. "
            "The plan will be divided equally between Phase 2 and Phase 3."
        )

    adjusted_hours: Optional[int] = None
    floor = minimum_hours(config.self_rating)
    if config.study_hours_per_week < floor:
        adjusted_hours = floor
        warnings.append(
            f"Minimum {floor} hours/week required for {config.self_rating}. "
            f"The hours have been adjusted to {floor}."
        )

    if weeks > LONG_HORIZON_WEEKS:
        warnings.append(
            "Consider 8 to 12 weeks for best results. You can change your exam date "
            "or continue with the current date."
        )

    if warnings:
        logger.debug("Plan validation produced %d warning(s) for %d week horizon", len(warnings), weeks)

    return PlanValidation(
        valid=True,
        omit_phase1=omit_phase1,
        warnings=warnings,
        adjusted_hours=adjusted_hours,
        weeks_until_exam=weeks,
    )


__all__ = ["MINIMUM_HOURS_BY_RATING", "minimum_hours", "validate"]
