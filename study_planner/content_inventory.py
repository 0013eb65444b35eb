"""Block costs of course content and helpers for assembling an inventory snapshot."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .study_plan_models import CourseContentInventory, MockExamRef, ModuleInventory

logger = logging.getLogger(__name__)

QUICK_READ_BLOCKS = 1
VIDEO_BLOCKS = 2
DEEP_READ_BLOCKS = 3
NOTE_BLOCKS = 1
QUIZ_BLOCKS = 1
MOCK_EXAM_BLOCKS = 4


def module_learn_blocks(module: ModuleInventory, *, videos_enabled: bool = True) -> int:
    """Blocks Phase 1 spends on ``module``, placeholders included."""
    total = QUICK_READ_BLOCKS + DEEP_READ_BLOCKS
    if videos_enabled:
        total += VIDEO_BLOCKS * max(1, module.videos)
    total += NOTE_BLOCKS * max(1, module.notes)
    total += QUIZ_BLOCKS * max(1, module.quizzes)
    return total


def learn_blocks_needed(inventory: CourseContentInventory) -> int:
    return sum(
        module_learn_blocks(module, videos_enabled=inventory.videos_enabled)
        for module in inventory.modules
    )


def videos_enabled_from_visibility(visibility: Optional[Dict[str, object]]) -> bool:
    """Videos are shown unless the course explicitly hides them."""
    if not visibility:
        return True
    return visibility.get("videos") is not False


def build_inventory(
    course_id: str,
    modules: Iterable[ModuleInventory],
    *,
    total_flashcards: int = 0,
    total_learning_activities: int = 0,
    total_question_banks: int = 0,
    mock_exams: Sequence[MockExamRef] = (),
    videos_enabled: bool = True,
) -> CourseContentInventory:
    ordered: List[ModuleInventory] = sorted(modules, key=lambda module: module.order)
    inventory = CourseContentInventory(
        course_id=course_id,
        modules=ordered,
        total_flashcards=total_flashcards,
        total_learning_activities=total_learning_activities,
        total_question_banks=total_question_banks,
        mock_exams=list(mock_exams),
        videos_enabled=videos_enabled,
    )
    logger.debug(
        "Inventory for course %s: %d modules, %d learn blocks, %d mock exams",
        course_id,
        len(ordered),
        inventory.total_learn_blocks,
        inventory.mock_exam_count,
    )
    return inventory


__all__ = [
    "DEEP_READ_BLOCKS",
    "MOCK_EXAM_BLOCKS",
    "NOTE_BLOCKS",
    "QUICK_READ_BLOCKS",
    "QUIZ_BLOCKS",
    "VIDEO_BLOCKS",
    "build_inventory",
    "learn_blocks_needed",
    "module_learn_blocks",
    "videos_enabled_from_visibility",
]
