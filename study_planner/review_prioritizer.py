"""Ordering of flashcards and learning activities for review sessions.

Review blocks are generated with empty item lists. When a student opens one,
the items are ranked here against the progress recorded up to that moment:

1. a minimum slice of every learned module (10 flashcards, 5 activities);
2. items the student last rated ``HARD``;
3. activities only: every activity of a module whose latest quiz attempt failed;
4. everything else, in course order.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from .config import get_settings
from .db.session import session_scope
from .repositories.course_content import CourseContentRepository, course_content_repository
from .repositories.learner_progress import ProgressSource, progress_source
from .study_plan_models import LearnerProgress, QuizAttemptRecord, ReviewKind, ReviewSessionItems

logger = logging.getLogger(__name__)

MIN_FLASHCARDS_PER_MODULE = 10
MIN_ACTIVITIES_PER_MODULE = 5
DEFAULT_PASSING_SCORE = 70.0


class _HasId(Protocol):
    id: str


class _OrderedIds:
    """Insertion-ordered id list that ignores duplicates."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self.items: List[str] = []

    def extend(self, ids: Iterable[str]) -> None:
        for item_id in ids:
            if item_id not in self._seen:
                self._seen.add(item_id)
                self.items.append(item_id)


def failed_quiz_module_ids(attempts: Iterable[QuizAttemptRecord]) -> set[str]:
    """Modules whose most recent attempt on any of their quizzes is below the passing score."""
    latest: Dict[str, QuizAttemptRecord] = {}
    for attempt in attempts:
        current = latest.get(attempt.quiz_id)
        if current is None or attempt.attempted_at >= current.attempted_at:
            latest[attempt.quiz_id] = attempt
    failed: set[str] = set()
    for attempt in latest.values():
        passing = attempt.passing_score if attempt.passing_score is not None else DEFAULT_PASSING_SCORE
        if attempt.module_id and attempt.score < passing:
            failed.add(attempt.module_id)
    return failed


def _minimum_coverage(
    ordered: _OrderedIds,
    learned_modules: Sequence[_HasId],
    module_items: Mapping[str, Sequence[str]],
    per_module: int,
) -> None:
    for module in learned_modules:
        ordered.extend(list(module_items.get(module.id, ()))[:per_module])


def prioritize_flashcards(
    progress: LearnerProgress,
    learned_modules: Sequence[_HasId],
    module_flashcards: Mapping[str, Sequence[str]],
    all_flashcard_ids: Sequence[str],
) -> List[str]:
    ordered = _OrderedIds()
    _minimum_coverage(ordered, learned_modules, module_flashcards, MIN_FLASHCARDS_PER_MODULE)
    known = set(all_flashcard_ids)
    ordered.extend(item_id for item_id in progress.hard_flashcard_ids if item_id in known)
    ordered.extend(all_flashcard_ids)
    return ordered.items


def prioritize_activities(
    progress: LearnerProgress,
    learned_modules: Sequence[_HasId],
    module_activities: Mapping[str, Sequence[str]],
    all_activity_ids: Sequence[str],
) -> List[str]:
    ordered = _OrderedIds()
    _minimum_coverage(ordered, learned_modules, module_activities, MIN_ACTIVITIES_PER_MODULE)
    known = set(all_activity_ids)
    ordered.extend(item_id for item_id in progress.hard_activity_ids if item_id in known)
    failed = failed_quiz_module_ids(progress.quiz_attempts)
    for module_id, activity_ids in module_activities.items():
        if module_id in failed:
            ordered.extend(activity_ids)
    ordered.extend(all_activity_ids)
    return ordered.items


def resolve_review_session(
    user_id: str,
    course_id: str,
    kind: ReviewKind,
    limit: Optional[int] = None,
    *,
    progress: Optional[ProgressSource] = None,
    repository: Optional[CourseContentRepository] = None,
) -> ReviewSessionItems:
    """Rank the items for a review slot using current progress and course content."""
    progress_reader = progress or progress_source
    content = repository or course_content_repository
    limit = limit if limit is not None else get_settings().review_session_size

    with session_scope(commit=False) as session:
        if content.get_course(session, course_id) is None:
            raise LookupError(f"Course '{course_id}' was not found.")
        modules = content.list_modules(session, course_id)
        if kind == "FLASHCARDS":
            module_items, all_ids = content.module_flashcard_ids(session, course_id)
        else:
            module_items, all_ids = content.module_activity_ids(session, course_id)

    snapshot = progress_reader.load(user_id, course_id)
    learned_ids = snapshot.learned_module_ids()
    learned_modules = [module for module in modules if module.id in learned_ids]
    # Course order, so tier 3 follows module order.
    module_items = {module.id: module_items.get(module.id, []) for module in modules}

    if kind == "FLASHCARDS":
        ordered = prioritize_flashcards(snapshot, learned_modules, module_items, all_ids)
    else:
        ordered = prioritize_activities(snapshot, learned_modules, module_items, all_ids)

    logger.debug(
        "Resolved %s session for %s: %d candidates, %d learned modules",
        kind,
        user_id,
        len(ordered),
        len(learned_modules),
    )
    return ReviewSessionItems(kind=kind, ordered_ids=ordered, selected_ids=ordered[:limit])


__all__ = [
    "MIN_ACTIVITIES_PER_MODULE",
    "MIN_FLASHCARDS_PER_MODULE",
    "failed_quiz_module_ids",
    "prioritize_activities",
    "prioritize_flashcards",
    "resolve_review_session",
]
