"""
Course progress aggregation and next-topic sequencing.

Everything here is pure and recomputed on every read; nothing derived is
ever written back to storage.
"""

from typing import List, Sequence

from studyflow.courses.models import CourseProgress, LearnerStats, Topic, TopicSelection, TopicView


def percent_half_up(part: int, whole: int) -> int:
    """round(100 * part / whole) with halves rounded up; 0 when whole is 0."""
    if whole == 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def course_progress(topics: Sequence[Topic]) -> CourseProgress:
    total = len(topics)
    completed = sum(1 for t in topics if t.is_completed)
    return CourseProgress(
        completed_count=completed,
        total_count=total,
        percentage=percent_half_up(completed, total),
        is_completed=total > 0 and completed == total,
        earned_xp=sum(t.xp_reward for t in topics if t.is_completed),
        total_xp=sum(t.xp_reward for t in topics),
    )


def learner_stats(progresses: Sequence[CourseProgress]) -> LearnerStats:
    total = len(progresses)
    completed = sum(1 for p in progresses if p.is_completed)
    in_progress = sum(1 for p in progresses if not p.is_completed and p.completed_count > 0)
    return LearnerStats(
        total_courses=total,
        completed_courses=completed,
        in_progress_courses=in_progress,
        overall_percentage=percent_half_up(completed, total),
        completed_topics=sum(p.completed_count for p in progresses),
        earned_xp=sum(p.earned_xp for p in progresses),
    )


def select_next(ordered_topics: Sequence[Topic]) -> TopicSelection:
    """
    First incomplete topic is next; everything after it is locked.
    Out-of-order completions further down do not unlock anything.
    """
    for index, topic in enumerate(ordered_topics):
        if not topic.is_completed:
            locked_from = index + 1 if index + 1 < len(ordered_topics) else None
            return TopicSelection(next_index=index, locked_from=locked_from)
    return TopicSelection()


def is_locked(selection: TopicSelection, index: int) -> bool:
    return selection.next_index is not None and index > selection.next_index


def annotate_topics(ordered_topics: Sequence[Topic]) -> List[TopicView]:
    selection = select_next(ordered_topics)
    return [
        TopicView(
            **topic.model_dump(),
            is_next=index == selection.next_index,
            is_locked=is_locked(selection, index),
        )
        for index, topic in enumerate(ordered_topics)
    ]
