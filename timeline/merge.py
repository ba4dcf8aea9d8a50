"""Merge a routine template with the day's lesson plans into one status-annotated timeline.

Everything here is pure: no I/O, no stored state. The only input besides the
items is ``now``, so callers recompute on every render or polling tick.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .models import (
    LessonPlan, MergedTimelineEntry, TimelineItem, TimelineItemType, TimelineStatus, TimelineTemplate
)
from utils.time_utils import NowLike, minutes_since_midnight, to_minutes

logger = logging.getLogger(__name__)

EXTERNAL_TIMELINE_ID = "external"
DEFAULT_LESSON_TITLE = "Class"


def lesson_plan_to_item(plan: LessonPlan) -> TimelineItem:
    """Normalise a lesson plan into the timeline item shape (always academic)."""
    subject = plan.subject
    return TimelineItem(
        id=plan.id,
        timeline_id=EXTERNAL_TIMELINE_ID,
        title=subject.name if subject and subject.name else DEFAULT_LESSON_TITLE,
        description=plan.notes or None,
        start_time=plan.start_time,
        end_time=plan.end_time,
        order_index=0,
        color=subject.color if subject else None,
        type=TimelineItemType.ACADEMIC,
        lesson_plan_id=plan.id,
        topic=plan.topic,
        objective=plan.objective,
        materials=plan.materials,
        homework=plan.homework,
        teacher_name=plan.teacher_name,
        attachments=list(plan.attachments),
        cancelled=plan.status == "cancelled",
        source="lesson_plan",
    )


def validate_item_times(item: TimelineItem) -> bool:
    """Warn (never raise) when an item ends before it starts."""
    if item.start_time and item.end_time and item.end_time < item.start_time:
        logger.warning(
            f"⚠️ Timeline item {item.id} ({item.title}) ends before it starts: "
            f"{item.start_time} > {item.end_time}"
        )
        return False
    return True


def sort_items(items: Iterable[TimelineItem]) -> List[TimelineItem]:
    # sorted() is stable: equal start times and untimed items keep input order
    return sorted(items, key=lambda i: (i.start_time is None, i.start_time or ""))


def compute_status(start_time: Optional[str], next_start_time: Optional[str], now_minutes: int) -> TimelineStatus:
    """Status of one entry from its own start and the next entry's start.

    The next entry's start acts as this entry's end; the declared end_time is
    not consulted. With no timed successor the entry stays current once started.
    """
    if not start_time:
        return TimelineStatus.FUTURE

    start = to_minutes(start_time)
    if next_start_time:
        end = to_minutes(next_start_time)
        if start <= now_minutes < end:
            return TimelineStatus.CURRENT
        if now_minutes >= end:
            return TimelineStatus.PAST
        return TimelineStatus.FUTURE

    if now_minutes >= start:
        return TimelineStatus.CURRENT
    return TimelineStatus.FUTURE


def merge_timelines(items: Sequence[TimelineItem], external_items: Sequence[TimelineItem] = (),
                    now: NowLike = None) -> List[MergedTimelineEntry]:
    """Concatenate template and external items, order by start time and annotate status.

    Output length always equals ``len(items) + len(external_items)``; nothing is
    dropped, cancelled lessons included.
    """
    now_minutes = minutes_since_midnight(now)
    ordered = sort_items([*items, *external_items])

    merged = []
    for index, item in enumerate(ordered):
        validate_item_times(item)
        next_item = ordered[index + 1] if index + 1 < len(ordered) else None
        status = compute_status(item.start_time, next_item.start_time if next_item else None, now_minutes)
        merged.append(MergedTimelineEntry(**item.model_dump(), status=status))
    return merged


def merge_day(template: Optional[TimelineTemplate], lesson_plans: Sequence[LessonPlan] = (),
              now: NowLike = None) -> List[MergedTimelineEntry]:
    """Merge a resolved template (or none) with raw lesson plans for the same day."""
    template_items = template.items if template else []
    return merge_timelines(template_items, [lesson_plan_to_item(p) for p in lesson_plans], now)
