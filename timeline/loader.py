import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from . import db as timeline_db
from .merge import merge_day
from .models import LessonPlan, MergedTimelineEntry, TimelineTemplate
from .resolver import TimelineResolver
from utils.time_utils import NowLike, today_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineSelection:
    """The student/class a timeline request is for. Doubles as the request key."""
    class_id: Optional[str] = None
    enrollment_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.class_id and not self.enrollment_id


@dataclass
class DailyTimelineSnapshot:
    selection: TimelineSelection
    day: str
    timeline: Optional[TimelineTemplate] = None
    lesson_plans: List[LessonPlan] = field(default_factory=list)
    loading: bool = False

    def entries(self, now: NowLike = None) -> List[MergedTimelineEntry]:
        return merge_day(self.timeline, self.lesson_plans, now)

    @property
    def is_empty(self) -> bool:
        has_items = bool(self.timeline and self.timeline.items)
        return not has_items and not self.lesson_plans


class DailyTimelineLoader:
    """Loads template and lesson plans together for the current selection.

    Both fetches run concurrently and are merged only after both settle. A
    result whose selection is no longer current on arrival is discarded.
    Discarding only applies to a loader reused across selections, such as one
    held per guardian session; a loader built per request is never superseded.
    """

    def __init__(self, resolver: TimelineResolver = None, store=timeline_db):
        self.resolver = resolver or TimelineResolver()
        self.store = store
        self.current: Optional[TimelineSelection] = None

    def select(self, selection: TimelineSelection) -> None:
        self.current = selection

    async def load(self, selection: TimelineSelection, day: str = None) -> Optional[DailyTimelineSnapshot]:
        self.select(selection)
        day = day or today_iso()

        if selection.is_empty:
            return DailyTimelineSnapshot(selection=selection, day=day)

        timeline, lesson_plans = await asyncio.gather(
            self.resolver.resolve(class_id=selection.class_id, enrollment_id=selection.enrollment_id),
            self._fetch_lesson_plans(selection, day),
        )

        if self.current != selection:
            logger.debug(f"Discarding stale timeline result for {selection}")
            return None

        return DailyTimelineSnapshot(
            selection=selection,
            day=day,
            timeline=timeline,
            lesson_plans=lesson_plans,
        )

    async def _fetch_lesson_plans(self, selection: TimelineSelection, day: str) -> List[LessonPlan]:
        try:
            class_id = selection.class_id
            if not class_id and selection.enrollment_id:
                _, class_id = await asyncio.to_thread(self.store.fetch_template_override, selection.enrollment_id)
            if not class_id:
                return []
            return await asyncio.to_thread(self.store.get_lesson_plans, class_id, day, day)
        except Exception as e:
            logger.error(f"❌ Error loading lesson plans for {selection}: {e}")
            return []
