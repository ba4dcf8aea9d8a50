import asyncio
import logging
from typing import Optional

from . import db as timeline_db
from .models import TimelineTemplate
from utils.caching import TimelineCache, timeline_cache

logger = logging.getLogger(__name__)


class TimelineResolver:
    """Finds the routine template that governs a student's day.

    Fallback chain: enrollment override, then the class default, then nothing.
    Lookup failures are logged and resolve to ``None``.
    """

    def __init__(self, store=timeline_db, cache: TimelineCache = timeline_cache):
        self.store = store
        self.cache = cache

    async def resolve(self, class_id: Optional[str] = None,
                      enrollment_id: Optional[str] = None) -> Optional[TimelineTemplate]:
        if not class_id and not enrollment_id:
            return None

        cache_key = self.cache.key_for(class_id, enrollment_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            template = await self._resolve_uncached(class_id, enrollment_id)
        except Exception as e:
            logger.error(f"❌ Error loading timeline for {cache_key}: {e}")
            return None

        if template is not None:
            self.cache.set(cache_key, template)
        return template

    async def resolve_template_id(self, class_id: Optional[str] = None,
                                  enrollment_id: Optional[str] = None) -> Optional[str]:
        resolved_class_id = class_id
        template_id = None

        if enrollment_id:
            override_id, enrollment_class_id = await asyncio.to_thread(
                self.store.fetch_template_override, enrollment_id
            )
            if override_id:
                template_id = override_id
            if not resolved_class_id and enrollment_class_id:
                resolved_class_id = enrollment_class_id

        if not template_id and resolved_class_id:
            template_id = await asyncio.to_thread(self.store.fetch_class_default_template, resolved_class_id)

        return template_id

    async def _resolve_uncached(self, class_id, enrollment_id) -> Optional[TimelineTemplate]:
        template_id = await self.resolve_template_id(class_id, enrollment_id)
        if not template_id:
            logger.info(f"📋 No timeline configured for class={class_id} enrollment={enrollment_id}")
            return None

        template = await asyncio.to_thread(self.store.fetch_template, template_id)
        if template is None:
            logger.warning(f"⚠️ Timeline {template_id} is linked but no longer exists")
            return None

        template.items.sort(key=lambda i: i.order_index)
        return template
