import logging
from typing import Any, Dict, Optional
from datetime import datetime, timedelta

from config.portal_config import TIMELINE_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


class TimelineCache:
    """In-process cache of resolved timeline templates.

    Keys come from ``key_for`` (enrollment id preferred, then class id).
    Entries live for the process lifetime unless a TTL is configured, and
    are evicted explicitly when the editor mutates a template.
    """

    def __init__(self, ttl_seconds: int = TIMELINE_CACHE_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self.memory_cache: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def key_for(class_id: Optional[str] = None, enrollment_id: Optional[str] = None) -> str:
        return enrollment_id or class_id or DEFAULT_KEY

    def get(self, key: str) -> Optional[Any]:
        """Get cached value"""
        entry = self.memory_cache.get(key)
        if not entry:
            return None
        if entry['expires'] and entry['expires'] <= datetime.now():
            del self.memory_cache[key]
            return None
        return entry['value']

    def set(self, key: str, value: Any) -> None:
        """Set cached value"""
        expires = None
        if self.ttl_seconds > 0:
            expires = datetime.now() + timedelta(seconds=self.ttl_seconds)
        self.memory_cache[key] = {'value': value, 'expires': expires}

    def invalidate_template(self, template_id: str) -> int:
        """Evict every key whose cached template has this id"""
        stale = [
            key for key, entry in self.memory_cache.items()
            if getattr(entry['value'], 'id', None) == template_id
        ]
        for key in stale:
            del self.memory_cache[key]
        if stale:
            logger.info(f"🗑️ Evicted {len(stale)} cached timeline(s) for template {template_id}")
        return len(stale)

    def clear(self) -> None:
        self.memory_cache.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.memory_cache)


# Shared by the resolver and the editor
timeline_cache = TimelineCache()
