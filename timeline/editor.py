import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from . import db as timeline_db
from .errors import ConfirmationRequired, TimelineNotFoundError
from .models import ItemUpdate, TimelineItem, TimelineItemType, TimelineTemplate
from config.portal_config import (
    DEFAULT_DISPLAY_MODE, DISPLAY_MODES, EDITOR_CACHE_SIZE, TIMELINE_DISPLAY_SETTING_KEY
)
from database import operations as settings_store
from utils.caching import TimelineCache, timeline_cache

logger = logging.getLogger(__name__)

NEW_ITEM_TITLE = "New Activity"
SAVE_FAILED_MESSAGE = "Could not save changes, try again"
DRAFT_FIELDS = ("title", "description", "start_time", "end_time")
COPIED_ITEM_FIELDS = (
    "title", "description", "start_time", "end_time", "order_index", "icon", "color", "type",
)


@dataclass
class ItemDraft:
    """Local edit state for one item: updated on every keystroke, persisted on flush."""
    item_id: str
    timeline_id: str
    values: Dict[str, Any]
    dirty: Set[str] = field(default_factory=set)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)


@dataclass
class FlushResult:
    item_id: str
    ok: bool
    saved_fields: List[str] = field(default_factory=list)
    error: Optional[str] = None


class TimelineEditor:
    """Staff-side CRUD over a school's routine templates and their items."""

    def __init__(self, school_id: str, store=timeline_db, cache: TimelineCache = timeline_cache,
                 settings=settings_store):
        self.school_id = school_id
        self.store = store
        self.cache = cache
        self.settings = settings
        self.drafts: Dict[str, ItemDraft] = {}

    # --- templates

    def list_templates(self) -> List[TimelineTemplate]:
        return self.store.list_templates(self.school_id)

    def get_template(self, template_id: str) -> TimelineTemplate:
        template = self.store.get_template(template_id, self.school_id)
        if template is None:
            raise TimelineNotFoundError(f"Timeline {template_id} not found")
        return template

    def create_template(self, name: str, description: str = None) -> TimelineTemplate:
        if not name or not name.strip():
            raise ValueError("Template name is required")
        return self.store.create_template(self.school_id, name.strip(), description)

    def duplicate_template(self, template_id: str) -> TimelineTemplate:
        original = self.get_template(template_id)
        items = [
            {key: getattr(item, key) for key in COPIED_ITEM_FIELDS}
            for item in original.items
        ]
        copy = self.store.create_template(
            self.school_id,
            f"Copy of {original.name}",
            original.description,
            is_default=False,
            items=items,
        )
        logger.info(f"✅ Duplicated timeline {template_id} as {copy.id} ({len(items)} items)")
        return copy

    def delete_template(self, template_id: str, confirmed: bool = False) -> None:
        template = self.get_template(template_id)
        if not confirmed:
            raise ConfirmationRequired(
                "delete_template",
                f"Deleting '{template.name}' removes it from every class and student linked to it."
            )
        self.store.delete_template(template_id, self.school_id)
        for item in template.items:
            self.drafts.pop(item.id, None)
        self.cache.invalidate_template(template_id)

    # --- items

    def list_items(self, template_id: str) -> List[TimelineItem]:
        self.get_template(template_id)
        return self.store.list_items(template_id)

    def add_item(self, template_id: str) -> TimelineItem:
        self.get_template(template_id)
        count = len(self.store.list_items(template_id))
        item = self.store.create_item(
            template_id,
            title=NEW_ITEM_TITLE,
            type=TimelineItemType.ACADEMIC,
            order_index=count,
        )
        self.cache.invalidate_template(template_id)
        return item

    def _get_item(self, item_id: str) -> TimelineItem:
        item = self.store.get_item(item_id, self.school_id)
        if item is None:
            raise TimelineNotFoundError(f"Timeline item {item_id} not found")
        return item

    def update_item(self, item_id: str, **fields) -> TimelineItem:
        """Persist structured field changes (e.g. ``type``) right away."""
        unknown = set(fields) - set(ItemUpdate.model_fields)
        if unknown:
            raise ValueError(f"Fields {sorted(unknown)} cannot be updated")
        item = self._get_item(item_id)
        changes = ItemUpdate(**fields).model_dump(include=set(fields))
        self.store.update_item(item_id, **changes)

        draft = self.drafts.get(item_id)
        if draft:
            draft.values.update(changes)
            draft.dirty.difference_update(changes)
            for key in changes:
                draft.errors.pop(key, None)

        self.cache.invalidate_template(item.timeline_id)
        return item.model_copy(update=changes)

    def delete_item(self, item_id: str, confirmed: bool = False) -> None:
        item = self._get_item(item_id)
        if not confirmed:
            raise ConfirmationRequired("delete_item", f"Remove '{item.title}'?")
        self.store.delete_item(item_id)
        self.drafts.pop(item_id, None)
        self.cache.invalidate_template(item.timeline_id)

    def move_item(self, template_id: str, index: int, direction: str) -> List[TimelineItem]:
        """Swap the item at ``index`` with its neighbour and persist both order indexes."""
        if direction not in ("up", "down"):
            raise ValueError(f"Invalid direction {direction!r}, expected 'up' or 'down'")

        items = self.list_items(template_id)
        swap_index = index - 1 if direction == "up" else index + 1
        if not (0 <= index < len(items)) or not (0 <= swap_index < len(items)):
            return items

        # a swap only keeps order_index unique if it was a permutation to begin with
        if sorted(i.order_index for i in items) != list(range(len(items))):
            logger.warning(f"⚠️ Renumbering order_index for timeline {template_id}")
            for position, item in enumerate(items):
                if item.order_index != position:
                    self.store.update_item(item.id, order_index=position)
                    item.order_index = position

        first, second = items[index], items[swap_index]
        first.order_index, second.order_index = second.order_index, first.order_index
        self.store.update_item(first.id, order_index=first.order_index)
        self.store.update_item(second.id, order_index=second.order_index)

        items[index], items[swap_index] = second, first
        self.cache.invalidate_template(template_id)
        return items

    # --- drafts (inline text fields)

    def stage_change(self, item_id: str, **fields) -> ItemDraft:
        """Record keystroke-level edits locally without writing them."""
        unknown = set(fields) - set(DRAFT_FIELDS)
        if unknown:
            raise ValueError(f"Fields {sorted(unknown)} cannot be drafted")

        draft = self.drafts.get(item_id)
        if draft is None:
            item = self._get_item(item_id)
            draft = ItemDraft(
                item_id=item_id,
                timeline_id=item.timeline_id,
                values={key: getattr(item, key) for key in DRAFT_FIELDS},
            )
            self.drafts[item_id] = draft

        draft.values.update(fields)
        draft.dirty.update(fields)
        return draft

    def flush(self, item_id: str) -> FlushResult:
        """Write the draft's dirty fields. On failure the draft keeps its values and is marked errored."""
        draft = self.drafts.get(item_id)
        if draft is None or not draft.is_dirty:
            self.drafts.pop(item_id, None)
            return FlushResult(item_id=item_id, ok=True)

        changes = {key: draft.values[key] for key in sorted(draft.dirty)}
        try:
            payload = ItemUpdate(**changes).model_dump(include=set(changes))
            if not self.store.update_item(item_id, **payload):
                raise TimelineNotFoundError(f"Timeline item {item_id} not found")
        except (ValueError, LookupError) as e:
            return self._flush_failed(draft, changes, str(e))
        except Exception as e:
            logger.error(f"❌ Failed to save draft for item {item_id}: {e}")
            return self._flush_failed(draft, changes, SAVE_FAILED_MESSAGE)

        del self.drafts[item_id]
        self.cache.invalidate_template(draft.timeline_id)
        return FlushResult(item_id=item_id, ok=True, saved_fields=list(changes))

    def _flush_failed(self, draft: ItemDraft, changes: Dict[str, Any], message: str) -> FlushResult:
        logger.warning(f"⚠️ Draft for item {draft.item_id} kept unsaved: {message}")
        for key in changes:
            draft.errors[key] = message
        return FlushResult(item_id=draft.item_id, ok=False, error=message)

    def get_draft(self, item_id: str) -> Optional[ItemDraft]:
        return self.drafts.get(item_id)

    # --- display toggle

    def get_display_mode(self) -> str:
        try:
            mode = self.settings.get_setting(self.school_id, TIMELINE_DISPLAY_SETTING_KEY)
        except Exception as e:
            logger.error(f"❌ Error reading display mode for school {self.school_id}: {e}")
            mode = None
        return mode or DEFAULT_DISPLAY_MODE

    def is_display_enabled(self) -> bool:
        return self.get_display_mode() != "disabled"

    def set_display_mode(self, mode: str, updated_by: str = None) -> bool:
        if mode not in DISPLAY_MODES:
            raise ValueError(f"Invalid display mode {mode!r}, expected one of {', '.join(DISPLAY_MODES)}")
        return self.settings.set_setting(self.school_id, TIMELINE_DISPLAY_SETTING_KEY, mode, updated_by)


class EditorRegistry:
    """Least-recently-used editors, one per school, so drafts survive between requests."""

    def __init__(self, max_size: int = EDITOR_CACHE_SIZE, factory=TimelineEditor):
        self.max_size = max_size
        self.factory = factory
        self._editors: "OrderedDict[str, TimelineEditor]" = OrderedDict()

    def get(self, school_id: str) -> TimelineEditor:
        editor = self._editors.get(school_id)
        if editor is not None:
            self._editors.move_to_end(school_id)
            return editor

        if len(self._editors) >= self.max_size:
            evicted_id, evicted = self._editors.popitem(last=False)
            unsaved = sum(1 for d in evicted.drafts.values() if d.is_dirty)
            if unsaved:
                logger.warning(f"⚠️ Evicted editor for school {evicted_id} with {unsaved} unsaved draft(s)")

        editor = self._editors[school_id] = self.factory(school_id)
        return editor

    def clear(self) -> None:
        self._editors.clear()

    def __contains__(self, school_id: str) -> bool:
        return school_id in self._editors

    def __len__(self) -> int:
        return len(self._editors)
