from fastapi import APIRouter, Depends, HTTPException, Query, Body
from contextlib import contextmanager
from datetime import date as date_type
from typing import Optional
import logging

from .editor import EditorRegistry, TimelineEditor
from .errors import ConfirmationRequired, TimelineNotFoundError
from .loader import DailyTimelineLoader, DailyTimelineSnapshot, TimelineSelection
from .models import DisplayModeUpdate, ItemUpdate, TemplateCreate
from .presentation import build_lesson_detail, build_timeline_strip, find_entry, is_clickable
from .resolver import TimelineResolver
from config.portal_config import TIMELINE_REFRESH_SECONDS
from dependencies import get_current_user, get_school_id, require_staff
from utils.time_utils import minutes_since_midnight, next_school_day, today_iso

logger = logging.getLogger(__name__)

parent_router = APIRouter(prefix="/api/parent", tags=["timeline"])
admin_router = APIRouter(
    prefix="/api/admin/timelines",
    tags=["timeline-admin"],
    dependencies=[Depends(require_staff)],
)

BEFORE_SCHOOL_DAY = -1

timeline_resolver = TimelineResolver()

# One editor per school keeps its item drafts between requests
_editors = EditorRegistry()


def get_editor(school_id: str = Depends(get_school_id)) -> TimelineEditor:
    return _editors.get(school_id)


@contextmanager
def editor_errors(action: str):
    """Translate editor failures into HTTP errors for the admin UI"""
    try:
        yield
    except TimelineNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfirmationRequired as e:
        raise HTTPException(status_code=409, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Error during {action}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to {action}")


def _parse_request_clock(day: Optional[str], now: Optional[str], upcoming: bool = False):
    try:
        if day:
            date_type.fromisoformat(day)
        now_minutes = minutes_since_midnight(now) if now else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if upcoming and not day:
        day = next_school_day()
        if now is None and day != today_iso():
            # that day has not started, so every entry is still ahead
            now_minutes = BEFORE_SCHOOL_DAY
    return day, now_minutes


async def _load_entries(class_id, enrollment_id, day, now_minutes):
    selection = TimelineSelection(class_id=class_id, enrollment_id=enrollment_id)
    loader = DailyTimelineLoader(timeline_resolver)
    snapshot = await loader.load(selection, day)
    if snapshot is None:
        # load() returns None only when a newer load on the same loader superseded it
        snapshot = DailyTimelineSnapshot(selection=selection, day=day or today_iso())
    return snapshot, snapshot.entries(now_minutes)


# --- Guardian endpoints

@parent_router.get("/timeline")
async def get_daily_timeline(
    enrollment_id: Optional[str] = Query(None, description="Student enrollment"),
    class_id: Optional[str] = Query(None, description="Class, when no enrollment is known"),
    date: Optional[str] = Query(None, description="Day as YYYY-MM-DD, defaults to today"),
    now: Optional[str] = Query(None, description="Evaluate status at HH:MM instead of the current time"),
    upcoming: bool = Query(False, description="Without a date, show the next school day after the cutoff hour"),
    editor: TimelineEditor = Depends(get_editor)
):
    """Today's routine for a student: template and lesson plans merged, with live status"""
    day, now_minutes = _parse_request_clock(date, now, upcoming)

    display_mode = editor.get_display_mode()
    if display_mode == "disabled":
        return {"enabled": False, "display_mode": display_mode, "timeline": None, "entries": [], "strip": None}

    snapshot, entries = await _load_entries(class_id, enrollment_id, day, now_minutes)
    strip = build_timeline_strip(entries)

    return {
        "enabled": True,
        "display_mode": display_mode,
        "date": snapshot.day,
        "refresh_seconds": TIMELINE_REFRESH_SECONDS,
        "timeline": {"id": snapshot.timeline.id, "name": snapshot.timeline.name} if snapshot.timeline else None,
        "entries": [e.model_dump(mode="json") for e in entries],
        "strip": strip.model_dump(mode="json"),
    }


@parent_router.get("/timeline/items/{item_id}")
async def get_timeline_item_detail(
    item_id: str,
    enrollment_id: Optional[str] = Query(None),
    class_id: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    editor: TimelineEditor = Depends(get_editor)
):
    """Lesson detail for one clickable entry of the day's timeline"""
    day, _ = _parse_request_clock(date, None, upcoming)
    if not editor.is_display_enabled():
        raise HTTPException(status_code=404, detail="Timeline is disabled")

    _, entries = await _load_entries(class_id, enrollment_id, day, None)
    entry = find_entry(entries, item_id)
    if entry is None or not is_clickable(entry):
        raise HTTPException(status_code=404, detail="Timeline item not found")

    return {"status": "success", "detail": build_lesson_detail(entry).model_dump(mode="json")}


# --- Staff endpoints

@admin_router.get("")
async def list_timelines(editor: TimelineEditor = Depends(get_editor)):
    with editor_errors("list timelines"):
        templates = editor.list_templates()
    return {"status": "success", "timelines": [t.model_dump(mode="json", exclude={"items"}) for t in templates]}


@admin_router.post("", status_code=201)
async def create_timeline(payload: TemplateCreate, editor: TimelineEditor = Depends(get_editor)):
    with editor_errors("create timeline"):
        template = editor.create_template(payload.name, payload.description)
    return {"status": "success", "timeline": template.model_dump(mode="json")}


@admin_router.post("/{timeline_id}/duplicate", status_code=201)
async def duplicate_timeline(timeline_id: str, editor: TimelineEditor = Depends(get_editor)):
    with editor_errors("duplicate timeline"):
        template = editor.duplicate_template(timeline_id)
    return {"status": "success", "timeline": template.model_dump(mode="json")}


@admin_router.delete("/{timeline_id}")
async def delete_timeline(
    timeline_id: str,
    confirm: bool = Query(False, description="Must be true; deletion unlinks classes and students"),
    editor: TimelineEditor = Depends(get_editor)
):
    with editor_errors("delete timeline"):
        editor.delete_template(timeline_id, confirmed=confirm)
    return {"status": "success", "message": "Timeline deleted"}


@admin_router.get("/display-mode")
async def get_display_mode(editor: TimelineEditor = Depends(get_editor)):
    mode = editor.get_display_mode()
    return {"mode": mode, "enabled": mode != "disabled"}


@admin_router.put("/display-mode")
async def set_display_mode(
    payload: DisplayModeUpdate,
    editor: TimelineEditor = Depends(get_editor),
    current_user: dict = Depends(get_current_user)
):
    with editor_errors("update display mode"):
        saved = editor.set_display_mode(payload.mode, updated_by=current_user.get("user_id"))
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to save display mode")
    return {"mode": payload.mode, "enabled": payload.mode != "disabled"}


@admin_router.get("/{timeline_id}/items")
async def list_timeline_items(timeline_id: str, editor: TimelineEditor = Depends(get_editor)):
    with editor_errors("list timeline items"):
        items = editor.list_items(timeline_id)
    return {"status": "success", "items": [i.model_dump(mode="json") for i in items]}


@admin_router.post("/{timeline_id}/items", status_code=201)
async def add_timeline_item(timeline_id: str, editor: TimelineEditor = Depends(get_editor)):
    with editor_errors("add timeline item"):
        item = editor.add_item(timeline_id)
    return {"status": "success", "item": item.model_dump(mode="json")}


@admin_router.post("/{timeline_id}/items/{index}/move")
async def move_timeline_item(
    timeline_id: str,
    index: int,
    direction: str = Query(..., description="up or down"),
    editor: TimelineEditor = Depends(get_editor)
):
    with editor_errors("reorder timeline items"):
        items = editor.move_item(timeline_id, index, direction)
    return {"status": "success", "items": [i.model_dump(mode="json") for i in items]}


@admin_router.patch("/items/{item_id}")
async def update_timeline_item(item_id: str, payload: ItemUpdate, editor: TimelineEditor = Depends(get_editor)):
    """Immediate write, used for structured fields such as the item type"""
    with editor_errors("update timeline item"):
        item = editor.update_item(item_id, **payload.model_dump(exclude_unset=True))
    return {"status": "success", "item": item.model_dump(mode="json")}


@admin_router.put("/items/{item_id}/draft")
async def stage_timeline_item(
    item_id: str,
    changes: dict = Body(..., description="Partial title/description/start_time/end_time"),
    editor: TimelineEditor = Depends(get_editor)
):
    """Keystroke-level edit; nothing is written until the item is flushed"""
    with editor_errors("stage timeline item"):
        draft = editor.stage_change(item_id, **changes)
    return {"status": "success", "values": draft.values, "dirty": sorted(draft.dirty), "errors": draft.errors}


@admin_router.post("/items/{item_id}/flush")
async def flush_timeline_item(item_id: str, editor: TimelineEditor = Depends(get_editor)):
    """Persist a staged draft (on blur or explicit save)"""
    result = editor.flush(item_id)
    if not result.ok:
        draft = editor.get_draft(item_id)
        raise HTTPException(status_code=500, detail={
            "message": f"Failed to save item: {result.error}",
            "dirty": sorted(draft.dirty) if draft else [],
        })
    return {"status": "success", "saved_fields": result.saved_fields}


@admin_router.delete("/items/{item_id}")
async def delete_timeline_item(
    item_id: str,
    confirm: bool = Query(False),
    editor: TimelineEditor = Depends(get_editor)
):
    with editor_errors("delete timeline item"):
        editor.delete_item(item_id, confirmed=confirm)
    return {"status": "success", "message": "Item removed"}
