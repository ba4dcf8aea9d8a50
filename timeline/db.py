from sqlalchemy.orm import joinedload
from database.operations import get_session
from database.models import (
    ClassEnrollment, SchoolClass, DailyTimeline, DailyTimelineItem, LessonPlan as LessonPlanRow
)
from .models import TimelineTemplate, TimelineItem, LessonPlan, Subject, Attachment
from utils.time_utils import normalize_clock
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple
import json
import logging

logger = logging.getLogger(__name__)

ITEM_FIELDS = (
    "title", "description", "start_time", "end_time", "order_index", "icon", "color", "type",
    "topic", "objective", "materials", "homework", "teacher_name", "attachments",
)


def _load_attachments(raw) -> List[Attachment]:
    if not raw:
        return []
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning(f"⚠️ Ignoring malformed attachments payload: {raw[:80]}")
        return []
    return [Attachment(**a) for a in data if isinstance(a, dict) and a.get("url")]


def _clock(value, what: str) -> Optional[str]:
    clock = normalize_clock(value)
    if value and clock is None:
        logger.warning(f"⚠️ {what} has malformed time {value!r}, treating as unscheduled")
    return clock


def _item_from_row(row: DailyTimelineItem) -> TimelineItem:
    return TimelineItem(
        id=row.id,
        timeline_id=row.timeline_id,
        title=row.title,
        description=row.description,
        start_time=_clock(row.start_time, f"Timeline item {row.id}"),
        end_time=_clock(row.end_time, f"Timeline item {row.id}"),
        order_index=row.order_index or 0,
        icon=row.icon,
        color=row.color,
        type=row.type,
        topic=row.topic,
        objective=row.objective,
        materials=row.materials,
        homework=row.homework,
        teacher_name=row.teacher_name,
        attachments=_load_attachments(row.attachments),
    )


def _template_from_row(row: DailyTimeline, with_items: bool = True) -> TimelineTemplate:
    items = [_item_from_row(i) for i in row.items] if with_items else []
    return TimelineTemplate(
        id=row.id,
        school_id=row.school_id,
        name=row.name,
        description=row.description,
        is_default=bool(row.is_default),
        active=row.active,
        items=sorted(items, key=lambda i: i.order_index),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _plan_from_row(row: LessonPlanRow) -> LessonPlan:
    subject = Subject.model_validate(row.subject) if row.subject else None
    return LessonPlan(
        id=row.id,
        class_id=row.class_id,
        date=row.date,
        start_time=_clock(row.start_time, f"Lesson plan {row.id}"),
        end_time=_clock(row.end_time, f"Lesson plan {row.id}"),
        subject=subject,
        topic=row.topic,
        objective=row.objective,
        materials=row.materials,
        notes=row.notes,
        homework=row.homework,
        teacher_name=row.teacher_name,
        status=row.status or "planned",
        attachments=_load_attachments(row.attachments),
    )


def _dump_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for key, value in fields.items():
        if key not in ITEM_FIELDS:
            raise ValueError(f"Unknown timeline item field: {key}")
        if key == "attachments":
            value = json.dumps([a.model_dump() if hasattr(a, "model_dump") else a for a in (value or [])])
        elif key == "type" and value is not None:
            value = getattr(value, "value", value)
        values[key] = value
    return values


# --- RESOLUTION LOOKUPS

def fetch_template_override(enrollment_id: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (override template id, class id) for the enrollment's latest class enrollment."""
    with get_session() as db:
        enrollment = db.query(ClassEnrollment).filter(
            ClassEnrollment.enrollment_id == enrollment_id
        ).order_by(ClassEnrollment.created_at.desc()).first()
        if not enrollment:
            return None, None
        return enrollment.daily_timeline_id, enrollment.class_id


def fetch_class_default_template(class_id: str) -> Optional[str]:
    with get_session() as db:
        school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
        return school_class.daily_timeline_id if school_class else None


def fetch_template(template_id: str) -> Optional[TimelineTemplate]:
    with get_session() as db:
        row = db.query(DailyTimeline).options(joinedload(DailyTimeline.items)).filter(
            DailyTimeline.id == template_id
        ).first()
        return _template_from_row(row) if row else None


def get_lesson_plans(class_id: str, start_date: str, end_date: str) -> List[LessonPlan]:
    with get_session() as db:
        rows = db.query(LessonPlanRow).options(joinedload(LessonPlanRow.subject)).filter(
            LessonPlanRow.class_id == class_id,
            LessonPlanRow.date >= start_date,
            LessonPlanRow.date <= end_date,
        ).order_by(LessonPlanRow.date.asc(), LessonPlanRow.start_time.asc()).all()
        plans = [_plan_from_row(r) for r in rows]
        logger.info(f"📋 Retrieved {len(plans)} lesson plans for class {class_id} ({start_date}..{end_date})")
        return plans


# --- EDITOR CRUD

def list_templates(school_id: str) -> List[TimelineTemplate]:
    with get_session() as db:
        rows = db.query(DailyTimeline).filter(
            DailyTimeline.school_id == school_id
        ).order_by(DailyTimeline.created_at.desc()).all()
        return [_template_from_row(r, with_items=False) for r in rows]


def get_template(template_id: str, school_id: str) -> Optional[TimelineTemplate]:
    with get_session() as db:
        row = db.query(DailyTimeline).options(joinedload(DailyTimeline.items)).filter(
            DailyTimeline.id == template_id,
            DailyTimeline.school_id == school_id
        ).first()
        return _template_from_row(row) if row else None


def create_template(school_id: str, name: str, description: str = None, is_default: bool = False,
                    items: List[Dict[str, Any]] = None) -> TimelineTemplate:
    with get_session() as db:
        try:
            now = datetime.now().isoformat()
            db_template = DailyTimeline(
                school_id=school_id,
                name=name,
                description=description,
                is_default=is_default,
                created_at=now,
                updated_at=now
            )
            db.add(db_template)
            db.flush()

            for fields in items or []:
                db.add(DailyTimelineItem(timeline_id=db_template.id, created_at=now, **_dump_fields(fields)))

            db.commit()
            db.refresh(db_template)
            logger.info(f"✅ Created timeline {db_template.id} ({name}) for school {school_id}")
            return _template_from_row(db_template)
        except Exception as e:
            logger.error(f"❌ Error creating timeline: {e}")
            db.rollback()
            raise


def delete_template(template_id: str, school_id: str) -> bool:
    with get_session() as db:
        try:
            template = db.query(DailyTimeline).filter(
                DailyTimeline.id == template_id,
                DailyTimeline.school_id == school_id
            ).first()
            if not template:
                return False
            db.delete(template)
            db.commit()
            logger.info(f"🗑️ Deleted timeline {template_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Error deleting timeline {template_id}: {e}")
            db.rollback()
            raise


def list_items(template_id: str) -> List[TimelineItem]:
    with get_session() as db:
        rows = db.query(DailyTimelineItem).filter(
            DailyTimelineItem.timeline_id == template_id
        ).order_by(DailyTimelineItem.order_index.asc()).all()
        return [_item_from_row(r) for r in rows]


def get_item(item_id: str, school_id: str) -> Optional[TimelineItem]:
    with get_session() as db:
        row = db.query(DailyTimelineItem).join(DailyTimeline).filter(
            DailyTimelineItem.id == item_id,
            DailyTimeline.school_id == school_id
        ).first()
        return _item_from_row(row) if row else None


def create_item(template_id: str, **fields) -> TimelineItem:
    with get_session() as db:
        try:
            row = DailyTimelineItem(
                timeline_id=template_id,
                created_at=datetime.now().isoformat(),
                **_dump_fields(fields)
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info(f"✅ Added item {row.id} to timeline {template_id}")
            return _item_from_row(row)
        except Exception as e:
            logger.error(f"❌ Error adding timeline item: {e}")
            db.rollback()
            raise


def update_item(item_id: str, **fields) -> bool:
    with get_session() as db:
        try:
            row = db.query(DailyTimelineItem).filter(DailyTimelineItem.id == item_id).first()
            if not row:
                return False
            for key, value in _dump_fields(fields).items():
                setattr(row, key, value)
            row.timeline.updated_at = datetime.now().isoformat()
            db.commit()
            return True
        except Exception as e:
            logger.error(f"❌ Error updating timeline item {item_id}: {e}")
            db.rollback()
            raise


def delete_item(item_id: str) -> bool:
    with get_session() as db:
        try:
            row = db.query(DailyTimelineItem).filter(DailyTimelineItem.id == item_id).first()
            if not row:
                return False
            db.delete(row)
            db.commit()
            logger.info(f"🗑️ Deleted timeline item {item_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Error deleting timeline item {item_id}: {e}")
            db.rollback()
            raise
