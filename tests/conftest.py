"""Shared fixtures: a throwaway SQLite database and seed helpers."""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="portal-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "portal.db")
os.environ["SCHOOL_TIMEZONE"] = "UTC"
os.environ["DEVELOPMENT_MODE"] = "false"

import json
from datetime import datetime

import pytest

from database.connection import Base, SessionLocal, engine
from database import models  # noqa: F401  (registers tables)
from database.models import (
    ClassEnrollment, DailyTimeline, DailyTimelineItem, LessonPlan, School, SchoolClass, Subject
)
from utils.caching import timeline_cache

SCHOOL_ID = "school-1"


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    timeline_cache.clear()
    yield
    timeline_cache.clear()


class Seeder:
    """Inserts rows directly, bypassing the code under test."""

    def _add(self, row):
        db = SessionLocal()
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
            return row.id
        finally:
            db.close()

    def school(self, school_id=SCHOOL_ID, name="Escola Modelo"):
        return self._add(School(id=school_id, name=name))

    def template(self, name="Rotina Integral", items=(), school_id=SCHOOL_ID, template_id=None, is_default=False):
        now = datetime.now().isoformat()
        kwargs = {"id": template_id} if template_id else {}
        tid = self._add(DailyTimeline(
            school_id=school_id, name=name, is_default=is_default, created_at=now, updated_at=now, **kwargs
        ))
        for index, item in enumerate(items):
            fields = {"order_index": index, "type": "other", **item}
            if "attachments" in fields:
                fields["attachments"] = json.dumps(fields["attachments"])
            self._add(DailyTimelineItem(timeline_id=tid, **fields))
        return tid

    def school_class(self, class_id="C1", timeline_id=None, school_id=SCHOOL_ID, name="Infantil II"):
        return self._add(SchoolClass(id=class_id, school_id=school_id, name=name, daily_timeline_id=timeline_id))

    def enrollment(self, enrollment_id="E1", class_id="C1", timeline_id=None, created_at="2026-02-01T00:00:00"):
        return self._add(ClassEnrollment(
            enrollment_id=enrollment_id, class_id=class_id, daily_timeline_id=timeline_id, created_at=created_at
        ))

    def subject(self, name="Matemática", color="#10b981", emoji="➗"):
        return self._add(Subject(school_id=SCHOOL_ID, name=name, color=color, emoji=emoji))

    def lesson_plan(self, class_id="C1", date="2026-10-19", start_time="09:00", end_time="10:00",
                    subject_id=None, **fields):
        if "attachments" in fields:
            fields["attachments"] = json.dumps(fields["attachments"])
        return self._add(LessonPlan(
            class_id=class_id, date=date, start_time=start_time, end_time=end_time,
            subject_id=subject_id, **fields
        ))


@pytest.fixture
def seed():
    seeder = Seeder()
    seeder.school()
    return seeder
