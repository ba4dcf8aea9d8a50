import uuid

from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .connection import Base


def new_id() -> str:
    return uuid.uuid4().hex


class School(Base):
    __tablename__ = "schools"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)

class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(String, primary_key=True, default=new_id)
    school_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    daily_timeline_id = Column(String, ForeignKey("daily_timelines.id", ondelete="SET NULL"), nullable=True)

class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"

    id = Column(String, primary_key=True, default=new_id)
    enrollment_id = Column(String, nullable=False, index=True)
    student_id = Column(String, nullable=True, index=True)
    class_id = Column(String, ForeignKey("classes.id"), nullable=True)
    daily_timeline_id = Column(String, ForeignKey("daily_timelines.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(String, nullable=True)

class DailyTimeline(Base):
    __tablename__ = "daily_timelines"

    id = Column(String, primary_key=True, default=new_id)
    school_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False)
    active = Column(Boolean, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=True)

    items = relationship(
        "DailyTimelineItem",
        back_populates="timeline",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

class DailyTimelineItem(Base):
    __tablename__ = "daily_timeline_items"

    id = Column(String, primary_key=True, default=new_id)
    timeline_id = Column(String, ForeignKey("daily_timelines.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(String, nullable=True)  # HH:MM
    end_time = Column(String, nullable=True)  # HH:MM
    order_index = Column(Integer, nullable=False, default=0)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    type = Column(String, nullable=False, default="academic")
    topic = Column(Text, nullable=True)
    objective = Column(Text, nullable=True)
    materials = Column(Text, nullable=True)
    homework = Column(Text, nullable=True)
    teacher_name = Column(String, nullable=True)
    attachments = Column(Text, default="[]")
    created_at = Column(String, nullable=True)

    timeline = relationship("DailyTimeline", back_populates="items")

class Subject(Base):
    __tablename__ = "subjects"

    id = Column(String, primary_key=True, default=new_id)
    school_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    emoji = Column(String, nullable=True)
    color = Column(String, nullable=True)

class LessonPlan(Base):
    __tablename__ = "lesson_plans"

    id = Column(String, primary_key=True, default=new_id)
    class_id = Column(String, ForeignKey("classes.id"), nullable=False, index=True)
    subject_id = Column(String, ForeignKey("subjects.id"), nullable=True)
    teacher_name = Column(String, nullable=True)
    date = Column(String, nullable=False, index=True)  # YYYY-MM-DD
    start_time = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    topic = Column(Text, nullable=True)
    objective = Column(Text, nullable=True)
    materials = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    homework = Column(Text, nullable=True)
    status = Column(String, default="planned")
    attachments = Column(Text, default="[]")

    subject = relationship("Subject")

class AppSetting(Base):
    __tablename__ = "app_settings"
    __table_args__ = (UniqueConstraint("key", "school_id", name="uq_app_settings_key_school"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(String, nullable=False)
    updated_by = Column(String, nullable=True)
