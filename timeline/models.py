from enum import Enum
from typing import List, Optional, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.time_utils import normalize_clock


class TimelineItemType(str, Enum):
    ACADEMIC = "academic"
    FOOD = "food"
    REST = "rest"
    TRANSPORT = "transport"
    OTHER = "other"

    @classmethod
    def coerce(cls, value) -> "TimelineItemType":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class TimelineStatus(str, Enum):
    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"


class TypeStyle(BaseModel):
    icon: str
    color: str
    label: str


# Every TimelineItemType must have an entry here
ITEM_TYPE_STYLES: Dict[TimelineItemType, TypeStyle] = {
    TimelineItemType.ACADEMIC: TypeStyle(icon="book-open", color="#2563eb", label="Academic"),
    TimelineItemType.FOOD: TypeStyle(icon="coffee", color="#f97316", label="Food"),
    TimelineItemType.REST: TypeStyle(icon="moon", color="#a855f7", label="Rest"),
    TimelineItemType.TRANSPORT: TypeStyle(icon="bus", color="#3b82f6", label="Arrival/Departure"),
    TimelineItemType.OTHER: TypeStyle(icon="circle", color="#9ca3af", label="Activity"),
}


def _clock_or_none(value):
    if value is None or value == "":
        return None
    clock = normalize_clock(value)
    if clock is None:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return clock


class Attachment(BaseModel):
    name: Optional[str] = None
    url: str


class TimelineItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timeline_id: str
    title: str
    description: Optional[str] = None
    start_time: Optional[str] = None  # "HH:MM"
    end_time: Optional[str] = None  # "HH:MM"
    order_index: int = 0
    icon: Optional[str] = None
    color: Optional[str] = None
    type: TimelineItemType = TimelineItemType.ACADEMIC

    # Lesson plan content (academic items only)
    lesson_plan_id: Optional[str] = None
    topic: Optional[str] = None
    objective: Optional[str] = None
    materials: Optional[str] = None
    homework: Optional[str] = None
    teacher_name: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)

    cancelled: bool = False
    source: str = "template"

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def check_times(cls, value):
        return _clock_or_none(value)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value):
        if isinstance(value, TimelineItemType):
            return value
        return TimelineItemType.coerce(value)


class MergedTimelineEntry(TimelineItem):
    status: TimelineStatus = TimelineStatus.FUTURE


class TimelineTemplate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_default: bool = False
    active: Optional[bool] = None
    items: List[TimelineItem] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Subject(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    emoji: Optional[str] = None
    color: Optional[str] = None


class LessonPlan(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    class_id: str
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    subject: Optional[Subject] = None
    topic: Optional[str] = None
    objective: Optional[str] = None
    materials: Optional[str] = None
    notes: Optional[str] = None
    homework: Optional[str] = None
    teacher_name: Optional[str] = None
    status: str = "planned"  # planned, scheduled, completed, cancelled, rescheduled
    attachments: List[Attachment] = Field(default_factory=list)


# --- API payloads

class TemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Template name is required")
        return value.strip()


class ItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: Optional[TimelineItemType] = None
    icon: Optional[str] = None
    color: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def check_times(cls, value):
        return _clock_or_none(value)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value):
        # only runs for fields the caller sent, so None here is an explicit null
        if value is None or not value.strip():
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("type", mode="before")
    @classmethod
    def type_required(cls, value):
        if value is None:
            raise ValueError("Item type cannot be empty")
        return value


class DisplayModeUpdate(BaseModel):
    mode: str


class SettingUpdate(BaseModel):
    value: str
