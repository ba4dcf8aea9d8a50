from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .models import (
    ITEM_TYPE_STYLES, Attachment, MergedTimelineEntry, TimelineItemType, TimelineStatus
)

TIME_PLACEHOLDER = "--:--"
DEFAULT_ATTACHMENT_NAME = "Attachment"


class NodeStyle(BaseModel):
    emphasis: str  # elevated, filled, muted
    highlight: bool = False
    muted: bool = False
    pulse: bool = False


# Each status must map to a visually distinct treatment
STATUS_STYLES: Dict[TimelineStatus, NodeStyle] = {
    TimelineStatus.CURRENT: NodeStyle(emphasis="elevated", highlight=True, pulse=True),
    TimelineStatus.PAST: NodeStyle(emphasis="filled"),
    TimelineStatus.FUTURE: NodeStyle(emphasis="muted", muted=True),
}


class TimelineNode(BaseModel):
    id: str
    title: str
    time_label: str
    show_time: bool
    icon: str
    color: str
    type: TimelineItemType
    status: TimelineStatus
    style: NodeStyle
    has_connector: bool
    connector_elapsed: bool
    clickable: bool
    cancelled: bool = False


class TimelineStrip(BaseModel):
    nodes: List[TimelineNode] = Field(default_factory=list)
    current_index: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.nodes


class DetailSection(BaseModel):
    key: str
    title: str
    body: str
    highlight: bool = False


class LessonDetail(BaseModel):
    id: str
    type_label: str
    title: str
    time_range: Optional[str] = None
    teacher_name: Optional[str] = None
    cancelled: bool = False
    sections: List[DetailSection] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)


# key, heading, highlighted
_DETAIL_SECTIONS = (
    ("description", "Details", False),
    ("topic", "Lesson Topic", False),
    ("objective", "Learning Objectives", False),
    ("materials", "Required Materials", False),
    ("homework", "Homework", True),
)


def is_clickable(entry: MergedTimelineEntry) -> bool:
    return bool(entry.description) or entry.type == TimelineItemType.ACADEMIC


def build_node(entry: MergedTimelineEntry, is_last: bool) -> TimelineNode:
    type_style = ITEM_TYPE_STYLES[entry.type]
    return TimelineNode(
        id=entry.id,
        title=entry.title,
        time_label=entry.start_time or TIME_PLACEHOLDER,
        show_time=entry.start_time is not None,
        icon=entry.icon or type_style.icon,
        color=entry.color or type_style.color,
        type=entry.type,
        status=entry.status,
        style=STATUS_STYLES[entry.status],
        has_connector=not is_last,
        connector_elapsed=not is_last and entry.status in (TimelineStatus.PAST, TimelineStatus.CURRENT),
        clickable=is_clickable(entry),
        cancelled=entry.cancelled,
    )


def build_timeline_strip(entries: Sequence[MergedTimelineEntry]) -> TimelineStrip:
    nodes = [build_node(entry, index == len(entries) - 1) for index, entry in enumerate(entries)]
    current_index = next(
        (i for i, node in enumerate(nodes) if node.status == TimelineStatus.CURRENT), None
    )
    return TimelineStrip(nodes=nodes, current_index=current_index)


def _time_range(entry: MergedTimelineEntry) -> Optional[str]:
    if entry.start_time and entry.end_time:
        return f"{entry.start_time} - {entry.end_time}"
    return entry.start_time or entry.end_time


def build_lesson_detail(entry: MergedTimelineEntry) -> Optional[LessonDetail]:
    """Detail view for a clickable entry; sections without content are left out."""
    if not is_clickable(entry):
        return None

    sections = []
    for key, heading, highlight in _DETAIL_SECTIONS:
        body = getattr(entry, key)
        if body and body.strip():
            sections.append(DetailSection(key=key, title=heading, body=body, highlight=highlight))

    attachments = [
        Attachment(name=a.name or DEFAULT_ATTACHMENT_NAME, url=a.url) for a in entry.attachments
    ]

    return LessonDetail(
        id=entry.id,
        type_label=ITEM_TYPE_STYLES[entry.type].label,
        title=entry.title,
        time_range=_time_range(entry),
        teacher_name=entry.teacher_name,
        cancelled=entry.cancelled,
        sections=sections,
        attachments=attachments,
    )


def find_entry(entries: Sequence[MergedTimelineEntry], item_id: str) -> Optional[MergedTimelineEntry]:
    return next((e for e in entries if e.id == item_id), None)
