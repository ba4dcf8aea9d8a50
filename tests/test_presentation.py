"""Tests for the timeline strip and lesson detail view models."""

from timeline.merge import merge_timelines
from timeline.models import ITEM_TYPE_STYLES, TimelineItem, TimelineItemType, TimelineStatus
from timeline.presentation import (
    STATUS_STYLES,
    TIME_PLACEHOLDER,
    build_lesson_detail,
    build_timeline_strip,
    find_entry,
)


def entries_at(now, *items):
    return merge_timelines(list(items), [], now=now)


def item(item_id, start=None, type="other", **fields):
    return TimelineItem(id=item_id, timeline_id="T1", title=item_id.title(), start_time=start, type=type, **fields)


class TestStrip:
    def test_nodes_follow_merged_order_and_status(self):
        strip = build_timeline_strip(entries_at(
            "09:00", item("arrival", "08:00", "transport"), item("math", "08:30", "academic"), item("lunch", "12:00", "food")
        ))
        assert [n.id for n in strip.nodes] == ["arrival", "math", "lunch"]
        assert [n.status for n in strip.nodes] == [TimelineStatus.PAST, TimelineStatus.CURRENT, TimelineStatus.FUTURE]
        assert strip.current_index == 1

    def test_connectors(self):
        strip = build_timeline_strip(entries_at(
            "09:00", item("a", "08:00"), item("b", "08:30"), item("c", "10:00"), item("d", "11:00")
        ))
        assert [n.connector_elapsed for n in strip.nodes] == [True, True, False, False]
        assert [n.has_connector for n in strip.nodes] == [True, True, True, False]

    def test_statuses_are_visually_distinct(self):
        styles = [STATUS_STYLES[s] for s in TimelineStatus]
        assert len({s.emphasis for s in styles}) == len(styles)
        assert STATUS_STYLES[TimelineStatus.CURRENT].highlight
        assert STATUS_STYLES[TimelineStatus.FUTURE].muted

    def test_untimed_node_uses_placeholder(self):
        node = build_timeline_strip(entries_at("09:00", item("free-play"))).nodes[0]
        assert node.time_label == TIME_PLACEHOLDER
        assert node.show_time is False

    def test_icon_and_color_from_type_table(self):
        node = build_timeline_strip(entries_at("09:00", item("lunch", "12:00", "food"))).nodes[0]
        assert node.icon == ITEM_TYPE_STYLES[TimelineItemType.FOOD].icon
        assert node.color == ITEM_TYPE_STYLES[TimelineItemType.FOOD].color

    def test_item_icon_and_color_override_type_table(self):
        node = build_timeline_strip(entries_at(
            "09:00", item("nap", "13:00", "rest", icon="bed", color="#123456")
        )).nodes[0]
        assert (node.icon, node.color) == ("bed", "#123456")

    def test_every_type_has_a_style(self):
        assert set(ITEM_TYPE_STYLES) == set(TimelineItemType)

    def test_clickable_only_for_academic_or_described(self):
        strip = build_timeline_strip(entries_at(
            "09:00",
            item("math", "08:00", "academic"),
            item("snack", "09:30", "food", description="Fruit salad"),
            item("nap", "13:00", "rest"),
        ))
        assert [n.clickable for n in strip.nodes] == [True, True, False]

    def test_empty_strip(self):
        strip = build_timeline_strip([])
        assert strip.is_empty
        assert strip.current_index is None


class TestLessonDetail:
    def test_sections_present_only_with_content(self):
        entry = entries_at("09:00", item(
            "math", "09:00", "academic", end_time="10:00", topic="Fractions", homework="Page 12", materials="  ",
            teacher_name="Ana",
        ))[0]
        detail = build_lesson_detail(entry)
        assert [s.key for s in detail.sections] == ["topic", "homework"]
        assert detail.time_range == "09:00 - 10:00"
        assert detail.teacher_name == "Ana"
        assert detail.type_label == "Academic"

    def test_homework_is_highlighted(self):
        entry = entries_at("09:00", item("math", "09:00", "academic", topic="Fractions", homework="Page 12"))[0]
        sections = {s.key: s for s in build_lesson_detail(entry).sections}
        assert sections["homework"].highlight is True
        assert sections["topic"].highlight is False

    def test_attachments_listed_with_fallback_name(self):
        entry = entries_at("09:00", item("math", "09:00", "academic", attachments=[
            {"name": "Worksheet", "url": "https://files.example/ws.pdf"},
            {"url": "https://files.example/extra.pdf"},
        ]))[0]
        detail = build_lesson_detail(entry)
        assert [a.name for a in detail.attachments] == ["Worksheet", "Attachment"]

    def test_bare_academic_entry_has_no_sections(self):
        detail = build_lesson_detail(entries_at("09:00", item("math", "09:00", "academic"))[0])
        assert detail.sections == []
        assert detail.attachments == []

    def test_inert_entry_has_no_detail(self):
        assert build_lesson_detail(entries_at("09:00", item("nap", "13:00", "rest"))[0]) is None

    def test_find_entry(self):
        entries = entries_at("09:00", item("a", "08:00"), item("b", "09:00"))
        assert find_entry(entries, "b").id == "b"
        assert find_entry(entries, "zzz") is None
