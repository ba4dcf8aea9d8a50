"""Tests for the timeline merge and status engine."""

import logging
from datetime import datetime, time

import pytest

from timeline.merge import (
    compute_status,
    lesson_plan_to_item,
    merge_day,
    merge_timelines,
    sort_items,
)
from timeline.models import (
    LessonPlan,
    Subject,
    TimelineItem,
    TimelineItemType,
    TimelineStatus,
    TimelineTemplate,
)

PAST, CURRENT, FUTURE = TimelineStatus.PAST, TimelineStatus.CURRENT, TimelineStatus.FUTURE


def item(item_id, start=None, title=None, **fields):
    return TimelineItem(id=item_id, timeline_id="T1", title=title or item_id, start_time=start, **fields)


def statuses(entries):
    return [e.status for e in entries]


# ─── ORDERING ────────────────────────────────────────────────────────────────

class TestOrdering:
    def test_output_is_concatenation(self):
        """Nothing is dropped, template and external items are all present."""
        template = [item("a", "08:00"), item("b"), item("c", "12:00")]
        external = [item("x", "09:00"), item("y", "12:00")]
        merged = merge_timelines(template, external, now="10:00")
        assert len(merged) == len(template) + len(external)
        assert {e.id for e in merged} == {"a", "b", "c", "x", "y"}

    def test_sorted_by_start_time(self):
        merged = merge_timelines(
            [item("lunch", "12:00"), item("arrival", "07:30")],
            [item("math", "09:15"), item("art", "13:45")],
            now="00:00",
        )
        starts = [e.start_time for e in merged]
        assert starts == ["07:30", "09:15", "12:00", "13:45"]
        for a, b in zip(merged, merged[1:]):
            assert a.start_time is None or b.start_time is None or a.start_time <= b.start_time

    def test_untimed_items_sort_last_in_input_order(self):
        merged = merge_timelines(
            [item("u1"), item("t1", "10:00"), item("u2")],
            [item("u3"), item("t2", "08:00")],
            now="09:00",
        )
        assert [e.id for e in merged] == ["t2", "t1", "u1", "u2", "u3"]

    def test_ties_keep_input_order(self):
        ordered = sort_items([item("first", "10:00"), item("second", "10:00"), item("third", "09:00")])
        assert [i.id for i in ordered] == ["third", "first", "second"]

    def test_sql_time_values_are_truncated(self):
        """Times read as HH:MM:SS still sort and display as HH:MM."""
        merged = merge_timelines([item("a", "08:00:00"), item("b", "07:45:00")], now="08:00")
        assert [e.start_time for e in merged] == ["07:45", "08:00"]


# ─── STATUS ──────────────────────────────────────────────────────────────────

class TestStatus:
    def test_three_items_mid_morning(self):
        entries = merge_timelines([item("a", "08:00"), item("b", "09:30"), item("c", "11:00")], now="09:00")
        assert statuses(entries) == [PAST, CURRENT, FUTURE]

    def test_last_item_never_past(self):
        entries = merge_timelines([item("a", "08:00"), item("b", "15:00")], now="20:00")
        assert statuses(entries) == [PAST, CURRENT]

    def test_before_day_starts_everything_future(self):
        entries = merge_timelines([item("a", "08:00"), item("b", "09:00")], now="06:59")
        assert statuses(entries) == [FUTURE, FUTURE]

    def test_boundary_belongs_to_next_item(self):
        entries = merge_timelines([item("a", "08:00"), item("b", "09:00")], now="09:00")
        assert statuses(entries) == [PAST, CURRENT]

    @pytest.mark.parametrize("now", ["00:00", "08:30", "23:59"])
    def test_missing_start_time_is_always_future_and_last(self, now):
        entries = merge_timelines([item("untimed"), item("a", "08:00")], [item("b", "09:00")], now=now)
        assert entries[-1].id == "untimed"
        assert entries[-1].status == FUTURE

    def test_timed_item_before_untimed_tail_uses_last_item_rule(self):
        entries = merge_timelines([item("a", "08:00"), item("b")], now="22:00")
        assert statuses(entries) == [CURRENT, FUTURE]

    def test_declared_end_time_is_ignored(self):
        """An item's end is the next item's start, not its own end_time."""
        entries = merge_timelines(
            [item("a", "08:00", end_time="08:15"), item("b", "10:00")], now="09:00"
        )
        assert statuses(entries) == [CURRENT, FUTURE]

    def test_compute_status_directly(self):
        assert compute_status(None, "09:00", 600) == FUTURE
        assert compute_status("08:00", None, 479) == FUTURE
        assert compute_status("08:00", None, 480) == CURRENT


# ─── DETERMINISM / NOW ───────────────────────────────────────────────────────

class TestDeterminism:
    def test_same_inputs_same_output(self):
        template = [item("a", "08:00"), item("b"), item("c", "08:00")]
        external = [item("x", "07:00"), item("y")]
        first = merge_timelines(template, external, now="08:10")
        second = merge_timelines(template, external, now="08:10")
        assert [e.model_dump() for e in first] == [e.model_dump() for e in second]

    def test_inputs_not_mutated(self):
        template = [item("b", "09:00"), item("a", "08:00")]
        merge_timelines(template, [], now="08:30")
        assert [i.id for i in template] == ["b", "a"]

    @pytest.mark.parametrize("now", ["09:00", 540, time(9, 0), datetime(2026, 10, 19, 9, 0)])
    def test_now_representations(self, now):
        entries = merge_timelines([item("a", "08:00"), item("b", "09:30"), item("c", "11:00")], now=now)
        assert statuses(entries) == [PAST, CURRENT, FUTURE]

    def test_invalid_now_rejected(self):
        with pytest.raises(ValueError):
            merge_timelines([item("a", "08:00")], now="25:00")


# ─── LESSON PLANS ────────────────────────────────────────────────────────────

class TestLessonPlans:
    def make_plan(self, **fields):
        defaults = dict(id="LP1", class_id="C1", date="2026-10-19", start_time="09:00:00", end_time="10:00:00")
        defaults.update(fields)
        return LessonPlan(**defaults)

    def test_normalised_to_academic_item(self):
        plan = self.make_plan(
            subject=Subject(id="S1", name="Matemática", color="#10b981"),
            notes="Bring a ruler",
            topic="Fractions",
            homework="Page 12",
            teacher_name="Ana",
            attachments=[{"name": "worksheet.pdf", "url": "https://files.example/ws.pdf"}],
        )
        normalised = lesson_plan_to_item(plan)
        assert normalised.type == TimelineItemType.ACADEMIC
        assert normalised.title == "Matemática"
        assert normalised.description == "Bring a ruler"
        assert normalised.start_time == "09:00"
        assert normalised.end_time == "10:00"
        assert normalised.color == "#10b981"
        assert normalised.lesson_plan_id == "LP1"
        assert normalised.source == "lesson_plan"
        assert normalised.attachments[0].url == "https://files.example/ws.pdf"

    def test_missing_subject_falls_back_to_generic_title(self):
        assert lesson_plan_to_item(self.make_plan()).title == "Class"

    def test_cancelled_plans_pass_through(self):
        plans = [self.make_plan(id="LP1", status="cancelled"), self.make_plan(id="LP2", start_time="10:00")]
        entries = merge_day(None, plans, now="09:30")
        assert len(entries) == 2
        assert entries[0].cancelled is True
        assert entries[1].cancelled is False

    def test_merge_day_with_template(self):
        template = TimelineTemplate(
            id="T1", name="Rotina", items=[item("entrada", "08:00", "Entrada"), item("almoco", "12:00", "Almoço")]
        )
        plan = self.make_plan(subject=Subject(id="S1", name="Matemática"))
        entries = merge_day(template, [plan], now="09:15")
        assert [e.title for e in entries] == ["Entrada", "Matemática", "Almoço"]
        assert statuses(entries) == [PAST, CURRENT, FUTURE]


class TestDataQuality:
    def test_end_before_start_warns_without_failing(self, caplog):
        with caplog.at_level(logging.WARNING, logger="timeline.merge"):
            entries = merge_timelines([item("odd", "10:00", end_time="09:00")], now="10:30")
        assert entries[0].status == CURRENT
        assert "ends before it starts" in caplog.text

    def test_malformed_time_rejected_on_model(self):
        with pytest.raises(ValueError):
            item("bad", "8h30")

    def test_unknown_type_coerced_to_other(self):
        assert item("x", type="snack").type == TimelineItemType.OTHER
