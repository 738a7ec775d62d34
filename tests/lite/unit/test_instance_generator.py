"""
Unit tests for clinicbot_lite.domain.instance_generator.generate

Covers:
- standard day/month stepping from the anchor date
- eow / midm / eom cycle windows and synthetic ids
- occurrence cap, reversed ranges and completed tasks
- snapshot independence and overdue flags
"""

import logging
from datetime import UTC, date, datetime, timedelta

import pytest

from clinicbot_lite.core.config_manager import EngineConfig
from clinicbot_lite.domain.instance_generator import generate, instance_id
from clinicbot_lite.domain.task_models import (
    CyclePeriod,
    RecurrencePattern,
    Task,
    TaskStatus,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

NOW = datetime(2024, 3, 5, 12, 0)


class TestEmptyResults:
    def test_reversed_range_is_empty(self, make_task):
        task = make_task(recurrence="daily")

        assert generate(task, date(2024, 3, 10), date(2024, 3, 1), now=NOW) == []

    def test_non_recurring_is_empty(self, make_task):
        assert generate(make_task(), date(2024, 3, 1), date(2024, 3, 31), now=NOW) == []

    def test_completed_task_is_empty(self, make_task):
        task = make_task(
            recurrence="eow", status="completed", completed_at="2024-03-04T10:00:00"
        )

        assert generate(task, date(2024, 3, 1), date(2024, 3, 31), now=NOW) == []

    def test_unsupported_recurrence_logs_and_yields_nothing(self, caplog):
        # model_construct bypasses validation, as a corrupted snapshot would
        task = Task.model_construct(
            id="broken",
            status=TaskStatus.PENDING,
            recurrence="fortnightly",
            created_at=datetime(2024, 3, 1),
        )

        with caplog.at_level(logging.WARNING):
            result = generate(task, date(2024, 3, 1), date(2024, 3, 31), now=NOW)

        assert result == []
        assert "unsupported recurrence" in caplog.text


class TestStandardPatterns:
    def test_daily_one_instance_per_day_from_anchor(self, make_task):
        task = make_task(id="t1", recurrence="daily", created_at="2024-03-05T08:30:00")

        instances = generate(task, date(2024, 3, 1), date(2024, 3, 10), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 3, d) for d in range(5, 11)
        ]
        assert instances[0].id == "t1_2024-03-05"
        assert instances[0].parent_task_id == "t1"
        assert instances[0].original_due_date == datetime(2024, 3, 5, 8, 30)

    def test_daily_anchor_before_range_starts_at_range(self, make_task):
        task = make_task(recurrence="daily", created_at="2024-01-01T08:00:00")

        instances = generate(task, date(2024, 3, 1), date(2024, 3, 3), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 3, 1),
            date(2024, 3, 2),
            date(2024, 3, 3),
        ]

    def test_weekly_steps_seven_days_from_first_candidate(self, make_task):
        task = make_task(recurrence="weekly", created_at="2024-02-01T08:00:00")

        instances = generate(task, date(2024, 3, 4), date(2024, 3, 31), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 3, 4),
            date(2024, 3, 11),
            date(2024, 3, 18),
            date(2024, 3, 25),
        ]

    def test_biweekly_steps_fourteen_days(self, make_task):
        task = make_task(recurrence="biweekly", custom_due_date="2024-03-06T09:00:00")

        instances = generate(task, date(2024, 3, 1), date(2024, 4, 30), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 3, 6),
            date(2024, 3, 20),
            date(2024, 4, 3),
            date(2024, 4, 17),
        ]

    def test_monthly_clamps_month_end_without_drift(self, make_task):
        task = make_task(recurrence="monthly", custom_due_date="2024-01-31T09:00:00")

        instances = generate(task, date(2024, 1, 1), date(2024, 5, 31), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
            date(2024, 5, 31),
        ]

    def test_quarterly_and_yearly(self, make_task):
        quarterly = make_task(recurrence="quarterly", custom_due_date="2024-01-15")
        yearly = make_task(recurrence="yearly", custom_due_date="2024-06-01")

        q = generate(quarterly, date(2024, 1, 1), date(2024, 12, 31), now=NOW)
        y = generate(yearly, date(2024, 1, 1), date(2027, 12, 31), now=NOW)

        assert [i.instance_date.month for i in q] == [1, 4, 7, 10]
        assert [i.instance_date for i in y] == [
            date(2024, 6, 1),
            date(2025, 6, 1),
            date(2026, 6, 1),
            date(2027, 6, 1),
        ]

    def test_generated_date_anchors_when_no_custom_due(self, make_task):
        task = make_task(
            recurrence="daily",
            created_at="2024-02-01T08:00:00",
            generated_date="2024-03-08T00:00:00",
        )

        instances = generate(task, date(2024, 3, 1), date(2024, 3, 10), now=NOW)

        assert instances[0].instance_date == date(2024, 3, 8)
        assert len(instances) == 3

    def test_capped_at_365_occurrences(self, make_task):
        task = make_task(recurrence="daily", created_at="2020-01-01T00:00:00")

        instances = generate(task, date(2020, 1, 1), date(2030, 12, 31), now=NOW)

        assert len(instances) == 365
        assert instances[-1].instance_date == date(2020, 1, 1) + timedelta(days=364)

    def test_configured_cap_lowers_limit(self, make_task):
        task = make_task(recurrence="daily", created_at="2020-01-01T00:00:00")
        config = EngineConfig(max_occurrences_per_rule=10)

        instances = generate(task, date(2020, 1, 1), date(2020, 12, 31), now=NOW, config=config)

        assert len(instances) == 10

    def test_configured_cap_never_exceeds_365(self, make_task):
        task = make_task(recurrence="daily", created_at="2020-01-01T00:00:00")
        config = EngineConfig(max_occurrences_per_rule=5000)

        instances = generate(task, date(2020, 1, 1), date(2030, 12, 31), now=NOW, config=config)

        assert len(instances) == 365

    def test_datetime_bounds_are_reduced_to_days(self, make_task):
        task = make_task(recurrence="daily", created_at="2024-03-01T10:00:00")

        instances = generate(
            task,
            datetime(2024, 3, 2, 0, 0, tzinfo=UTC),
            datetime(2024, 3, 3, 23, 59, 59, tzinfo=UTC),
            now=NOW,
        )

        assert [i.instance_date for i in instances] == [date(2024, 3, 2), date(2024, 3, 3)]


class TestEndOfWeek:
    def test_full_week_yields_seven_distinct_instances(self, make_task):
        task = make_task(id="w", recurrence="eow")

        instances = generate(task, date(2024, 3, 4), date(2024, 3, 10), now=NOW)

        assert len(instances) == 7
        assert len({i.id for i in instances}) == 7
        assert {i.instance_date.weekday() for i in instances} == set(range(7))
        assert instances[0].id == "w_eow_2024-03-04"
        assert all(i.original_due_date == datetime(2024, 3, 10, 23, 59, 59) for i in instances)

    def test_partial_weeks_are_clipped_to_range(self, make_task):
        task = make_task(recurrence="eow")

        instances = generate(task, date(2024, 3, 6), date(2024, 3, 12), now=NOW)

        assert [i.instance_date for i in instances] == [
            date(2024, 3, d) for d in range(6, 13)
        ]
        # Monday 11th starts a new week with a new Sunday deadline
        assert instances[-1].original_due_date == datetime(2024, 3, 17, 23, 59, 59)

    def test_ascending_order_across_weeks(self, make_task):
        instances = generate(make_task(recurrence="eow"), date(2024, 2, 26), date(2024, 3, 17), now=NOW)

        days = [i.instance_date for i in instances]
        assert days == sorted(days)
        assert len(days) == 21


class TestMidMonth:
    def test_two_cycles_per_month(self, make_task):
        task = make_task(id="m", recurrence="midm")

        instances = generate(task, date(2024, 3, 1), date(2024, 3, 31), now=NOW)

        assert len(instances) == 14
        assert instances[0].id == "m_midm_first_2024-03-01"
        assert instances[-1].id == "m_midm_second_2024-03-21"
        assert {i.instance_date.day for i in instances} == set(range(1, 8)) | set(range(15, 22))
        assert instances[0].period == CyclePeriod.FIRST
        assert instances[0].original_due_date == datetime(2024, 3, 7, 23, 59, 59)
        assert instances[-1].original_due_date == datetime(2024, 3, 21, 23, 59, 59)

    def test_windows_clipped_to_range(self, make_task):
        instances = generate(make_task(recurrence="midm"), date(2024, 3, 5), date(2024, 3, 16), now=NOW)

        assert [i.instance_date.day for i in instances] == [5, 6, 7, 15, 16]

    def test_range_between_windows_is_empty(self, make_task):
        assert generate(make_task(recurrence="midm"), date(2024, 3, 8), date(2024, 3, 14), now=NOW) == []


class TestEndOfMonth:
    def test_start_and_end_windows(self, make_task):
        task = make_task(id="e", recurrence="eom")

        instances = generate(task, date(2024, 3, 1), date(2024, 3, 31), now=NOW)

        assert len(instances) == 12
        assert instances[0].id == "e_eom_start_2024-03-01"
        assert instances[4].id == "e_eom_start_2024-03-05"
        assert instances[5].id == "e_eom_end_2024-03-25"
        assert instances[-1].id == "e_eom_end_2024-03-31"
        assert all(i.original_due_date == datetime(2024, 3, 31, 23, 59, 59) for i in instances)

    def test_leap_february(self, make_task):
        instances = generate(make_task(recurrence="eom"), date(2024, 2, 1), date(2024, 2, 29), now=NOW)

        assert [i.instance_date.day for i in instances] == [1, 2, 3, 4, 5, 25, 26, 27, 28, 29]

    def test_range_spanning_month_boundary(self, make_task):
        instances = generate(make_task(recurrence="eom"), date(2024, 3, 30), date(2024, 4, 2), now=NOW)

        assert [(i.instance_date, i.period) for i in instances] == [
            (date(2024, 3, 30), CyclePeriod.END),
            (date(2024, 3, 31), CyclePeriod.END),
            (date(2024, 4, 1), CyclePeriod.START),
            (date(2024, 4, 2), CyclePeriod.START),
        ]


class TestSplitCycleDispatch:
    @pytest.mark.parametrize(
        ("recurrence", "count"),
        [("eow", 31), ("midm", 14), ("eom", 12)],
    )
    def test_each_split_cycle_pattern_generates(self, make_task, recurrence, count):
        instances = generate(make_task(recurrence=recurrence), date(2024, 3, 1), date(2024, 3, 31), now=NOW)

        assert len(instances) == count
        assert all(i.recurrence == RecurrencePattern(recurrence) for i in instances)


class TestSnapshots:
    def test_generation_is_deterministic(self, make_task):
        task = make_task(recurrence="midm")

        first = generate(task, date(2024, 3, 1), date(2024, 4, 30), now=NOW)
        second = generate(task, date(2024, 3, 1), date(2024, 4, 30), now=NOW)

        assert [i.id for i in first] == [i.id for i in second]
        assert first == second

    def test_instances_copy_mutable_fields(self, make_task):
        task = make_task(
            recurrence="daily", status="in-progress", assigned_to="alice", claimed_by="bob"
        )

        instances = generate(task, date(2024, 3, 5), date(2024, 3, 6), now=NOW)
        reassigned = task.model_copy(update={"assigned_to": "carol"})
        later = generate(reassigned, date(2024, 3, 5), date(2024, 3, 6), now=NOW)

        assert all(i.assigned_to == "alice" for i in instances)
        assert all(i.claimed_by == "bob" for i in instances)
        assert all(i.status == TaskStatus.IN_PROGRESS for i in instances)
        assert all(i.assigned_to == "carol" for i in later)

    def test_task_is_not_mutated(self, make_task):
        task = make_task(recurrence="eow", assigned_to="alice")
        before = task.model_dump()

        generate(task, date(2024, 3, 1), date(2024, 3, 31), now=NOW)

        assert task.model_dump() == before

    def test_instance_id_helper(self):
        assert instance_id("p", date(2024, 3, 5), RecurrencePattern.WEEKLY) == "p_2024-03-05"
        assert (
            instance_id("p", date(2024, 3, 5), RecurrencePattern.EOM, CyclePeriod.START)
            == "p_eom_start_2024-03-05"
        )


class TestOverdueFlags:
    def test_past_week_instances_are_flagged(self, make_task):
        task = make_task(recurrence="eow")

        instances = generate(
            task, date(2024, 3, 4), date(2024, 3, 10), now=datetime(2024, 3, 11, 0, 0, 1)
        )

        assert all(i.is_overdue for i in instances)
        assert instances[0].overdue_reason == "Not completed by end of week (Sunday)"

    def test_current_week_instances_are_not_flagged(self, make_task):
        task = make_task(recurrence="eow")

        instances = generate(
            task, date(2024, 3, 4), date(2024, 3, 10), now=datetime(2024, 3, 10, 23, 59, 59)
        )

        assert not any(i.is_overdue for i in instances)
        assert all(i.overdue_reason is None for i in instances)

    def test_standard_patterns_never_flagged(self, make_task):
        task = make_task(recurrence="daily", created_at="2024-01-01T08:00:00")

        instances = generate(task, date(2024, 1, 1), date(2024, 1, 31), now=datetime(2030, 1, 1))

        assert not any(i.is_overdue for i in instances)
