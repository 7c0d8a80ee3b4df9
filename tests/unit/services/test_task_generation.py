"""
Task generation tests.

The fixed clock puts "today" at 2026-03-10, so a 7-day horizon covers due
dates from 2026-03-10 00:00 through 2026-03-17 00:00 inclusive.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from growcare.domain.strain_profiles import STRAIN_SCHEDULING_TABLE, StrainCharacteristics
from growcare.domain.task_catalog import describe_task
from growcare.enums import GrowthStage, Priority, StrainType, TaskType
from growcare.services.application.task_generator import frequency_days, week_number

TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "base, modifier, expected",
    [(3, 1.0, 3), (3, 1.3, 2), (5, 2.0, 3), (1, 3.0, 1), (3, 0.1, 30), (14, 1.2, 12)],
)
def test_frequency_days(base, modifier, expected):
    assert frequency_days(base, modifier) == expected


_BASE_FREQUENCIES = sorted(
    {config.base_frequency_days(task_type) for config in STRAIN_SCHEDULING_TABLE.values() for task_type in TaskType}
)
_MODIFIERS = sorted(
    {m for config in STRAIN_SCHEDULING_TABLE.values() for m in config.growth_stage_modifiers.values()}
    | {0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 2.5, 3.0, 5.0}
)


@pytest.mark.parametrize("base", _BASE_FREQUENCIES)
def test_frequency_shrinks_as_modifier_grows(base):
    intervals = [frequency_days(base, modifier) for modifier in _MODIFIERS]
    assert all(later <= earlier for earlier, later in zip(intervals, intervals[1:]))
    assert min(intervals) >= 1


def test_week_number_starts_at_zero():
    assert week_number(TODAY, TODAY) == 0
    assert week_number(TODAY, TODAY + timedelta(days=3)) == 1
    assert week_number(TODAY, TODAY + timedelta(days=7)) == 1
    assert week_number(TODAY, TODAY + timedelta(days=8)) == 2


class TestStageGeneration:
    def test_vegetative_unknown_strain(self, generator, make_plant):
        tasks = generator.generate(make_plant())

        counts = Counter(t.task_type for t in tasks)
        assert counts == {
            TaskType.WATERING: 3,
            TaskType.FEEDING: 2,
            TaskType.INSPECTION: 4,
            TaskType.PRUNING: 1,
            TaskType.TRAINING: 2,
        }
        watering = [t for t in tasks if t.task_type == TaskType.WATERING]
        assert [t.due_date for t in watering] == [TODAY, TODAY + timedelta(days=3), TODAY + timedelta(days=6)]
        assert [t.week_number for t in watering] == [0, 1, 1]

    @pytest.mark.parametrize("strain_type", list(StrainType))
    @pytest.mark.parametrize("stage", list(GrowthStage))
    def test_generation_is_repeatable(self, generator, make_plant, strain_type, stage):
        plant = make_plant(stage=stage, cannabis_type=strain_type.value)

        def summary():
            return [(t.task_type, t.due_date, t.priority) for t in generator.generate(plant)]

        first = summary()
        assert first
        assert summary() == first

    def test_task_fields_come_from_tables(self, generator, make_plant):
        tasks = generator.generate(make_plant(name="Blue #1", user_id="u7"))
        first = tasks[0]
        assert first.task_type == TaskType.WATERING
        assert first.title == "Water Blue #1"
        assert first.user_id == "u7"
        assert first.priority == Priority.HIGH
        assert first.estimated_duration_minutes == 15
        assert first.description == describe_task(TaskType.WATERING, GrowthStage.VEGETATIVE)
        assert first.growth_stage == GrowthStage.VEGETATIVE
        assert first.auto_generated

        inspection = next(t for t in tasks if t.task_type == TaskType.INSPECTION)
        assert inspection.priority == Priority.MEDIUM

    def test_every_due_date_inside_horizon(self, generator, make_plant):
        tasks = generator.generate(make_plant(), GrowthStage.FLOWERING)
        assert tasks
        assert all(TODAY <= t.due_date <= TODAY + timedelta(days=7) for t in tasks)
        assert {t.task_type for t in tasks} == {TaskType.WATERING, TaskType.FEEDING, TaskType.INSPECTION}

    def test_stage_argument_overrides_plant_stage(self, generator, make_plant):
        tasks = generator.generate(make_plant(stage=GrowthStage.VEGETATIVE), "harvest")
        assert [t.task_type for t in tasks] == [TaskType.HARVEST]
        assert tasks[0].priority == Priority.CRITICAL

    @pytest.mark.parametrize("stage", ["budding", None])
    def test_unknown_stage_generates_nothing(self, generator, make_plant, stage):
        assert generator.generate(make_plant(stage=None), stage) == []

    def test_cannabis_type_used_when_strain_unknown(self, generator, make_plant):
        tasks = generator.generate(make_plant(cannabis_type="sativa"))
        counts = Counter(t.task_type for t in tasks)
        assert counts[TaskType.WATERING] == 4
        assert counts[TaskType.INSPECTION] == 8
        assert len(tasks) == 17


class TestRecurringGeneration:
    def test_default_horizon_is_thirty_days(self, generator, make_plant):
        tasks = generator.generate_recurring(make_plant(), TaskType.WATERING, 10)
        assert [t.sequence_number for t in tasks] == [1, 2, 3, 4]
        assert tasks[-1].due_date == TODAY + timedelta(days=30)

    def test_end_date_is_inclusive(self, generator, make_plant):
        tasks = generator.generate_recurring(
            make_plant(), TaskType.FEEDING, 2, end_date=TODAY + timedelta(days=4)
        )
        assert [t.due_date for t in tasks] == [TODAY, TODAY + timedelta(days=2), TODAY + timedelta(days=4)]

    def test_plant_without_stage_gets_generic_description(self, generator, make_plant):
        tasks = generator.generate_recurring(make_plant(stage=None), TaskType.WATERING, 7)
        assert tasks[0].priority == Priority.MEDIUM
        assert tasks[0].description == "Perform watering task for Basil."
        assert tasks[0].growth_stage is None

    def test_interval_below_one_day_yields_nothing(self, generator, make_plant):
        assert generator.generate_recurring(make_plant(), TaskType.WATERING, 0) == []


class TestStrainAdjustments:
    def _shifted(self, generator, plant, strain):
        tasks = generator.generate(plant, strain=strain)
        adjusted = generator.apply_strain_adjustments(tasks, strain)
        return list(zip(tasks, adjusted))

    def test_sativa_shifts_and_boosts(self, generator, strain_resolver, make_plant):
        plant = make_plant(strain_id="sour-diesel")
        strain = strain_resolver.resolve(plant)
        pairs = self._shifted(generator, plant, strain)

        for before, after in pairs:
            delta = after.due_date - before.due_date
            if before.task_type == TaskType.WATERING:
                assert delta == timedelta(hours=-5)
            elif before.task_type == TaskType.PRUNING:
                assert delta == timedelta(hours=-7)
            elif before.task_type == TaskType.TRAINING:
                assert delta == timedelta(0)
                assert before.priority == Priority.HIGH
                assert after.priority == Priority.CRITICAL
            else:
                assert after is before

    def test_indica_delays_feeding_and_inspection(self, generator, strain_resolver, make_plant):
        plant = make_plant(strain_id="northern-lights")
        pairs = self._shifted(generator, plant, strain_resolver.resolve(plant))
        deltas = {b.task_type: a.due_date - b.due_date for b, a in pairs}
        assert deltas[TaskType.FEEDING] == timedelta(hours=2)
        assert deltas[TaskType.INSPECTION] == timedelta(hours=5)
        assert deltas[TaskType.WATERING] == timedelta(0)

    def test_hard_hybrid_inspection(self, generator, make_plant):
        strain = StrainCharacteristics(
            strain_id="h1", name="Gelato", strain_type=StrainType.HYBRID, grow_difficulty="hard"
        )
        pairs = self._shifted(generator, make_plant(), strain)
        inspection = [(b, a) for b, a in pairs if b.task_type == TaskType.INSPECTION]
        assert inspection
        for before, after in inspection:
            assert after.due_date - before.due_date == timedelta(hours=-16)
            assert after.priority == Priority.HIGH
            assert after.description.endswith(" Strain-specific: Gelato (hybrid)")

    def test_unresolved_strain_is_unchanged(self, generator, make_plant):
        tasks = generator.generate(make_plant())
        assert generator.apply_strain_adjustments(tasks, StrainCharacteristics.unknown()) == tasks
