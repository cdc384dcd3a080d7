"""Unit tests for data models - validation and defaults."""

import pytest
from datetime import date
from pydantic import ValidationError

from src.core.models import (
    DietPlan,
    EntryFilter,
    Goals,
    Meal,
    Plan,
    PlanCreate,
    PlanStatus,
    StepsEntry,
    WeightEntry,
    WeightUnit,
    Workout,
)


class TestPlan:
    """Tests for Plan model."""

    def test_defaults(self):
        """New plan is active, week 1, no pauses, default goals."""
        plan = Plan(user_id="u1", start_date=date(2024, 1, 1), number_of_weeks=4)
        assert plan.status == PlanStatus.ACTIVE
        assert plan.current_week == 1
        assert plan.paused_days == 0
        assert plan.paused_at is None
        assert plan.goals.daily_steps_goal == 10000
        assert plan.goals.weekly_workout_goal == 4
        assert plan.diet_plan.meals == []
        assert plan.id is not None

    @pytest.mark.parametrize("weeks", [0, 53, -1])
    def test_number_of_weeks_out_of_range(self, weeks):
        """Plan length must be 1 to 52 weeks."""
        with pytest.raises(ValidationError):
            PlanCreate(start_date=date(2024, 1, 1), number_of_weeks=weeks)

    @pytest.mark.parametrize("weeks", [1, 52])
    def test_number_of_weeks_bounds(self, weeks):
        assert PlanCreate(start_date=date(2024, 1, 1), number_of_weeks=weeks).number_of_weeks == weeks

    def test_start_date_required(self):
        """Missing start date is rejected."""
        with pytest.raises(ValidationError):
            PlanCreate(number_of_weeks=4)

    def test_negative_paused_days_rejected(self):
        with pytest.raises(ValidationError):
            Plan(user_id="u1", start_date=date(2024, 1, 1), number_of_weeks=4, paused_days=-1)

    def test_start_date_parsed_from_string(self):
        """ISO strings from Firestore round-trip into dates."""
        plan = Plan(user_id="u1", start_date="2024-01-01", number_of_weeks=4, status="paused")
        assert plan.start_date == date(2024, 1, 1)
        assert plan.status == PlanStatus.PAUSED

    @pytest.mark.parametrize("value", ["2024-01-01T08:30:00.000Z", "2024-01-01T23:59:59+00:00"])
    def test_create_accepts_timestamp(self, value):
        """A full timestamp is reduced to its calendar date."""
        assert PlanCreate(start_date=value, number_of_weeks=4).start_date == date(2024, 1, 1)

    def test_create_rejects_unparseable_start_date(self):
        with pytest.raises(ValidationError):
            PlanCreate(start_date="01/02/2024", number_of_weeks=4)

    def test_invalid_meal_time_rejected(self):
        with pytest.raises(ValidationError):
            DietPlan(meals=[{"time": "midnight_snack", "items": []}])

    def test_goals_reject_negative(self):
        with pytest.raises(ValidationError):
            Goals(daily_steps_goal=-5)


class TestEntries:
    """Tests for log entry models."""

    def test_weight_defaults_to_kg(self):
        entry = WeightEntry(user_id="u1", week=1, date=date(2024, 1, 1), weight=80)
        assert entry.unit == WeightUnit.KG
        assert entry.plan_id is None

    @pytest.mark.parametrize("weight", [19.9, 500.1])
    def test_weight_range(self, weight):
        with pytest.raises(ValidationError):
            WeightEntry(user_id="u1", week=1, date=date(2024, 1, 1), weight=weight)

    def test_week_must_be_positive(self):
        with pytest.raises(ValidationError):
            WeightEntry(user_id="u1", week=0, date=date(2024, 1, 1), weight=80)

    def test_steps_upper_bound(self):
        with pytest.raises(ValidationError):
            StepsEntry(user_id="u1", week=1, date=date(2024, 1, 1), count=100001)

    def test_workout_defaults(self):
        workout = Workout(user_id="u1", week=1, date=date(2024, 1, 1))
        assert workout.name == "Workout"
        assert workout.completed is True
        assert workout.exercises == []

    def test_exercise_requires_sets_and_reps(self):
        with pytest.raises(ValidationError):
            Workout(user_id="u1", week=1, date=date(2024, 1, 1), exercises=[{"name": "Squat", "sets": 0, "reps": 5}])

    def test_meal_items_get_ids(self):
        meal = Meal(
            user_id="u1", week=1, date=date(2024, 1, 1), meal_type="lunch",
            items=[{"name": "Rice", "quantity": "1 cup"}],
        )
        assert meal.items[0].id
        assert meal.items[0].calories == 0

    def test_meal_type_validated(self):
        with pytest.raises(ValidationError):
            Meal(user_id="u1", week=1, date=date(2024, 1, 1), meal_type="brunch")


class TestEntryFilter:
    """Tests for EntryFilter."""

    def test_query_strings_coerced(self):
        """Query parameters arrive as strings."""
        entry_filter = EntryFilter(start_date="2024-01-01", week="2", page="3", limit="10")
        assert entry_filter.start_date == date(2024, 1, 1)
        assert entry_filter.week == 2
        assert entry_filter.page == 3

    def test_limit_bounds(self):
        with pytest.raises(ValidationError):
            EntryFilter(limit=0)
