"""Unit tests for entry summaries - pure functions only."""

from datetime import date

from src.core.models import Meal, StepsEntry, WeightEntry, Workout
from src.core.summaries import (
    daily_meal_summary,
    goal_percentage,
    meal_totals,
    weekly_meal_summary,
    weekly_steps_summary,
    weekly_weight_summary,
    weekly_workout_summary,
    workout_volume,
)


def weight(week: int, value: float, day: int = 1) -> WeightEntry:
    return WeightEntry(user_id="u1", week=week, date=date(2024, 1, day), weight=value)


def steps(week: int, count: int, goal: int = 10000, day: int = 1) -> StepsEntry:
    return StepsEntry(user_id="u1", week=week, date=date(2024, 1, day), count=count, goal=goal)


def meal(week: int, day: int, *items: tuple[float, float, float, float]) -> Meal:
    return Meal(
        user_id="u1",
        week=week,
        date=date(2024, 1, day),
        meal_type="lunch",
        items=[
            {"name": f"item{i}", "quantity": "1", "calories": c, "protein": p, "carbs": cb, "fats": f}
            for i, (c, p, cb, f) in enumerate(items)
        ],
    )


class TestGoalPercentage:
    """Tests for goal_percentage."""

    def test_partial(self):
        assert goal_percentage(steps(1, 7500)) == 75

    def test_capped(self):
        assert goal_percentage(steps(1, 25000)) == 100

    def test_zero_goal(self):
        assert goal_percentage(steps(1, 5000, goal=0)) == 0


class TestWorkoutVolume:
    """Tests for workout_volume."""

    def test_volume(self):
        workout = Workout(user_id="u1", week=1, date=date(2024, 1, 1), exercises=[
            {"name": "Squat", "sets": 3, "reps": 5, "weight": 100},
            {"name": "Pull-up", "sets": 3, "reps": 8},
        ])
        assert workout_volume(workout) == 1500

    def test_empty(self):
        assert workout_volume(Workout(user_id="u1", week=1, date=date(2024, 1, 1))) == 0


class TestMealTotals:
    """Tests for meal_totals."""

    def test_sums_items_across_meals(self):
        totals = meal_totals([meal(1, 1, (300, 20, 30, 10)), meal(1, 1, (200, 10, 25, 5), (50, 1, 10, 0))])
        assert totals.calories == 550
        assert totals.protein == 31
        assert totals.carbs == 65
        assert totals.fats == 15

    def test_empty(self):
        assert meal_totals([]).calories == 0


class TestWeeklyWeightSummary:
    """Tests for weekly_weight_summary."""

    def test_groups_and_changes(self):
        entries = [weight(2, 79.0), weight(1, 81.0), weight(1, 80.0), weight(2, 78.6)]
        summary = weekly_weight_summary(entries)

        assert [s.week for s in summary] == [1, 2]
        assert summary[0].avg_weight == 80.5
        assert summary[0].min_weight == 80.0
        assert summary[0].max_weight == 81.0
        assert summary[0].entries == 2
        assert summary[0].change == 0
        assert summary[1].avg_weight == 78.8
        assert summary[1].change == -1.7

    def test_empty(self):
        assert weekly_weight_summary([]) == []


class TestWeeklyStepsSummary:
    """Tests for weekly_steps_summary."""

    def test_aggregates(self):
        entries = [steps(1, 8000, day=1), steps(1, 12000, day=2), steps(2, 5000, goal=0, day=8)]
        summary = weekly_steps_summary(entries)

        assert summary[0].total_steps == 20000
        assert summary[0].avg_steps == 10000
        assert summary[0].max_steps == 12000
        assert summary[0].min_steps == 8000
        assert summary[0].days_tracked == 2
        assert summary[0].avg_goal_percentage == 100
        assert summary[1].avg_goal_percentage == 0


class TestWeeklyWorkoutSummary:
    """Tests for weekly_workout_summary."""

    def test_missing_values_count_as_zero(self):
        workouts = [
            Workout(user_id="u1", week=1, date=date(2024, 1, 1), duration=45, calories_burned=300,
                    exercises=[{"name": "Run", "sets": 1, "reps": 1}]),
            Workout(user_id="u1", week=1, date=date(2024, 1, 3)),
        ]
        summary = weekly_workout_summary(workouts)
        assert len(summary) == 1
        assert summary[0].total_workouts == 2
        assert summary[0].total_duration == 45
        assert summary[0].total_calories_burned == 300
        assert summary[0].total_exercises == 1


class TestMealSummaries:
    """Tests for daily_meal_summary and weekly_meal_summary."""

    def test_daily_newest_first(self):
        meals = [meal(1, 1, (500, 30, 50, 20)), meal(1, 2, (700, 40, 60, 25)), meal(1, 2, (100.4, 1, 1, 1))]
        summary = daily_meal_summary(meals)
        assert [s.date for s in summary] == [date(2024, 1, 2), date(2024, 1, 1)]
        assert summary[0].total_calories == 800
        assert summary[0].meal_count == 2

    def test_daily_limited(self):
        meals = [meal(1, day, (100, 1, 1, 1)) for day in range(1, 11)]
        assert len(daily_meal_summary(meals, max_days=3)) == 3

    def test_weekly_average_over_seven_days(self):
        summary = weekly_meal_summary([meal(1, 1, (1400, 0, 0, 0)), meal(1, 3, (700, 0, 0, 0))])
        assert summary[0].total_calories == 2100
        assert summary[0].avg_daily_calories == 300
