"""Entry Summaries - Pure functions for derived figures and weekly rollups.

All functions are pure: same input always produces same output, no side effects.
"""

import math
from collections import defaultdict
from datetime import date

from .models import (
    Meal,
    MealDaySummary,
    MealWeekSummary,
    NutritionTotals,
    StepsEntry,
    StepsWeekSummary,
    WeightEntry,
    WeightWeekSummary,
    Workout,
    WorkoutWeekSummary,
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ==================== Per-entry Figures ====================


def goal_percentage(entry: StepsEntry) -> int:
    """Share of the daily step goal reached, capped at 100. Zero goal gives 0."""
    if not entry.goal:
        return 0
    return min(_round_half_up(entry.count / entry.goal * 100), 100)


def workout_volume(workout: Workout) -> float:
    """Total volume lifted: sum of sets * reps * weight."""
    return sum(ex.sets * ex.reps * ex.weight for ex in workout.exercises)


def meal_totals(meals: list[Meal]) -> NutritionTotals:
    """Sum calories and macros over all items of the given meals.

    Args:
        meals: Meals to total (may be empty)

    Returns:
        NutritionTotals with unrounded sums
    """
    totals = NutritionTotals()
    for meal in meals:
        for item in meal.items:
            totals.calories += item.calories
            totals.protein += item.protein
            totals.carbs += item.carbs
            totals.fats += item.fats
    return totals


# ==================== Weekly Rollups ====================


def weekly_weight_summary(entries: list[WeightEntry]) -> list[WeightWeekSummary]:
    """Group weight entries by plan week.

    Change is the difference between this week's average and the
    previous logged week's average; the first week has change 0.

    Args:
        entries: Weight entries in any order

    Returns:
        One summary per week, ascending by week
    """
    by_week: dict[int, list[float]] = defaultdict(list)
    for entry in entries:
        by_week[entry.week].append(entry.weight)

    summaries: list[WeightWeekSummary] = []
    previous_avg: float | None = None
    for week in sorted(by_week):
        weights = by_week[week]
        avg = sum(weights) / len(weights)
        change = round(avg - previous_avg, 1) if previous_avg is not None else 0
        summaries.append(WeightWeekSummary(
            week=week,
            avg_weight=round(avg, 1),
            min_weight=min(weights),
            max_weight=max(weights),
            entries=len(weights),
            change=change,
        ))
        previous_avg = avg

    return summaries


def weekly_steps_summary(entries: list[StepsEntry]) -> list[StepsWeekSummary]:
    """Group step entries by plan week. Entries with a zero goal count as 0 percent."""
    by_week: dict[int, list[StepsEntry]] = defaultdict(list)
    for entry in entries:
        by_week[entry.week].append(entry)

    summaries = []
    for week in sorted(by_week):
        week_entries = by_week[week]
        counts = [e.count for e in week_entries]
        percentages = [e.count / e.goal * 100 if e.goal else 0 for e in week_entries]
        summaries.append(StepsWeekSummary(
            week=week,
            total_steps=sum(counts),
            avg_steps=_round_half_up(sum(counts) / len(counts)),
            max_steps=max(counts),
            min_steps=min(counts),
            days_tracked=len(week_entries),
            avg_goal_percentage=_round_half_up(sum(percentages) / len(percentages)),
        ))
    return summaries


def weekly_workout_summary(workouts: list[Workout]) -> list[WorkoutWeekSummary]:
    """Group workouts by plan week; missing durations and calories count as 0."""
    by_week: dict[int, list[Workout]] = defaultdict(list)
    for workout in workouts:
        by_week[workout.week].append(workout)

    return [
        WorkoutWeekSummary(
            week=week,
            total_workouts=len(by_week[week]),
            total_duration=sum(w.duration or 0 for w in by_week[week]),
            total_calories_burned=sum(w.calories_burned or 0 for w in by_week[week]),
            total_exercises=sum(len(w.exercises) for w in by_week[week]),
        )
        for week in sorted(by_week)
    ]


def daily_meal_summary(meals: list[Meal], max_days: int = 30) -> list[MealDaySummary]:
    """Per-day nutrition totals, newest day first, limited to max_days days.

    Meal count counts items, matching the per-item totals.
    """
    by_day: dict[date, list[Meal]] = defaultdict(list)
    for meal in meals:
        by_day[meal.date].append(meal)

    summaries = []
    for day in sorted(by_day, reverse=True)[:max_days]:
        totals = meal_totals(by_day[day])
        summaries.append(MealDaySummary(
            date=day,
            total_calories=_round_half_up(totals.calories),
            total_protein=_round_half_up(totals.protein),
            total_carbs=_round_half_up(totals.carbs),
            total_fats=_round_half_up(totals.fats),
            meal_count=sum(len(m.items) for m in by_day[day]),
        ))
    return summaries


def weekly_meal_summary(meals: list[Meal]) -> list[MealWeekSummary]:
    """Per-week nutrition totals, ascending by week. Daily average assumes 7 days."""
    by_week: dict[int, list[Meal]] = defaultdict(list)
    for meal in meals:
        by_week[meal.week].append(meal)

    summaries = []
    for week in sorted(by_week):
        totals = meal_totals(by_week[week])
        summaries.append(MealWeekSummary(
            week=week,
            total_calories=_round_half_up(totals.calories),
            total_protein=_round_half_up(totals.protein),
            total_carbs=_round_half_up(totals.carbs),
            total_fats=_round_half_up(totals.fats),
            meal_count=sum(len(m.items) for m in by_week[week]),
            avg_daily_calories=_round_half_up(totals.calories / 7),
        ))
    return summaries
