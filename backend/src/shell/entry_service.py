"""Entry Service - Logging use cases for weight, steps, workouts and meals.

Every new entry is stamped with the week and plan resolved by the plan
service at write time. Entries are owned by the user, not the plan.
"""

import logging
from datetime import date
from typing import Any

from ..core import plan_engine, summaries
from ..core.errors import NotFoundError, ValidationError
from ..core.models import (
    EntryFilter,
    Exercise,
    LogEntry,
    Meal,
    MealDaySummary,
    MealItem,
    MealWeekSummary,
    NutritionTotals,
    Pagination,
    StepsEntry,
    StepsWeekSummary,
    WeightEntry,
    WeightWeekSummary,
    Workout,
    WorkoutWeekSummary,
    calendar_date,
)
from .firestore_client import FitTrackFirestoreClient
from .plan_service import PlanService


logger = logging.getLogger(__name__)

DEFAULT_STEPS_GOAL = 10000

# Fields a client may set on each entry type, besides date and week
ENTRY_FIELDS: dict[type[LogEntry], tuple[str, ...]] = {
    WeightEntry: ("weight", "unit", "notes"),
    StepsEntry: ("count", "goal", "distance", "calories_burned"),
    Workout: ("name", "exercises", "duration", "calories_burned", "notes", "completed"),
    Meal: ("meal_type", "items", "notes"),
}

ENTRY_LABELS: dict[type[LogEntry], str] = {
    WeightEntry: "Weight entry",
    StepsEntry: "Steps entry",
    Workout: "Workout",
    Meal: "Meal",
}

# Steps entries are keyed by date, so their date cannot be edited
UPDATABLE_FIELDS: dict[type[LogEntry], tuple[str, ...]] = {
    WeightEntry: ENTRY_FIELDS[WeightEntry] + ("date", "week"),
    StepsEntry: ENTRY_FIELDS[StepsEntry] + ("week",),
    Workout: ENTRY_FIELDS[Workout] + ("date", "week"),
    Meal: ENTRY_FIELDS[Meal] + ("date", "week"),
}


def _pick(body: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {key: body[key] for key in fields if key in body and body[key] is not None}


def parse_date(value: Any, field: str = "date") -> date:
    """Parse an ISO calendar date, accepting a full timestamp as well."""
    try:
        return calendar_date(value)
    except ValueError as e:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)") from e


class EntryService:
    """Create, read, update and summarize log entries for a user."""

    def __init__(self, db: FitTrackFirestoreClient, plans: PlanService) -> None:
        self._db = db
        self._plans = plans

    def today(self) -> date:
        return self._plans.now().date()

    def _entry_date(self, body: dict[str, Any]) -> date:
        if body.get("date") is None:
            return self.today()
        return parse_date(body["date"])

    def _require(self, user_id: str, model: type[LogEntry], entry_id: str) -> Any:
        entry = self._db.get_entry(user_id, model, entry_id)
        if entry is None:
            raise NotFoundError(f"{ENTRY_LABELS[model]} not found")
        return entry

    # ==================== Generic Operations ====================

    def create_entry(self, user_id: str, model: type[LogEntry], body: dict[str, Any]) -> LogEntry:
        """Create an entry stamped with the resolved week and plan.

        Args:
            user_id: The user's ID
            model: Entry type to create
            body: Client payload; an explicit `week` overrides the plan's week

        Returns:
            The stored entry
        """
        if model is StepsEntry:
            return self.log_steps(user_id, body)

        if model is Meal and (not body.get("meal_type") or not body.get("items")):
            raise ValidationError("Meal type and at least one item are required")

        resolution = self._plans.resolve_week_and_plan(user_id, body.get("week"))
        entry = model(
            user_id=user_id,
            plan_id=resolution.plan_id,
            week=resolution.week,
            date=self._entry_date(body),
            **_pick(body, ENTRY_FIELDS[model]),
        )
        self._db.save_entry(entry)
        logger.info("Logged %s for user %s in week %d", model.__name__, user_id[:8], entry.week)
        return entry

    def log_steps(self, user_id: str, body: dict[str, Any]) -> StepsEntry:
        """Record the step count for a day, updating the day's entry if present.

        The goal defaults to the live plan's daily steps goal.
        """
        entry_date = self._entry_date(body)
        plan = self._plans.find_live_plan(user_id)
        goal = body.get("goal") or (plan.goals.daily_steps_goal if plan else None) or DEFAULT_STEPS_GOAL

        existing = self._db.get_entry(user_id, StepsEntry, entry_date.isoformat())
        if existing is not None:
            data = existing.model_dump()
            data.update(_pick(body, ("count", "distance", "calories_burned")))
            data["goal"] = goal
            data["updated_at"] = self._plans.now()
            entry = StepsEntry(**data)
        else:
            resolution = plan_engine.resolve_week(plan, body.get("week"), self._plans.now())
            fields = _pick(body, ENTRY_FIELDS[StepsEntry])
            fields["goal"] = goal
            entry = StepsEntry(
                id=entry_date.isoformat(),
                user_id=user_id,
                plan_id=resolution.plan_id,
                week=resolution.week,
                date=entry_date,
                **fields,
            )

        self._db.save_entry(entry)
        return entry

    def list_entries(
        self, user_id: str, model: type[LogEntry], entry_filter: EntryFilter
    ) -> tuple[list[LogEntry], Pagination]:
        return self._db.query_entries(user_id, model, entry_filter)

    def get_entry(self, user_id: str, model: type[LogEntry], entry_id: str) -> LogEntry:
        return self._require(user_id, model, entry_id)

    def update_entry(
        self, user_id: str, model: type[LogEntry], entry_id: str, body: dict[str, Any]
    ) -> LogEntry:
        """Apply a partial update; the merged entry is re-validated.

        Raises:
            NotFoundError: If the entry does not exist for this user
        """
        entry = self._require(user_id, model, entry_id)

        updates = _pick(body, UPDATABLE_FIELDS[model])
        if "date" in updates:
            updates["date"] = parse_date(updates["date"])

        data = entry.model_dump()
        data.update(updates)
        data["updated_at"] = self._plans.now()
        updated = model(**data)

        self._db.save_entry(updated)
        return updated

    def delete_entry(self, user_id: str, model: type[LogEntry], entry_id: str) -> None:
        if not self._db.delete_entry(user_id, model, entry_id):
            raise NotFoundError(f"{ENTRY_LABELS[model]} not found")

    def entries_on(self, user_id: str, model: type[LogEntry], day: date) -> list[LogEntry]:
        return self._db.list_entries(user_id, model, day, day)

    # ==================== Steps ====================

    def steps_for_day(self, user_id: str, day: date | None = None) -> StepsEntry | dict[str, Any]:
        """Steps logged on a day, or a zero placeholder carrying the day's goal."""
        day = day or self.today()
        entry = self._db.get_entry(user_id, StepsEntry, day.isoformat())
        if entry is not None:
            return entry

        plan = self._plans.find_live_plan(user_id)
        return {
            "count": 0,
            "goal": plan.goals.daily_steps_goal if plan else DEFAULT_STEPS_GOAL,
            "date": day.isoformat(),
        }

    def steps_weekly(self, user_id: str) -> list[StepsWeekSummary]:
        return summaries.weekly_steps_summary(self._db.list_entries(user_id, StepsEntry))

    # ==================== Weight ====================

    def weight_weekly(self, user_id: str) -> list[WeightWeekSummary]:
        return summaries.weekly_weight_summary(self._db.list_entries(user_id, WeightEntry))

    # ==================== Workouts ====================

    def workout_weekly(self, user_id: str) -> list[WorkoutWeekSummary]:
        return summaries.weekly_workout_summary(self._db.list_entries(user_id, Workout))

    def add_exercise(self, user_id: str, workout_id: str, body: dict[str, Any]) -> Workout:
        workout: Workout = self._require(user_id, Workout, workout_id)
        exercise = Exercise(**_pick(body, ("name", "sets", "reps", "weight", "unit", "notes")))
        updated = workout.model_copy(update={
            "exercises": [*workout.exercises, exercise],
            "updated_at": self._plans.now(),
        })
        self._db.save_entry(updated)
        return updated

    def remove_exercise(self, user_id: str, workout_id: str, exercise_id: str) -> Workout:
        workout: Workout = self._require(user_id, Workout, workout_id)
        remaining = [ex for ex in workout.exercises if ex.id != exercise_id]
        if len(remaining) == len(workout.exercises):
            raise NotFoundError("Exercise not found")
        updated = workout.model_copy(update={"exercises": remaining, "updated_at": self._plans.now()})
        self._db.save_entry(updated)
        return updated

    # ==================== Meals ====================

    def add_meal_item(self, user_id: str, meal_id: str, body: dict[str, Any]) -> Meal:
        meal: Meal = self._require(user_id, Meal, meal_id)
        item = MealItem(**_pick(body, ("name", "quantity", "calories", "protein", "carbs", "fats")))
        updated = meal.model_copy(update={"items": [*meal.items, item], "updated_at": self._plans.now()})
        self._db.save_entry(updated)
        return updated

    def remove_meal_item(self, user_id: str, meal_id: str, item_id: str) -> Meal:
        meal: Meal = self._require(user_id, Meal, meal_id)
        remaining = [item for item in meal.items if item.id != item_id]
        if len(remaining) == len(meal.items):
            raise NotFoundError("Meal item not found")
        updated = meal.model_copy(update={"items": remaining, "updated_at": self._plans.now()})
        self._db.save_entry(updated)
        return updated

    def meals_with_totals(self, user_id: str, day: date | None = None) -> tuple[list[Meal], NutritionTotals]:
        meals = self.entries_on(user_id, Meal, day or self.today())
        return meals, summaries.meal_totals(meals)

    def meal_summary(
        self,
        user_id: str,
        period: str = "daily",
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[MealDaySummary] | list[MealWeekSummary]:
        """Nutrition totals per day (last 30 logged days) or per plan week."""
        if period not in ("daily", "weekly"):
            raise ValidationError("type must be 'daily' or 'weekly'")

        meals = self._db.list_entries(user_id, Meal, start_date, end_date)
        if period == "weekly":
            return summaries.weekly_meal_summary(meals)
        return summaries.daily_meal_summary(meals)
