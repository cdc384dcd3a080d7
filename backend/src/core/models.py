"""Core Data Models - Pydantic models for type safety.

All models are value objects with no behavior beyond validation.
Plan lifecycle logic lives in plan_engine; derived entry figures in summaries.
"""

from datetime import date as DateType
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator
import uuid


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def calendar_date(value: Any) -> DateType:
    """Calendar date of a date, datetime or ISO date/timestamp string.

    Timestamps are cut to their date part. Raises ValueError if unparseable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, DateType):
        return value
    return DateType.fromisoformat(str(value)[:10])


# ==================== Plan ====================


class PlanStatus(str, Enum):
    """Lifecycle states of a plan. COMPLETED is terminal."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


# A user holds at most one plan in one of these states
LIVE_STATUSES = (PlanStatus.ACTIVE, PlanStatus.PAUSED)


class MealTime(str, Enum):
    UPON_WAKEUP = "upon_wakeup"
    OIL_FOR_COOKING = "oil_for_cooking"
    PRE_WORKOUT = "pre_workout"
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACKS = "snacks"
    DINNER = "dinner"


class PlannedMealItem(BaseModel):
    """A food item prescribed by the diet plan."""

    name: str = Field(min_length=1)
    quantity: str = Field(min_length=1, description="Free text, e.g. '2 slices'")


class PlannedMeal(BaseModel):
    time: MealTime
    items: list[PlannedMealItem] = Field(default_factory=list)


class Macros(BaseModel):
    carbs: float = Field(default=0, ge=0)
    protein: float = Field(default=0, ge=0)
    fats: float = Field(default=0, ge=0)


class DietPlan(BaseModel):
    """Diet prescription attached to a plan. Not interpreted by the plan engine."""

    meals: list[PlannedMeal] = Field(default_factory=list)
    total_calories: float = Field(default=0, ge=0)
    macros: Macros = Field(default_factory=Macros)


class Goals(BaseModel):
    """User goals attached to a plan."""

    target_weight: Optional[float] = Field(default=None, gt=0)
    daily_steps_goal: int = Field(default=10000, ge=0)
    weekly_workout_goal: int = Field(default=4, ge=0)


class GoalsUpdate(BaseModel):
    """Partial goals; unset fields keep their stored value."""

    target_weight: Optional[float] = Field(default=None, gt=0)
    daily_steps_goal: Optional[int] = Field(default=None, ge=0)
    weekly_workout_goal: Optional[int] = Field(default=None, ge=0)


class Plan(BaseModel):
    """A user's multi-week diet/workout plan as stored in Firestore."""

    id: str = Field(default_factory=new_id)
    user_id: str
    start_date: DateType = Field(description="Calendar date the plan begins (midnight UTC)")
    number_of_weeks: int = Field(ge=1, le=52)
    status: PlanStatus = PlanStatus.ACTIVE
    paused_at: Optional[datetime] = Field(default=None, description="Set only while paused")
    paused_days: int = Field(default=0, ge=0, description="Whole days spent paused, cumulative")
    current_week: int = Field(default=1, ge=1, description="Cached week; authoritative only while paused")
    diet_plan: DietPlan = Field(default_factory=DietPlan)
    goals: Goals = Field(default_factory=Goals)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PlanCreate(BaseModel):
    start_date: DateType
    number_of_weeks: int = Field(ge=1, le=52)
    diet_plan: Optional[DietPlan] = None
    goals: Optional[Goals] = None

    @field_validator("start_date", mode="before")
    @classmethod
    def _timestamp_to_date(cls, value: Any) -> Any:
        return calendar_date(value) if value is not None else value


class PlanUpdate(BaseModel):
    diet_plan: Optional[DietPlan] = None
    goals: Optional[GoalsUpdate] = None
    number_of_weeks: Optional[int] = Field(default=None, ge=1, le=52)


class PlanView(Plan):
    """Plan as returned to callers, with freshly computed figures.

    `status` is the persisted value; `computed_status` reflects the clock
    at read time and may already be COMPLETED while `status` is not.
    """

    end_date: DateType
    computed_status: PlanStatus


class PlanProgress(BaseModel):
    current_week: int
    total_weeks: int
    days_completed: int
    total_days: int
    progress_percentage: int = Field(ge=0, le=100)
    status: PlanStatus
    start_date: DateType
    end_date: DateType
    goals: Goals


class WeekResolution(BaseModel):
    """Week and plan a new log entry is stamped with."""

    week: int = Field(ge=1)
    plan_id: Optional[str] = None


# ==================== Log Entries ====================


class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"


class MealType(str, Enum):
    UPON_WAKEUP = "upon_wakeup"
    PRE_WORKOUT = "pre_workout"
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACKS = "snacks"
    DINNER = "dinner"
    OTHER = "other"


class LogEntry(BaseModel):
    """Fields shared by every logged record."""

    id: str = Field(default_factory=new_id)
    user_id: str
    plan_id: Optional[str] = Field(default=None, description="Plan live when the entry was created")
    week: int = Field(ge=1)
    date: DateType
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WeightEntry(LogEntry):
    weight: float = Field(ge=20, le=500)
    unit: WeightUnit = WeightUnit.KG
    notes: Optional[str] = Field(default=None, max_length=500)


class StepsEntry(LogEntry):
    """Daily step count. One per user per date; the id is the ISO date."""

    count: int = Field(ge=0, le=100000)
    goal: int = Field(default=10000, ge=0)
    distance: Optional[float] = Field(default=None, ge=0, description="Kilometres")
    calories_burned: Optional[float] = Field(default=None, ge=0)


class Exercise(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    sets: int = Field(ge=1)
    reps: int = Field(ge=1)
    weight: float = Field(default=0, ge=0)
    unit: WeightUnit = WeightUnit.KG
    notes: Optional[str] = Field(default=None, max_length=200)


class Workout(LogEntry):
    name: str = Field(default="Workout", min_length=1)
    exercises: list[Exercise] = Field(default_factory=list)
    duration: Optional[float] = Field(default=None, ge=0, description="Minutes")
    calories_burned: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    completed: bool = True


class MealItem(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    quantity: str = Field(min_length=1)
    calories: float = Field(default=0, ge=0)
    protein: float = Field(default=0, ge=0, description="Grams")
    carbs: float = Field(default=0, ge=0, description="Grams")
    fats: float = Field(default=0, ge=0, description="Grams")


class Meal(LogEntry):
    meal_type: MealType
    items: list[MealItem] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=500)


class EntryFilter(BaseModel):
    """Query options for listing log entries."""

    start_date: Optional[DateType] = None
    end_date: Optional[DateType] = None
    week: Optional[int] = Field(default=None, ge=1)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=200)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


# ==================== Summaries ====================


class WeightWeekSummary(BaseModel):
    week: int
    avg_weight: float
    min_weight: float
    max_weight: float
    entries: int
    change: float = Field(description="Average change vs the previous logged week")


class StepsWeekSummary(BaseModel):
    week: int
    total_steps: int
    avg_steps: int
    max_steps: int
    min_steps: int
    days_tracked: int
    avg_goal_percentage: int


class WorkoutWeekSummary(BaseModel):
    week: int
    total_workouts: int
    total_duration: float
    total_calories_burned: float
    total_exercises: int


class NutritionTotals(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fats: float = 0


class MealDaySummary(BaseModel):
    date: DateType
    total_calories: int
    total_protein: int
    total_carbs: int
    total_fats: int
    meal_count: int


class MealWeekSummary(BaseModel):
    week: int
    total_calories: int
    total_protein: int
    total_carbs: int
    total_fats: int
    meal_count: int
    avg_daily_calories: int


# ==================== Users ====================


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """User record stored in Firestore."""

    email: str
    api_key_hash: str = Field(description="SHA256 hash of API key - never store plaintext")
    role: Role = Role.USER
    created_at: datetime = Field(default_factory=utcnow)


class Principal(BaseModel):
    """Authenticated caller attached to each API request."""

    id: str
