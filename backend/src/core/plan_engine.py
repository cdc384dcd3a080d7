"""Plan Engine - Pure functions for the plan lifecycle and week resolution.

All functions are pure: the caller passes the current time, nothing is
read from the clock or the database here. Transitions return new Plan
objects and never mutate their input.

Week arithmetic is done on aware UTC datetimes. A plan's start date is
taken as midnight UTC of that calendar day.
"""

import math
from datetime import date, datetime, time, timedelta, timezone

from .errors import ValidationError
from .models import (
    Goals,
    Plan,
    PlanCreate,
    PlanProgress,
    PlanStatus,
    PlanUpdate,
    PlanView,
    WeekResolution,
)


ONE_DAY = timedelta(days=1)
DAYS_PER_WEEK = 7


def _as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_instant(plan: Plan) -> datetime:
    """Moment the plan begins: midnight UTC of its start date."""
    return datetime.combine(plan.start_date, time.min, tzinfo=timezone.utc)


def raw_week(plan: Plan, now: datetime) -> int:
    """Compute the 1-indexed week without clamping.

    While paused the cached week is returned unchanged. Otherwise whole
    days elapsed since the start, minus paused days, are bucketed into
    weeks. The result may be below 1 (future start) or above
    number_of_weeks (overrun).

    Args:
        plan: The plan to evaluate
        now: Current time

    Returns:
        Unclamped week number
    """
    if plan.status == PlanStatus.PAUSED:
        return plan.current_week

    elapsed = _as_utc(now) - start_instant(plan) - plan.paused_days * ONE_DAY
    elapsed_days = elapsed // ONE_DAY
    return elapsed_days // DAYS_PER_WEEK + 1


def compute_current_week(plan: Plan, now: datetime) -> int:
    """Current week clamped to [1, number_of_weeks]. Frozen while paused."""
    if plan.status == PlanStatus.PAUSED:
        return plan.current_week
    return min(max(raw_week(plan, now), 1), plan.number_of_weeks)


def is_completed(plan: Plan, now: datetime) -> bool:
    """Whether the plan has run past its last week.

    Compares the unclamped week, so a plan can display week N of N while
    already being reported as completed. A paused plan never completes.
    """
    if plan.status == PlanStatus.COMPLETED:
        return True
    return raw_week(plan, now) > plan.number_of_weeks


def computed_status(plan: Plan, now: datetime) -> PlanStatus:
    """Status as of `now`, which may be ahead of the persisted one."""
    if plan.status == PlanStatus.ACTIVE and is_completed(plan, now):
        return PlanStatus.COMPLETED
    return plan.status


def end_date(plan: Plan) -> date:
    """Calendar end of the plan, pushed back by paused days. Informational only."""
    return plan.start_date + timedelta(days=plan.number_of_weeks * DAYS_PER_WEEK + plan.paused_days)


def paused_whole_days(paused_at: datetime | None, now: datetime) -> int:
    """Whole days between pause and resume. Partial days are dropped."""
    if paused_at is None:
        return 0
    return max((_as_utc(now) - _as_utc(paused_at)) // ONE_DAY, 0)


# ==================== Transitions ====================


def new_plan(user_id: str, request: PlanCreate, now: datetime) -> Plan:
    """Build a fresh active plan from a create request."""
    return Plan(
        user_id=user_id,
        start_date=request.start_date,
        number_of_weeks=request.number_of_weeks,
        status=PlanStatus.ACTIVE,
        paused_days=0,
        current_week=1,
        diet_plan=request.diet_plan or {},
        goals=request.goals or {},
        created_at=now,
        updated_at=now,
    )


def pause_plan(plan: Plan, now: datetime) -> Plan:
    """Transition active -> paused, freezing the current week.

    Raises:
        ValidationError: If the plan is not active
    """
    if plan.status != PlanStatus.ACTIVE:
        raise ValidationError(f"Cannot pause a plan that is {plan.status.value}")

    return plan.model_copy(update={
        "status": PlanStatus.PAUSED,
        "paused_at": _as_utc(now),
        "current_week": compute_current_week(plan, now),
        "updated_at": now,
    })


def resume_plan(plan: Plan, now: datetime) -> Plan:
    """Transition paused -> active, crediting whole paused days.

    Raises:
        ValidationError: If the plan is not paused
    """
    if plan.status != PlanStatus.PAUSED:
        raise ValidationError(f"Cannot resume a plan that is {plan.status.value}")

    return plan.model_copy(update={
        "status": PlanStatus.ACTIVE,
        "paused_at": None,
        "paused_days": plan.paused_days + paused_whole_days(plan.paused_at, now),
        "updated_at": now,
    })


def complete_if_overrun(plan: Plan, now: datetime) -> Plan | None:
    """Return the plan marked completed if an active plan has overrun, else None."""
    if computed_status(plan, now) != PlanStatus.COMPLETED or plan.status == PlanStatus.COMPLETED:
        return None

    return plan.model_copy(update={
        "status": PlanStatus.COMPLETED,
        "current_week": compute_current_week(plan, now),
        "updated_at": now,
    })


def apply_plan_update(plan: Plan, update: PlanUpdate, now: datetime) -> Plan:
    """Apply a partial update.

    The diet plan is replaced, goals are shallow-merged, and the length
    may only change to a value at or above the week already reached.

    Raises:
        ValidationError: If number_of_weeks would shrink below the current week
    """
    changes: dict = {"updated_at": now}

    if update.diet_plan is not None:
        changes["diet_plan"] = update.diet_plan

    if update.goals is not None:
        merged = plan.goals.model_dump()
        merged.update(update.goals.model_dump(exclude_unset=True))
        changes["goals"] = Goals(**merged)

    if update.number_of_weeks is not None:
        current = compute_current_week(plan, now)
        if update.number_of_weeks < current:
            raise ValidationError(
                f"number_of_weeks ({update.number_of_weeks}) cannot be below the current week ({current})"
            )
        changes["number_of_weeks"] = update.number_of_weeks

    return plan.model_copy(update=changes)


# ==================== Views ====================


def view_plan(plan: Plan, now: datetime) -> PlanView:
    """Plan with its computed week, computed status and end date."""
    data = plan.model_dump()
    data["current_week"] = compute_current_week(plan, now)
    return PlanView(
        **data,
        end_date=end_date(plan),
        computed_status=computed_status(plan, now),
    )


def progress_summary(plan: Plan, now: datetime) -> PlanProgress:
    """Summarize progress through the plan.

    Days completed counts full weeks already behind plus the ISO weekday
    of `now` (Monday=1 .. Sunday=7).

    Args:
        plan: The plan to summarize
        now: Current time

    Returns:
        PlanProgress capped at 100 percent
    """
    current_week = compute_current_week(plan, now)
    total_days = plan.number_of_weeks * DAYS_PER_WEEK
    days_completed = (current_week - 1) * DAYS_PER_WEEK + _as_utc(now).isoweekday()
    percentage = min(math.floor(days_completed / total_days * 100 + 0.5), 100)

    return PlanProgress(
        current_week=current_week,
        total_weeks=plan.number_of_weeks,
        days_completed=days_completed,
        total_days=total_days,
        progress_percentage=percentage,
        status=plan.status,
        start_date=plan.start_date,
        end_date=end_date(plan),
        goals=plan.goals,
    )


def resolve_week(plan: Plan | None, explicit_week: int | None, now: datetime) -> WeekResolution:
    """Pick the week and plan a new log entry belongs to.

    An explicit week from the caller wins. Otherwise the live plan's
    current week is used, or week 1 when the user has no live plan.

    Raises:
        ValidationError: If explicit_week is not a positive integer
    """
    plan_id = plan.id if plan is not None else None

    if explicit_week is not None:
        if isinstance(explicit_week, bool) or not isinstance(explicit_week, int) or explicit_week < 1:
            raise ValidationError("week must be a positive integer")
        return WeekResolution(week=explicit_week, plan_id=plan_id)

    if plan is None:
        return WeekResolution(week=1)

    return WeekResolution(week=compute_current_week(plan, now), plan_id=plan_id)
