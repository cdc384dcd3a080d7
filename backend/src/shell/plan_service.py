"""Plan Service - Plan use cases over the persistence client.

Each method is one request-scoped unit of work: read the plan, run the
pure transition from core.plan_engine, write the result. Week and
completion are recomputed from stored timestamps on every read; nothing
advances plans in the background.
"""

import logging
from datetime import datetime
from typing import Callable

from ..core import plan_engine
from ..core.errors import ConflictError, NotFoundError
from ..core.models import (
    Plan,
    PlanCreate,
    PlanProgress,
    PlanStatus,
    PlanUpdate,
    PlanView,
    WeekResolution,
    utcnow,
)
from .firestore_client import FitTrackFirestoreClient


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class PlanService:
    """Plan lifecycle operations for an authenticated user."""

    def __init__(self, db: FitTrackFirestoreClient, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _complete_overrun(self, plan: Plan, now: datetime) -> Plan:
        """Persist the active -> completed transition if the plan has overrun."""
        completed = plan_engine.complete_if_overrun(plan, now)
        if completed is None:
            return plan
        logger.info("Plan %s completed for user: %s", plan.id[:8], plan.user_id[:8])
        self._db.retire_live_plan(completed)
        return completed

    def find_live_plan(self, user_id: str) -> Plan | None:
        """The user's active or paused plan, without completion handling."""
        return self._db.get_live_plan(user_id)

    def create_plan(self, user_id: str, request: PlanCreate) -> PlanView:
        """Start a new plan.

        A live plan that has already overrun is completed first, so it
        does not block the new one.

        Raises:
            ConflictError: If the user already has an active or paused plan
        """
        now = self.now()
        existing = self._db.get_live_plan(user_id)
        if existing is not None:
            existing = self._complete_overrun(existing, now)
            if existing.status != PlanStatus.COMPLETED:
                raise ConflictError(
                    "You already have an active or paused plan. Please complete or cancel it first."
                )

        plan = plan_engine.new_plan(user_id, request, now)
        self._db.insert_live_plan(plan)
        return plan_engine.view_plan(plan, now)

    def get_current_plan(self, user_id: str) -> PlanView:
        """Fetch the live plan, persisting completion if it has overrun.

        Raises:
            NotFoundError: If the user has no active or paused plan
        """
        now = self.now()
        plan = self._db.get_live_plan(user_id)
        if plan is None:
            raise NotFoundError("No active plan found")
        plan = self._complete_overrun(plan, now)
        return plan_engine.view_plan(plan, now)

    def list_plans(self, user_id: str) -> list[PlanView]:
        now = self.now()
        return [plan_engine.view_plan(plan, now) for plan in self._db.list_plans(user_id)]

    def get_plan(self, user_id: str, plan_id: str) -> PlanView:
        plan = self._db.get_plan(user_id, plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        return plan_engine.view_plan(plan, self.now())

    def pause_plan(self, user_id: str) -> PlanView:
        """Pause the active plan.

        A plan that has already overrun is completed instead of paused.

        Raises:
            NotFoundError: If the user has no active plan still running
        """
        now = self.now()
        plan = self._db.get_plan_in_status(user_id, PlanStatus.ACTIVE)
        if plan is not None:
            plan = self._complete_overrun(plan, now)
        if plan is None or plan.status == PlanStatus.COMPLETED:
            raise NotFoundError("No active plan to pause")

        paused = plan_engine.pause_plan(plan, now)
        self._db.save_plan(paused)
        logger.info("Plan %s paused at week %d", plan.id[:8], paused.current_week)
        return plan_engine.view_plan(paused, now)

    def resume_plan(self, user_id: str) -> PlanView:
        """Resume the paused plan, crediting whole paused days.

        Raises:
            NotFoundError: If the user has no paused plan
        """
        now = self.now()
        plan = self._db.get_plan_in_status(user_id, PlanStatus.PAUSED)
        if plan is None:
            raise NotFoundError("No paused plan to resume")

        resumed = plan_engine.resume_plan(plan, now)
        self._db.save_plan(resumed)
        logger.info(
            "Plan %s resumed, %d paused days in total", plan.id[:8], resumed.paused_days
        )
        return plan_engine.view_plan(resumed, now)

    def update_plan(self, user_id: str, plan_id: str, update: PlanUpdate) -> PlanView:
        """Apply a partial update.

        Raises:
            NotFoundError: If the plan does not exist for this user
            ValidationError: If number_of_weeks would drop below the current week
        """
        now = self.now()
        plan = self._db.get_plan(user_id, plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")

        updated = plan_engine.apply_plan_update(plan, update, now)
        self._db.save_plan(updated)
        return plan_engine.view_plan(updated, now)

    def delete_plan(self, user_id: str, plan_id: str) -> None:
        """Delete a plan. Logged entries keep their plan_id.

        Raises:
            NotFoundError: If the plan does not exist for this user
        """
        plan = self._db.get_plan(user_id, plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        self._db.delete_plan(plan)

    def get_progress(self, user_id: str) -> PlanProgress:
        """Progress through the live plan.

        Raises:
            NotFoundError: If the user has no active or paused plan
        """
        plan = self._db.get_live_plan(user_id)
        if plan is None:
            raise NotFoundError("No active plan found")
        return plan_engine.progress_summary(plan, self.now())

    def resolve_week_and_plan(self, user_id: str, explicit_week: int | None = None) -> WeekResolution:
        """Week and plan id to stamp on a new log entry.

        Args:
            user_id: The user's ID
            explicit_week: Week supplied by the caller; takes precedence

        Returns:
            WeekResolution with week 1 and no plan id when nothing is live
        """
        plan = self._db.get_live_plan(user_id)
        return plan_engine.resolve_week(plan, explicit_week, self.now())
