"""Firestore Client - Persistence for plans, log entries and users.

This module handles all database I/O. All I/O is contained here;
business logic is in the core module. Persistence errors are not
swallowed: they propagate to the API layer as internal errors.
"""

import logging
import math
import os
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from google.api_core.exceptions import Conflict
from google.cloud import firestore
from pydantic import BaseModel

from ..core.errors import ConflictError
from ..core.models import (
    LIVE_STATUSES,
    EntryFilter,
    LogEntry,
    Meal,
    Pagination,
    Plan,
    PlanStatus,
    StepsEntry,
    WeightEntry,
    Workout,
)


logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", bound=LogEntry)

# Subcollection of users/{user_id} holding each entry type
ENTRY_COLLECTIONS: dict[type[LogEntry], str] = {
    WeightEntry: "weights",
    StepsEntry: "steps",
    Workout: "workouts",
    Meal: "meals",
}

LIVE_PLAN_MARKER = "live_plan"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None

    @classmethod
    def from_env(cls) -> "FirestoreConfig":
        return cls(
            project_id=os.environ.get("FIRESTORE_PROJECT") or None,
            database=os.environ.get("FIRESTORE_DATABASE", "fittrack"),
        )


def _to_document(model: BaseModel) -> dict[str, Any]:
    """Serialize a model for Firestore. Dates and timestamps become ISO strings."""
    return model.model_dump(mode="json")


class FitTrackFirestoreClient:
    """Client for persisting plans and log entries to Firestore.

    Document structure per user:
        users/{user_id}: { email, api_key_hash, role, ... }
            plans/{plan_id}: { start_date, number_of_weeks, status, ... }
            state/live_plan: { plan_id }
            weights/{entry_id}, workouts/{entry_id}, meals/{entry_id}
            steps/{YYYY-MM-DD}

    The state/live_plan marker exists exactly while the user has an active
    or paused plan. It is written with create() semantics in the same
    batch as the plan, so two concurrent creates cannot both commit.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def close(self) -> None:
        """Release the underlying gRPC channel, if one was opened."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def user_ref(self, user_id: str) -> firestore.DocumentReference:
        """Get reference to user document."""
        return self.client.collection("users").document(user_id)

    def _plans(self, user_id: str) -> firestore.CollectionReference:
        return self.user_ref(user_id).collection("plans")

    def _marker_ref(self, user_id: str) -> firestore.DocumentReference:
        return self.user_ref(user_id).collection("state").document(LIVE_PLAN_MARKER)

    def _entries(self, user_id: str, model: type[LogEntry]) -> firestore.CollectionReference:
        return self.user_ref(user_id).collection(ENTRY_COLLECTIONS[model])

    # ==================== Plan Operations ====================

    def get_live_plan(self, user_id: str) -> Plan | None:
        """Fetch the user's active or paused plan.

        Args:
            user_id: The user's ID

        Returns:
            Plan if one is live, None otherwise
        """
        logger.debug("Fetching live plan for user: %s", user_id[:8])
        query = self._plans(user_id).where(
            "status", "in", [status.value for status in LIVE_STATUSES]
        ).limit(1)
        for doc in query.stream():
            return Plan(**doc.to_dict())
        return None

    def get_plan_in_status(self, user_id: str, status: PlanStatus) -> Plan | None:
        """Fetch the user's plan in the given status, if any."""
        query = self._plans(user_id).where("status", "==", status.value).limit(1)
        for doc in query.stream():
            return Plan(**doc.to_dict())
        return None

    def get_plan(self, user_id: str, plan_id: str) -> Plan | None:
        """Fetch a plan owned by the user."""
        doc = self._plans(user_id).document(plan_id).get()
        if not doc.exists:
            return None
        return Plan(**doc.to_dict())

    def list_plans(self, user_id: str) -> list[Plan]:
        """Fetch all of the user's plans, newest first."""
        query = self._plans(user_id).order_by("created_at", direction=firestore.Query.DESCENDING)
        return [Plan(**doc.to_dict()) for doc in query.stream()]

    def insert_live_plan(self, plan: Plan) -> None:
        """Persist a new live plan together with the user's live-plan marker.

        Args:
            plan: An active plan

        Raises:
            ConflictError: If the user already has a live plan
        """
        logger.info("Creating plan %s for user: %s", plan.id[:8], plan.user_id[:8])
        batch = self.client.batch()
        batch.create(self._marker_ref(plan.user_id), {"plan_id": plan.id})
        batch.set(self._plans(plan.user_id).document(plan.id), _to_document(plan))
        try:
            batch.commit()
        except Conflict as e:
            logger.warning("Live plan already exists for user: %s", plan.user_id[:8])
            raise ConflictError(
                "You already have an active or paused plan. Please complete or cancel it first."
            ) from e

    def save_plan(self, plan: Plan) -> None:
        """Overwrite a plan document."""
        logger.info("Saving plan %s (%s)", plan.id[:8], plan.status.value)
        self._plans(plan.user_id).document(plan.id).set(_to_document(plan))

    def retire_live_plan(self, plan: Plan) -> None:
        """Persist a plan that has left the live states and release the marker."""
        logger.info("Retiring plan %s (%s)", plan.id[:8], plan.status.value)
        batch = self.client.batch()
        batch.set(self._plans(plan.user_id).document(plan.id), _to_document(plan))
        batch.delete(self._marker_ref(plan.user_id))
        batch.commit()

    def delete_plan(self, plan: Plan) -> None:
        """Delete a plan. Log entries referencing it are left untouched."""
        logger.info("Deleting plan %s for user: %s", plan.id[:8], plan.user_id[:8])
        batch = self.client.batch()
        batch.delete(self._plans(plan.user_id).document(plan.id))
        if plan.status in LIVE_STATUSES:
            batch.delete(self._marker_ref(plan.user_id))
        batch.commit()

    # ==================== Entry Operations ====================

    def save_entry(self, entry: LogEntry) -> None:
        """Create or overwrite a log entry."""
        logger.debug("Saving %s %s for user: %s", type(entry).__name__, entry.id[:8], entry.user_id[:8])
        self._entries(entry.user_id, type(entry)).document(entry.id).set(_to_document(entry))

    def get_entry(self, user_id: str, model: type[EntryT], entry_id: str) -> EntryT | None:
        """Fetch a single entry owned by the user."""
        doc = self._entries(user_id, model).document(entry_id).get()
        if not doc.exists:
            return None
        return model(**doc.to_dict())

    def delete_entry(self, user_id: str, model: type[LogEntry], entry_id: str) -> bool:
        """Delete an entry.

        Returns:
            True if the entry existed
        """
        ref = self._entries(user_id, model).document(entry_id)
        if not ref.get().exists:
            logger.warning("%s not found: %s", model.__name__, entry_id)
            return False
        ref.delete()
        return True

    def _filtered(
        self,
        user_id: str,
        model: type[LogEntry],
        start_date: date | None,
        end_date: date | None,
        week: int | None = None,
    ) -> firestore.Query:
        query = self._entries(user_id, model)
        if start_date is not None:
            query = query.where("date", ">=", start_date.isoformat())
        if end_date is not None:
            query = query.where("date", "<=", end_date.isoformat())
        if week is not None:
            query = query.where("week", "==", week)
        return query

    def query_entries(
        self, user_id: str, model: type[EntryT], entry_filter: EntryFilter
    ) -> tuple[list[EntryT], Pagination]:
        """Fetch one page of entries, newest date first.

        Args:
            user_id: The user's ID
            model: Entry type to query
            entry_filter: Date range, week and paging options

        Returns:
            Tuple of (entries on the page, pagination info)
        """
        query = self._filtered(
            user_id, model, entry_filter.start_date, entry_filter.end_date, entry_filter.week
        )

        total = query.count().get()[0][0].value
        page_query = (
            query.order_by("date", direction=firestore.Query.DESCENDING)
            .offset((entry_filter.page - 1) * entry_filter.limit)
            .limit(entry_filter.limit)
        )
        entries = [model(**doc.to_dict()) for doc in page_query.stream()]
        logger.debug("Found %d of %d %s entries", len(entries), total, model.__name__)

        return entries, Pagination(
            page=entry_filter.page,
            limit=entry_filter.limit,
            total=total,
            pages=math.ceil(total / entry_filter.limit),
        )

    def list_entries(
        self,
        user_id: str,
        model: type[EntryT],
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[EntryT]:
        """Fetch all entries in an optional date range, oldest first."""
        query = self._filtered(user_id, model, start_date, end_date).order_by("date")
        return [model(**doc.to_dict()) for doc in query.stream()]
