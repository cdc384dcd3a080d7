"""Shared fixtures: in-memory persistence, fake auth and a controllable clock."""

import math
from datetime import datetime, timezone

import pytest

from src.core.errors import ConflictError
from src.core.models import LIVE_STATUSES, EntryFilter, Pagination, Plan, Principal
from src.shell.auth import generate_api_key, hash_api_key
from src.shell.entry_service import EntryService
from src.shell.plan_service import PlanService


class InMemoryStore:
    """Stand-in for FitTrackFirestoreClient keeping documents in dicts."""

    def __init__(self) -> None:
        self.plans: dict[str, Plan] = {}
        self.live_markers: dict[str, str] = {}
        self.entries: dict[tuple[type, str, str], object] = {}
        self.closed = False

    def close(self) -> None:
        self.closed = True

    # Plans

    def get_live_plan(self, user_id):
        for plan in self.plans.values():
            if plan.user_id == user_id and plan.status in LIVE_STATUSES:
                return plan
        return None

    def get_plan_in_status(self, user_id, status):
        for plan in self.plans.values():
            if plan.user_id == user_id and plan.status == status:
                return plan
        return None

    def get_plan(self, user_id, plan_id):
        plan = self.plans.get(plan_id)
        if plan is None or plan.user_id != user_id:
            return None
        return plan

    def list_plans(self, user_id):
        plans = [p for p in self.plans.values() if p.user_id == user_id]
        return sorted(plans, key=lambda p: p.created_at, reverse=True)

    def insert_live_plan(self, plan):
        if plan.user_id in self.live_markers:
            raise ConflictError("You already have an active or paused plan.")
        self.live_markers[plan.user_id] = plan.id
        self.plans[plan.id] = plan

    def save_plan(self, plan):
        self.plans[plan.id] = plan

    def retire_live_plan(self, plan):
        self.plans[plan.id] = plan
        self.live_markers.pop(plan.user_id, None)

    def delete_plan(self, plan):
        del self.plans[plan.id]
        if plan.status in LIVE_STATUSES:
            self.live_markers.pop(plan.user_id, None)

    # Entries

    def save_entry(self, entry):
        self.entries[(type(entry), entry.user_id, entry.id)] = entry

    def get_entry(self, user_id, model, entry_id):
        return self.entries.get((model, user_id, entry_id))

    def delete_entry(self, user_id, model, entry_id):
        return self.entries.pop((model, user_id, entry_id), None) is not None

    def list_entries(self, user_id, model, start_date=None, end_date=None):
        found = [
            e for (m, uid, _), e in self.entries.items()
            if m is model and uid == user_id
            and (start_date is None or e.date >= start_date)
            and (end_date is None or e.date <= end_date)
        ]
        return sorted(found, key=lambda e: e.date)

    def query_entries(self, user_id, model, entry_filter: EntryFilter):
        found = [
            e for e in self.list_entries(user_id, model, entry_filter.start_date, entry_filter.end_date)
            if entry_filter.week is None or e.week == entry_filter.week
        ]
        found.sort(key=lambda e: e.date, reverse=True)
        offset = (entry_filter.page - 1) * entry_filter.limit
        return found[offset:offset + entry_filter.limit], Pagination(
            page=entry_filter.page,
            limit=entry_filter.limit,
            total=len(found),
            pages=math.ceil(len(found) / entry_filter.limit),
        )


class FakeAuth:
    """Stand-in for AuthClient keyed by hashed API key."""

    def __init__(self) -> None:
        self.principals: dict[str, Principal] = {}

    def register_user(self, email):
        api_key = generate_api_key()
        user_id = hash_api_key(api_key)
        self.principals[user_id] = Principal(id=user_id)
        return api_key, user_id

    def authenticate(self, api_key):
        if not api_key:
            return None
        return self.principals.get(hash_api_key(api_key))


class Clock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, year: int, month: int, day: int, hour: int = 12) -> None:
        self.now = datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return Clock(datetime(2024, 1, 1, 12, tzinfo=timezone.utc))


@pytest.fixture
def plans(store, clock):
    return PlanService(store, clock)


@pytest.fixture
def entries(store, plans):
    return EntryService(store, plans)


@pytest.fixture
def user_id():
    return "user_" + "a" * 27


@pytest.fixture
def auth():
    return FakeAuth()
