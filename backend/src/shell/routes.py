"""HTTP Routes - Starlette handlers for plans and log entries.

Handlers parse the request, call a service and wrap the result in
{"success": true, "data": ...}. Errors are raised and turned into
responses by the exception handlers registered in main.

Service calls block on Firestore and must stay off the event loop. Handlers
that need no body are plain functions, which Starlette runs in its
threadpool; the rest await the body and then use run_in_threadpool.
"""

from datetime import date
from typing import Any, Callable

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import BaseRoute, Route

from ..core import summaries
from ..core.errors import ValidationError
from ..core.models import (
    EntryFilter,
    LogEntry,
    Meal,
    PlanCreate,
    PlanUpdate,
    StepsEntry,
    WeightEntry,
    Workout,
)
from .entry_service import ENTRY_LABELS, EntryService, parse_date
from .plan_service import PlanService


Handler = Callable[[Request], Any]


# ==================== Helpers ====================


def _user_id(request: Request) -> str:
    return request.state.principal.id


def _plans(request: Request) -> PlanService:
    return request.app.state.plans


def _entries(request: Request) -> EntryService:
    return request.app.state.entries


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _present(value: Any) -> Any:
    """Convert results to JSON-ready data, adding derived entry figures."""
    if isinstance(value, list):
        return [_present(v) for v in value]
    if not isinstance(value, BaseModel):
        return value

    data = value.model_dump(mode="json")
    if isinstance(value, StepsEntry):
        data["goal_percentage"] = summaries.goal_percentage(value)
    elif isinstance(value, Workout):
        data["total_volume"] = summaries.workout_volume(value)
    elif isinstance(value, Meal):
        totals = summaries.meal_totals([value])
        data["total_calories"] = totals.calories
        data["total_macros"] = {"protein": totals.protein, "carbs": totals.carbs, "fats": totals.fats}
    return data


def _ok(data: Any = None, status_code: int = 200, message: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = _present(data)
    return JSONResponse(body, status_code=status_code)


def _query_date(request: Request, name: str) -> date | None:
    value = request.query_params.get(name)
    return parse_date(value, name) if value else None


def _entry_filter(request: Request, default_limit: int) -> EntryFilter:
    params = {
        key: request.query_params[key]
        for key in ("start_date", "end_date", "week", "page", "limit")
        if request.query_params.get(key)
    }
    params.setdefault("limit", default_limit)
    return EntryFilter(**params)


# ==================== Plan Handlers ====================


async def create_plan(request: Request) -> JSONResponse:
    """Create a plan for the caller. 409 if one is already active or paused."""
    plan_request = PlanCreate(**await _json_body(request))
    plan = await run_in_threadpool(_plans(request).create_plan, _user_id(request), plan_request)
    return _ok(plan, status_code=201)


def get_current_plan(request: Request) -> JSONResponse:
    return _ok(_plans(request).get_current_plan(_user_id(request)))


def list_plans(request: Request) -> JSONResponse:
    return _ok(_plans(request).list_plans(_user_id(request)))


def get_plan(request: Request) -> JSONResponse:
    return _ok(_plans(request).get_plan(_user_id(request), request.path_params["plan_id"]))


def pause_plan(request: Request) -> JSONResponse:
    plan = _plans(request).pause_plan(_user_id(request))
    return _ok(plan, message="Plan paused successfully")


def resume_plan(request: Request) -> JSONResponse:
    plan = _plans(request).resume_plan(_user_id(request))
    return _ok(plan, message="Plan resumed successfully")


async def update_plan(request: Request) -> JSONResponse:
    update = PlanUpdate(**await _json_body(request))
    plan = await run_in_threadpool(
        _plans(request).update_plan, _user_id(request), request.path_params["plan_id"], update
    )
    return _ok(plan)


def delete_plan(request: Request) -> JSONResponse:
    _plans(request).delete_plan(_user_id(request), request.path_params["plan_id"])
    return _ok(message="Plan deleted successfully")


def plan_progress(request: Request) -> JSONResponse:
    return _ok(_plans(request).get_progress(_user_id(request)))


# ==================== Entry Handlers ====================


def _collection_handlers(model: type[LogEntry], default_limit: int) -> tuple[Handler, Handler]:
    """Create and list handlers for an entry type."""

    async def create(request: Request) -> JSONResponse:
        body = await _json_body(request)
        entry = await run_in_threadpool(_entries(request).create_entry, _user_id(request), model, body)
        return _ok(entry, status_code=201)

    def list_all(request: Request) -> JSONResponse:
        entries, pagination = _entries(request).list_entries(
            _user_id(request), model, _entry_filter(request, default_limit)
        )
        return _ok({"entries": _present(entries), "pagination": pagination.model_dump()})

    return create, list_all


def _item_handlers(model: type[LogEntry]) -> tuple[Handler, Handler, Handler]:
    """Get, update and delete handlers for a single entry."""
    label = ENTRY_LABELS[model]

    def get(request: Request) -> JSONResponse:
        return _ok(_entries(request).get_entry(_user_id(request), model, request.path_params["entry_id"]))

    async def update(request: Request) -> JSONResponse:
        body = await _json_body(request)
        entry = await run_in_threadpool(
            _entries(request).update_entry, _user_id(request), model, request.path_params["entry_id"], body
        )
        return _ok(entry)

    def delete(request: Request) -> JSONResponse:
        _entries(request).delete_entry(_user_id(request), model, request.path_params["entry_id"])
        return _ok(message=f"{label} deleted successfully")

    return get, update, delete


def _entry_routes(path: str, model: type[LogEntry], default_limit: int) -> list[BaseRoute]:
    create, list_all = _collection_handlers(model, default_limit)
    get, update, delete = _item_handlers(model)
    return [
        Route(path, create, methods=["POST"]),
        Route(path, list_all, methods=["GET"]),
        Route(path + "/{entry_id}", get, methods=["GET"]),
        Route(path + "/{entry_id}", update, methods=["PUT"]),
        Route(path + "/{entry_id}", delete, methods=["DELETE"]),
    ]


def weight_weekly(request: Request) -> JSONResponse:
    return _ok(_entries(request).weight_weekly(_user_id(request)))


def steps_weekly(request: Request) -> JSONResponse:
    return _ok(_entries(request).steps_weekly(_user_id(request)))


def steps_today(request: Request) -> JSONResponse:
    return _ok(_entries(request).steps_for_day(_user_id(request)))


def steps_on_date(request: Request) -> JSONResponse:
    day = parse_date(request.path_params["day"])
    return _ok(_entries(request).steps_for_day(_user_id(request), day))


def workout_weekly(request: Request) -> JSONResponse:
    return _ok(_entries(request).workout_weekly(_user_id(request)))


def workouts_on_date(request: Request) -> JSONResponse:
    day = parse_date(request.path_params["day"])
    return _ok(_entries(request).entries_on(_user_id(request), Workout, day))


async def add_exercise(request: Request) -> JSONResponse:
    body = await _json_body(request)
    workout = await run_in_threadpool(
        _entries(request).add_exercise, _user_id(request), request.path_params["entry_id"], body
    )
    return _ok(workout)


def remove_exercise(request: Request) -> JSONResponse:
    workout = _entries(request).remove_exercise(
        _user_id(request), request.path_params["entry_id"], request.path_params["exercise_id"]
    )
    return _ok(workout)


def meal_summary(request: Request) -> JSONResponse:
    result = _entries(request).meal_summary(
        _user_id(request),
        period=request.query_params.get("type", "daily"),
        start_date=_query_date(request, "start_date"),
        end_date=_query_date(request, "end_date"),
    )
    return _ok(result)


def meals_today(request: Request) -> JSONResponse:
    meals, totals = _entries(request).meals_with_totals(_user_id(request))
    return _ok({"meals": _present(meals), "totals": totals.model_dump()})


def meals_on_date(request: Request) -> JSONResponse:
    day = parse_date(request.path_params["day"])
    meals, totals = _entries(request).meals_with_totals(_user_id(request), day)
    return _ok({"meals": _present(meals), "totals": totals.model_dump()})


async def add_meal_item(request: Request) -> JSONResponse:
    body = await _json_body(request)
    meal = await run_in_threadpool(
        _entries(request).add_meal_item, _user_id(request), request.path_params["entry_id"], body
    )
    return _ok(meal)


def remove_meal_item(request: Request) -> JSONResponse:
    meal = _entries(request).remove_meal_item(
        _user_id(request), request.path_params["entry_id"], request.path_params["item_id"]
    )
    return _ok(meal)


# ==================== Route Table ====================


def api_routes() -> list[BaseRoute]:
    """Authenticated API routes, relative to the /api mount.

    Fixed paths are listed before the /{id} routes they would otherwise match.
    """
    return [
        # Plans
        Route("/plan", create_plan, methods=["POST"]),
        Route("/plan", get_current_plan, methods=["GET"]),
        Route("/plan/all", list_plans, methods=["GET"]),
        Route("/plan/progress/summary", plan_progress, methods=["GET"]),
        Route("/plan/pause", pause_plan, methods=["PUT"]),
        Route("/plan/resume", resume_plan, methods=["PUT"]),
        Route("/plan/{plan_id}", get_plan, methods=["GET"]),
        Route("/plan/{plan_id}", update_plan, methods=["PUT"]),
        Route("/plan/{plan_id}", delete_plan, methods=["DELETE"]),
        # Weight
        Route("/weight/weekly", weight_weekly, methods=["GET"]),
        *_entry_routes("/weight", WeightEntry, default_limit=50),
        # Steps
        Route("/steps/weekly", steps_weekly, methods=["GET"]),
        Route("/steps/today", steps_today, methods=["GET"]),
        Route("/steps/date/{day}", steps_on_date, methods=["GET"]),
        *_entry_routes("/steps", StepsEntry, default_limit=30),
        # Workouts
        Route("/workout/weekly", workout_weekly, methods=["GET"]),
        Route("/workout/date/{day}", workouts_on_date, methods=["GET"]),
        Route("/workout/{entry_id}/exercise", add_exercise, methods=["POST"]),
        Route("/workout/{entry_id}/exercise/{exercise_id}", remove_exercise, methods=["DELETE"]),
        *_entry_routes("/workout", Workout, default_limit=20),
        # Meals
        Route("/meals/summary", meal_summary, methods=["GET"]),
        Route("/meals/today", meals_today, methods=["GET"]),
        Route("/meals/date/{day}", meals_on_date, methods=["GET"]),
        Route("/meals/{entry_id}/item", add_meal_item, methods=["POST"]),
        Route("/meals/{entry_id}/item/{item_id}", remove_meal_item, methods=["DELETE"]),
        *_entry_routes("/meals", Meal, default_limit=50),
    ]
