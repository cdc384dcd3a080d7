"""FitTrack API - Entry point.

Builds the Starlette application: plan and log-entry routes under /api,
API-key authentication, CORS, and JSON error handling. The Firestore
client is created here and closed when the app shuts down.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from pydantic import ValidationError as SchemaError
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .core.errors import FitTrackError
from .core.models import utcnow
from .shell.auth import AuthClient, bearer_token
from .shell.entry_service import EntryService
from .shell.firestore_client import FirestoreConfig, FitTrackFirestoreClient
from .shell.plan_service import Clock, PlanService
from .shell.routes import api_routes


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "fittrack-api"

# Paths under /api that do not require an API key
PUBLIC_PATHS = ("/api/health", "/api/auth/")


def allowed_origins() -> list[str]:
    raw = os.environ.get("ALLOWED_ORIGINS", "http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": SERVICE_NAME})


async def register_user(request: Request) -> JSONResponse:
    """Register a new user and return their API key."""
    try:
        body = await request.json()
        email = body.get("email")

        if not email or "@" not in email:
            return JSONResponse({"success": False, "error": "Valid email is required"}, status_code=400)

        api_key, user_id = await run_in_threadpool(request.app.state.auth.register_user, email)

        return JSONResponse({
            "success": True,
            "api_key": api_key,
            "user_id": user_id,
            "message": "Registration successful! Save your API key - it won't be shown again.",
        })

    except Exception as e:
        logger.error("Registration failed: %s", str(e))
        return JSONResponse({"success": False, "error": "Registration failed."}, status_code=500)


async def validate_key(request: Request) -> JSONResponse:
    """Validate an API key."""
    try:
        body = await request.json()
        api_key = body.get("api_key")

        if not api_key:
            return JSONResponse({"valid": False, "error": "API key required"})

        principal = await run_in_threadpool(request.app.state.auth.authenticate, api_key)
        return JSONResponse({"valid": principal is not None})

    except Exception as e:
        logger.error("Validation failed: %s", str(e))
        return JSONResponse({"valid": False, "error": "Validation failed"})


# ==================== Error Handlers ====================


async def fittrack_error(request: Request, exc: FitTrackError) -> JSONResponse:
    return JSONResponse({"success": False, "error": exc.message}, status_code=exc.status_code)


async def schema_error(request: Request, exc: SchemaError) -> JSONResponse:
    """Invalid request payloads and entry fields."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse({"success": False, "error": message}, status_code=400)


async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
    message = "Route not found" if exc.status_code == 404 else exc.detail
    return JSONResponse({"success": False, "error": message}, status_code=exc.status_code)


async def internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"success": False, "error": "Internal server error"}, status_code=500)


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate API requests using the API key in the Authorization header."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Skip auth for non-API and public routes
        if not path.startswith("/api/") or path.startswith(PUBLIC_PATHS):
            return await call_next(request)

        api_key = bearer_token(request.headers.get("Authorization", ""))
        principal = await run_in_threadpool(request.app.state.auth.authenticate, api_key) if api_key else None

        if principal is None:
            return JSONResponse({"success": False, "error": "Not authorized"}, status_code=401)

        request.state.principal = principal
        logger.debug("Authenticated user: %s", principal.id[:8])
        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app(
    db: FitTrackFirestoreClient | None = None,
    auth_client: AuthClient | None = None,
    clock: Clock = utcnow,
) -> Starlette:
    """Create the Starlette application.

    Args:
        db: Persistence client; built from the environment when omitted
        auth_client: Authentication client; built on top of db when omitted
        clock: Source of the current time for plan computations

    Returns:
        Configured Starlette app. The persistence client is closed on shutdown.
    """
    db = db or FitTrackFirestoreClient(FirestoreConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("%s started", SERVICE_NAME)
        try:
            yield
        finally:
            db.close()
            logger.info("%s stopped", SERVICE_NAME)

    routes = [
        Route("/api/health", health_check, methods=["GET"]),
        Route("/api/auth/register", register_user, methods=["POST"]),
        Route("/api/auth/validate", validate_key, methods=["POST"]),
        Mount("/api", routes=api_routes()),
    ]

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=allowed_origins(),
                allow_credentials=True,
                allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                allow_headers=["Content-Type", "Authorization"],
            ),
            Middleware(AuthMiddleware),
        ],
        exception_handlers={
            FitTrackError: fittrack_error,
            SchemaError: schema_error,
            HTTPException: http_error,
            Exception: internal_error,
        },
        lifespan=lifespan,
    )

    plans = PlanService(db, clock)
    app.state.db = db
    app.state.plans = plans
    app.state.entries = EntryService(db, plans)
    app.state.auth = auth_client or AuthClient(db)

    return app


# Create app at module level for uvicorn
app = create_app()


def main() -> None:
    """Run the server."""
    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "0.0.0.0")

    logger.info("Starting FitTrack API on %s:%d", host, port)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
