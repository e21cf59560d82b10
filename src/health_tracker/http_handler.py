"""HTTP API for the health tracker."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
import uvicorn
from fastapi import FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ValidationError

from . import __version__
from .backend import HealthBackend
from .config import GoalSettings, HTTPSettings
from .metrics import HTTP_REQUESTS_TOTAL
from .tracing import server_span
from .types import JSONValue

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _report_server_exit(task: asyncio.Task) -> None:
    """Surface a uvicorn crash; a clean shutdown finishes without an exception."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("http_server_crashed", error=str(error))


class RegisterRequest(BaseModel):
    name: str
    age: int
    weightKg: float
    heightM: float
    password: str


class LoginRequest(BaseModel):
    name: str
    password: str


class UpdateUserRequest(BaseModel):
    age: int
    weightKg: float
    heightM: float
    password: str


class IndexRequest(BaseModel):
    index: int


class WaterRequest(BaseModel):
    date: str
    amountMl: float


class WaterEditRequest(WaterRequest):
    index: int


class SleepRequest(BaseModel):
    date: str
    hours: float


class SleepEditRequest(SleepRequest):
    index: int


class ActivityRequest(BaseModel):
    date: str
    minutes: int
    intensity: str = ""


class ActivityEditRequest(ActivityRequest):
    index: int


class CategoryRequest(BaseModel):
    categoryName: str


class OtherRecordRequest(CategoryRequest):
    date: str
    value: float
    note: str = ""


class OtherEditRequest(OtherRecordRequest):
    index: int


class OtherDeleteRequest(CategoryRequest):
    index: int


class RequestError(Exception):
    """Raised inside a route to short-circuit with an error response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        details: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def _field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Reduce pydantic errors to the offending field name and a short reason.

    The ``body``/``query`` location prefix and pydantic's wording stay internal.
    """
    reported = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc) or "body"
        reason = "required" if err.get("type") == "missing" else f"invalid {field}"
        reported.append({"field": field, "message": reason})
    return reported


def error_response(
    status_code: int,
    message: str,
    details: list[dict[str, str]] | None = None,
) -> JSONResponse:
    payload: dict[str, JSONValue] = {"status": "error", "errorMessage": message}
    if details is not None:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant {name}")


def ok(**fields: JSONValue) -> dict[str, Any]:
    return {"status": "ok", **fields}


async def parse_body(request: Request, model: type[M]) -> M:
    """Decode a JSON object body into ``model``.

    Raises:
        RequestError: 400 for unreadable JSON or missing/invalid fields.
    """
    try:
        payload = json.loads(await request.body(), parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError) as exc:
        # JSONDecodeError is a ValueError
        logger.warning("http_payload_parse_error", path=request.url.path, error=str(exc))
        raise RequestError(status.HTTP_400_BAD_REQUEST, "Invalid JSON") from exc

    if not isinstance(payload, dict):
        raise RequestError(status.HTTP_400_BAD_REQUEST, "Body must be a JSON object")

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.info("http_payload_validation_error", path=request.url.path)
        raise RequestError(
            status.HTTP_400_BAD_REQUEST,
            "Missing or invalid fields",
            details=_field_errors(exc.errors()),
        ) from exc


class HTTPHandler:
    """Serves the health tracker API on top of a ``HealthBackend``.

    The session token travels in a header (``X-Auth-Token`` by default). A
    missing or unknown token is answered with 401 before the backend sees the
    request; backend refusals (validation, bad index, unknown category) are 400.
    """

    def __init__(
        self,
        settings: HTTPSettings,
        backend: HealthBackend,
        goals: GoalSettings | None = None,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._goals = goals or GoalSettings()
        self._app: FastAPI | None = None
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task | None = None

    def _require_token(self, request: Request) -> str:
        """Return the request's session token if it resolves to a user.

        Raises:
            RequestError: 401 when the header is missing or the token is unknown.
        """
        header = self._settings.token_header
        token = request.headers.get(header, "")
        if not token:
            raise RequestError(status.HTTP_401_UNAUTHORIZED, f"Missing {header} header")
        if self._backend.resolve_token(token) is None:
            raise RequestError(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
        return token

    def _build_app(self) -> FastAPI:
        app = FastAPI(
            title="Health Tracker API",
            version=__version__,
            description="Personal water, sleep, activity and custom metric tracking.",
        )
        backend = self._backend

        @app.exception_handler(RequestError)
        async def handle_request_error(request: Request, exc: RequestError) -> JSONResponse:
            return error_response(exc.status_code, exc.message, exc.details)

        @app.exception_handler(RequestValidationError)
        async def handle_validation_error(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                "Invalid request parameters",
                _field_errors(list(exc.errors())),
            )

        @app.middleware("http")
        async def observe(
            request: Request, call_next: Callable[[Request], Awaitable[Response]]
        ) -> Response:
            method = request.method
            path = request.url.path
            with server_span(method, path, dict(request.headers)) as span:
                try:
                    response = await call_next(request)
                except Exception:
                    logger.exception("http_unhandled_error", method=method, path=path)
                    response = error_response(
                        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
                    )
                span.set_attribute("http.response.status_code", response.status_code)

            if response.status_code == status.HTTP_404_NOT_FOUND:
                path = "unmatched"
            HTTP_REQUESTS_TOTAL.labels(
                method=method, path=path, status=str(response.status_code)
            ).inc()
            return response

        # -- service ----------------------------------------------------------

        @app.get("/health", summary="Health check")
        async def health() -> dict[str, Any]:
            """Handle GET /health -- returns service liveness status."""
            return ok(message="health tracker running")

        @app.get("/info", summary="Service info")
        async def info() -> dict[str, Any]:
            return {"name": "health-tracker", "version": __version__}

        @app.get("/metrics", summary="Prometheus metrics")
        async def metrics() -> Response:
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

        # -- users ------------------------------------------------------------

        @app.post("/register", summary="Register and log in")
        async def register(request: Request) -> dict[str, Any]:
            """Handle POST /register -- creates the account and returns a first token."""
            body = await parse_body(request, RegisterRequest)
            if not backend.register_user(
                body.name, body.age, body.weightKg, body.heightM, body.password
            ):
                raise RequestError(
                    status.HTTP_400_BAD_REQUEST, "User already exists or invalid input"
                )
            token = backend.login(body.name, body.password)
            return ok(token=token)

        @app.post("/login", summary="Log in")
        async def login(request: Request) -> dict[str, Any]:
            body = await parse_body(request, LoginRequest)
            token = backend.login(body.name, body.password)
            if token is None:
                raise RequestError(status.HTTP_401_UNAUTHORIZED, "Invalid name or password")
            return ok(token=token)

        @app.get("/user/bmi", summary="Body mass index")
        async def user_bmi(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(bmi=backend.get_bmi(token))

        @app.post("/user/update", summary="Update profile")
        async def user_update(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, UpdateUserRequest)
            if not backend.update_user(token, body.age, body.weightKg, body.heightM, body.password):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to update user")
            return ok(message="User updated")

        @app.post("/user/delete", summary="Delete account")
        async def user_delete(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            if not backend.delete_user(token):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to delete user")
            return ok(message="User deleted")

        # -- water ------------------------------------------------------------

        @app.post("/water/add")
        async def water_add(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, WaterRequest)
            if not backend.add_water(token, body.date, body.amountMl):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to add water record")
            return ok(message="Water record added")

        @app.post("/water/edit")
        async def water_edit(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, WaterEditRequest)
            if not backend.update_water(token, body.index, body.date, body.amountMl):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to edit water record")
            return ok(message="Water record updated")

        @app.post("/water/delete")
        async def water_delete(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, IndexRequest)
            if not backend.delete_water(token, body.index):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to delete water record")
            return ok(message="Water record deleted")

        @app.get("/water/all")
        async def water_all(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(records=[r.to_dict() for r in backend.get_all_water(token)])

        @app.get("/water/weekly_average")
        async def water_weekly_average(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(weeklyAverageMl=backend.get_weekly_average_water(token))

        @app.get("/water/is_enough")
        async def water_is_enough(request: Request, goal: float | None = None) -> dict[str, Any]:
            """Handle GET /water/is_enough?goal=1500 -- weekly average against a daily goal."""
            token = self._require_token(request)
            if goal is None:
                goal = self._goals.water_daily_ml
            return ok(goal=goal, enough=backend.is_water_enough(token, goal))

        # -- sleep ------------------------------------------------------------

        @app.post("/sleep/add")
        async def sleep_add(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, SleepRequest)
            if not backend.add_sleep(token, body.date, body.hours):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to add sleep record")
            return ok(message="Sleep record added")

        @app.post("/sleep/edit")
        async def sleep_edit(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, SleepEditRequest)
            if not backend.update_sleep(token, body.index, body.date, body.hours):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to edit sleep record")
            return ok(message="Sleep record updated")

        @app.post("/sleep/delete")
        async def sleep_delete(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, IndexRequest)
            if not backend.delete_sleep(token, body.index):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to delete sleep record")
            return ok(message="Sleep record deleted")

        @app.get("/sleep/all")
        async def sleep_all(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(records=[r.to_dict() for r in backend.get_all_sleep(token)])

        @app.get("/sleep/last_hours")
        async def sleep_last_hours(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(lastHours=backend.get_last_sleep_hours(token))

        @app.get("/sleep/is_enough")
        async def sleep_is_enough(
            request: Request,
            min_hours: float | None = Query(default=None, alias="min"),
        ) -> dict[str, Any]:
            """Handle GET /sleep/is_enough?min=7 -- last night's sleep against a minimum."""
            token = self._require_token(request)
            if min_hours is None:
                min_hours = self._goals.sleep_min_hours
            return ok(minHours=min_hours, enough=backend.is_sleep_enough(token, min_hours))

        # -- activity ---------------------------------------------------------

        @app.post("/activity/add")
        async def activity_add(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, ActivityRequest)
            if not backend.add_activity(token, body.date, body.minutes, body.intensity):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to add activity record")
            return ok(message="Activity record added")

        @app.post("/activity/edit")
        async def activity_edit(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, ActivityEditRequest)
            if not backend.update_activity(
                token, body.index, body.date, body.minutes, body.intensity
            ):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to edit activity record")
            return ok(message="Activity record updated")

        @app.post("/activity/delete")
        async def activity_delete(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, IndexRequest)
            if not backend.delete_activity(token, body.index):
                raise RequestError(
                    status.HTTP_400_BAD_REQUEST, "Failed to delete activity record"
                )
            return ok(message="Activity record deleted")

        @app.get("/activity/all")
        async def activity_all(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(records=[r.to_dict() for r in backend.get_all_activity(token)])

        @app.api_route("/activity/sort_by_duration", methods=["GET", "POST"])
        async def activity_sort(request: Request) -> dict[str, Any]:
            """Sort the stored activities by minutes (persisted) and return them."""
            token = self._require_token(request)
            if not backend.sort_activity_by_duration(token):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to sort activities")
            return ok(records=[r.to_dict() for r in backend.get_all_activity(token)])

        # -- other categories -------------------------------------------------

        @app.post("/other/create")
        async def other_create(request: Request) -> dict[str, Any]:
            """Acknowledge a category name; it is stored with its first record."""
            self._require_token(request)
            await parse_body(request, CategoryRequest)
            return ok(message="Category will be created when first record is added")

        @app.post("/other/add_record")
        async def other_add_record(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, OtherRecordRequest)
            if not backend.add_other_record(
                token, body.categoryName, body.date, body.value, body.note
            ):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to add record")
            return ok(message="Record added")

        @app.post("/other/edit_record")
        async def other_edit_record(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, OtherEditRequest)
            if not backend.update_other_record(
                token, body.categoryName, body.index, body.date, body.value, body.note
            ):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to edit record")
            return ok(message="Record updated")

        @app.post("/other/delete_record")
        async def other_delete_record(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            body = await parse_body(request, OtherDeleteRequest)
            if not backend.delete_other_record(token, body.categoryName, body.index):
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Failed to delete record")
            return ok(message="Record deleted")

        @app.get("/other/categories")
        async def other_categories(request: Request) -> dict[str, Any]:
            token = self._require_token(request)
            return ok(categories=backend.get_other_categories(token))

        @app.get("/other/get_records")
        async def other_get_records(
            request: Request, category: str | None = None
        ) -> dict[str, Any]:
            token = self._require_token(request)
            if category is None:
                raise RequestError(status.HTTP_400_BAD_REQUEST, "Missing category param")
            records = backend.get_other_records(token, category)
            return ok(records=[r.to_dict() for r in records])

        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self._build_app()
        config = uvicorn.Config(
            self._app,
            host=self._settings.host,
            port=self._settings.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())
        self._server_task.add_done_callback(_report_server_exit)
        logger.info(
            "http_server_started",
            host=self._settings.host,
            port=self._settings.port,
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._server:
            self._server.should_exit = True
        if self._server_task:
            await self._server_task
            self._server_task = None
        logger.info("http_server_stopped")

    @property
    def app(self) -> FastAPI:
        """Expose the FastAPI app for testing."""
        if not self._app:
            self._app = self._build_app()
        return self._app
