"""FastAPI application for the task time tracker.

This is the web service entry point. It wires the task routes and maps the
domain exceptions onto HTTP responses:

    TaskNotFoundError            → 404
    InvalidStateTransitionError  → 409
    ConcurrencyConflictError     → 409 (retryable)
    ValidationFailedError        → 422 with field errors
    RequestValidationError       → 422 with field errors (same shape)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tracker.exceptions import (
    ConcurrencyConflictError,
    InvalidStateTransitionError,
    TaskNotFoundError,
    ValidationFailedError,
)
from tracker.routes import tasks
from tracker.utils.logging import configure_logging, get_logger

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup."""
    configure_logging()
    log.info("tracker_starting", version=app.version)

    yield  # Application runs here

    log.info("tracker_stopped")


app = FastAPI(
    title="Task Time Tracker",
    description="Task lifecycle, pause ledger and working-time reporting",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tasks.router)


@app.exception_handler(TaskNotFoundError)
async def handle_task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidStateTransitionError)
async def handle_invalid_transition(
    request: Request, exc: InvalidStateTransitionError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": exc.message,
            "from_status": exc.from_status.value,
            "to_status": exc.to_status.value,
        },
    )


@app.exception_handler(ConcurrencyConflictError)
async def handle_concurrency_conflict(
    request: Request, exc: ConcurrencyConflictError
) -> JSONResponse:
    log.warning("concurrency_conflict_response", task_id=str(exc.task_id), attempts=exc.attempts)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "retryable": True},
    )


@app.exception_handler(ValidationFailedError)
async def handle_validation_failed(request: Request, exc: ValidationFailedError) -> JSONResponse:
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        # Drop the "body"/"header"/"path" prefix so keys match service-level errors
        loc = [str(part) for part in error["loc"][1:]] or [str(error["loc"][0])]
        errors[".".join(loc)] = error["msg"]
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid request", "errors": errors},
    )


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> JSONResponse:
    """Liveness probe.

    Returns:
        JSONResponse: Status and service name
    """
    return JSONResponse(content={"status": "healthy", "service": "task-time-tracker"})


if __name__ == "__main__":
    import uvicorn

    # Binding to 0.0.0.0 is intentional for container deployment
    uvicorn.run(
        "tracker.main:app",
        host="0.0.0.0",  # noqa: S104
        port=8000,
        reload=True,
    )
