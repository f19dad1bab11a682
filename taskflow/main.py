"""FastAPI entrypoint for the task service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskflow.config import load_config
from taskflow.errors import ErrorResponse, TaskFlowError, error_response
from taskflow.logging_setup import configure_logging
from taskflow.routes import tasks_router
from taskflow.storage import TaskStore, build_store

logger = logging.getLogger(__name__)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid request"))
    return f"{location}: {message}" if location else message


def create_app(store: TaskStore | None = None) -> FastAPI:
    """Build the application; ``store`` overrides the configured backend."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        configure_logging(config.log_level)
        app.state.config = config
        owns_store = store is None
        app.state.store = build_store(config) if owns_store else store
        logger.info(
            "task service started with %s store",
            config.store_backend if owns_store else type(store).__name__,
        )
        try:
            yield
        finally:
            if owns_store:
                app.state.store.close()

    app = FastAPI(title="TaskFlow", lifespan=lifespan)

    @app.exception_handler(TaskFlowError)
    def handle_task_error(request: Request, exc: TaskFlowError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code, content=error_response(exc.error)
        )

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ErrorResponse(
            code="INVALID_REQUEST", message=_first_validation_message(exc)
        )
        return JSONResponse(status_code=400, content=error_response(error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(tasks_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    config = load_config()
    uvicorn.run(
        "taskflow.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
