import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from smartlist.api import health, users
from smartlist.core.config import cors_origins, settings, validate_config
from smartlist.core.database import create_all_tables
from smartlist.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from smartlist.core.logging import configure_logging
from smartlist.core.middleware.request_id import RequestIdMiddleware

configure_logging(settings.ENV)
validate_config(strict=settings.CONFIG_STRICT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("smartlist")
    logger.info("Starting SmartList remote store...")
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping SmartList remote store...")


app = FastAPI(title="SmartList - Remote Store", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(health.root_router)


def run() -> None:
    import uvicorn

    uvicorn.run("smartlist.main:app", host="0.0.0.0", port=3001)


if __name__ == "__main__":
    run()
