import logging
import math
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from proxyforge.api import decks_router, generate_router, health_router, reroll_router
from proxyforge.config import settings
from proxyforge.db.database import dispose_db, init_db
from proxyforge.models.failure import FailureKind, KnownError, RateLimitExceededError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield
    await dispose_db()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("proxyforge"),
    lifespan=lifespan,
)

app.include_router(generate_router)
app.include_router(decks_router)
app.include_router(reroll_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def describe_validation_errors(exc: RequestValidationError) -> str:
    """One line per problem, e.g. "body.theme: String should have at least 2 characters"."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid input"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": describe_validation_errors(exc),
            "kind": FailureKind.INVALID_INPUT.value,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = FailureKind.NOT_FOUND if exc.status_code == 404 else FailureKind.INVALID_INPUT
    if exc.status_code >= 500:
        kind = FailureKind.UNKNOWN
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "kind": kind.value},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message, extra={"kind": exc.kind.value})
    headers = None
    if isinstance(exc, RateLimitExceededError) and exc.retry_after is not None:
        headers = {"Retry-After": str(math.ceil(exc.retry_after))}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json", exclude_none=True),
        headers=headers,
    )
