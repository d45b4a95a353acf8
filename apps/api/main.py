"""
PINDEX NAV — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from core.config import settings
from core.database import dispose_engine
from core.dependencies import get_snapshot_store
from core.logging import configure_logging
from core.responses import err
from jobs.scheduler import NavScheduler
from routers import nav
from services.nav_estimator import NavEstimator, build_nav_source

configure_logging(settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api.startup", env=settings.APP_ENV, log_level=settings.LOG_LEVEL, nav_source=settings.NAV_SOURCE)

    nav_scheduler: NavScheduler | None = None
    if settings.NAV_SCHEDULER_ENABLED:
        estimator = NavEstimator(build_nav_source(settings))
        nav_scheduler = NavScheduler(estimator, get_snapshot_store(), settings.NAV_INTERVAL_SECONDS)
        nav_scheduler.start()

    yield

    if nav_scheduler is not None:
        nav_scheduler.shutdown()
        await nav_scheduler.estimator.aclose()
    await dispose_engine()
    logger.info("api.shutdown")


app = FastAPI(
    title="PINDEX NAV API",
    description="Serie temporal del NAV por participación del índice tokenizado.",
    version="1.0.0",
    docs_url="/docs" if settings.APP_ENV != "production" else None,
    redoc_url="/redoc" if settings.APP_ENV != "production" else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middlewares
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)

# ---------------------------------------------------------------------------
# Exception handlers globales — mantienen formato { data, error, meta }
# ---------------------------------------------------------------------------


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    headers = getattr(exc, "headers", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=err(exc.detail),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=err(f"Error de validación: {exc.errors()}"),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=str(request.url), error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=err(f"Error interno del servidor: {type(exc).__name__}"),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(nav.router, prefix="/api/v1/nav", tags=["nav"])


# ---------------------------------------------------------------------------
# Health check y comprobación básica
# ---------------------------------------------------------------------------


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "PINDEX NAV backend is running"


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    return {"status": "ok", "env": settings.APP_ENV, "nav_source": settings.NAV_SOURCE}
