from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from kpiboard.db.base import get_db
from kpiboard.db.init import ensure_directories, init_db
from kpiboard.core.config import settings
from kpiboard.core.log import configure_logging
from kpiboard.routers import admin as admin_router
from kpiboard.routers import dashboard as dashboard_router
from kpiboard.routers import narrative as narrative_router
from kpiboard.routers import targets as targets_router
from kpiboard.core.errors import (
    KPIBoardException,
    kpiboard_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    if settings.AUTO_MIGRATE:
        init_db()
    else:
        ensure_directories()
    yield


app = FastAPI(
    title="KPI Board API",
    description=(
        "**Staffing KPI dashboard**\n\n"
        "Imports weekly recruitment / sales spreadsheets and monthly board KPIs, "
        "and serves per-person and team-level views against targets.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(KPIBoardException, kpiboard_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(dashboard_router.router)
app.include_router(targets_router.router)
app.include_router(narrative_router.router)
app.include_router(admin_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
