import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.employees.router import router as employees_router
from app.api.v1.tasks.router import router as tasks_router
from app.core.clock import Clock
from app.core.config import settings
from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal
from app.integrations.ledger import build_ledger
from app.jobs.scheduler import build_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = build_scheduler(settings, AsyncSessionLocal, app.state.ledger, app.state.clock)
        scheduler.start()
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    app.state.ledger.close()


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Attendance Backend", lifespan=lifespan)

    app.state.clock = Clock(settings.app_timezone, settings.weekly_rest_day)
    app.state.ledger = build_ledger(settings, app.state.clock)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(employees_router)
    app.include_router(attendance_router)
    app.include_router(tasks_router)

    logger.info("Application configured (timezone=%s)", settings.app_timezone)
    return app


app = create_app()
