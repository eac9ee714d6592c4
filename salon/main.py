# salon/main.py

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from salon.auth import ensure_admin
from salon.config import settings
from salon.db import engine, init_db
from salon.logging_config import configure_logging
from salon.routers import (
    appointments_routes,
    auth_routes,
    changes_routes,
    jobs_routes,
    services_routes,
    settings_routes,
    slots_routes,
    users_routes,
)
from salon.worker import run_sweeps_forever

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    init_db()
    with Session(engine) as session:
        ensure_admin(session)

    sweep_task = None
    if settings.sweeps_enabled:
        sweep_task = asyncio.create_task(run_sweeps_forever())

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task
    logger.info("Application shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(title="Salon Booking API", version="0.1.0", lifespan=lifespan)

    allowed_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_routes.router)
    app.include_router(users_routes.router)
    app.include_router(services_routes.router)
    app.include_router(slots_routes.router)
    app.include_router(appointments_routes.router)
    app.include_router(settings_routes.router)
    app.include_router(changes_routes.router)
    app.include_router(jobs_routes.router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
