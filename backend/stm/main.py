"""Simple Task Manager API — FastAPI application entry point.

Invariants:
    - Routers registered explicitly, all under /api/v1
    - Domain errors become the JSON error envelope (api/error_handlers.py)
    - The engine is created on startup and disposed on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stm import __version__
from stm.api.error_handlers import register_error_handlers
from stm.api.routes import health, projects, tasks
from stm.config import get_settings
from stm.infrastructure.database import init_db
from stm.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, settings.database_echo)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.database_echo,
    )
    logger.info(f"Simple Task Manager API {__version__} started")
    yield
    await manager.dispose()
    logger.info("Simple Task Manager API stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(
        title="Simple Task Manager API", version=__version__, lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(health.router)
    application.include_router(projects.router)
    application.include_router(tasks.router)
    register_error_handlers(application)
    return application


app = create_app()
