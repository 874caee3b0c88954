"""
Kindergarten menu planning service - application entry point

Main modules:
- product inventory and stock changes
- dish catalog
- weekly menu templates and their expansion into daily menus
- product requirement calculation against stock
- daily menus, meal serving and consumption logs

Stack: FastAPI + DuckDB
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import settings
from .core.database import DatabaseManager, db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.db.init_database()
    except BaseApplicationError as e:
        # keep serving; the next request retries the connection
        logger.error("Database initialization failed: %s", e.message)

    yield

    app.state.db.close()


def create_app(db: DatabaseManager = None) -> FastAPI:
    """Build the FastAPI application, optionally bound to a given database"""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Kindergarten menu planning API",
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.db = db or db_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        try:
            app.state.db.execute_one("SELECT 1")
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except BaseApplicationError as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "Kindergarten menu planning API"
        }

    return app


app = create_app()
