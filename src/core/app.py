"""
DocGrid - Core Application

This module builds the FastAPI application: lifespan, middleware and routes.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
import time

from .config import get_cached_settings
from .database import init_db, close_db

# Configure logging
logger = logging.getLogger(__name__)


class DocGridApp:
    """Application wrapper that owns the FastAPI instance."""

    def __init__(self):
        """Initialize the application."""
        self.settings = get_cached_settings()
        self.app = None
        self._create_app()

    def _create_app(self):
        """Create the FastAPI application instance."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Application lifespan manager."""
            # Startup
            logger.info(f"Starting {self.settings.PROJECT_NAME} v{self.settings.VERSION}")

            await init_db()
            logger.info("Database initialized")

            os.makedirs(self.settings.UPLOAD_DIR, exist_ok=True)
            logger.info(f"Storing uploads in {self.settings.UPLOAD_DIR}")

            yield

            # Shutdown
            await close_db()
            logger.info("Database connections closed")

        self.app = FastAPI(
            title=self.settings.PROJECT_NAME,
            description="Document table extraction and review",
            version=self.settings.VERSION,
            openapi_url=f"{self.settings.API_V1_STR}/openapi.json",
            docs_url=f"{self.settings.API_V1_STR}/docs",
            redoc_url=f"{self.settings.API_V1_STR}/redoc",
            lifespan=lifespan,
        )

        self._add_middleware()
        self._add_routes()

    def _add_middleware(self):
        """Add middleware to the application."""
        # CORS: include FRONTEND_URL so non-localhost deployments work
        cors_origins = list(self.settings.BACKEND_CORS_ORIGINS)
        frontend = self.settings.FRONTEND_URL.rstrip("/")
        if frontend and frontend not in cors_origins:
            cors_origins.append(frontend)

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Request timing
        @self.app.middleware("http")
        async def add_process_time_header(request, call_next):
            start_time = time.time()
            response = await call_next(request)
            response.headers["X-Process-Time"] = str(time.time() - start_time)
            return response

    def _add_routes(self):
        """Add routes to the application."""
        @self.app.get("/")
        async def root():
            return {
                "name": self.settings.PROJECT_NAME,
                "version": self.settings.VERSION,
                "docs": f"{self.settings.API_V1_STR}/docs",
            }

        from api.v1 import api_router
        self.app.include_router(api_router, prefix=self.settings.API_V1_STR)

    def get_app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self.app


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    app_instance = DocGridApp()
    return app_instance.get_app()
