import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from kushl import __version__
from kushl.core.config import get_settings
from kushl.routers import admin as admin_router
from kushl.routers import auth as auth_router
from kushl.routers import gamification as gamification_router
from kushl.routers import projects as projects_router
from kushl.routers import public as public_router
from kushl.routers import tasks as tasks_router
from kushl.services.recurring_service import check_and_reset_recurring_tasks


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, no sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app() -> FastAPI:
    """Factory usable by uvicorn (``uvicorn kushl.app:create_app --factory``)."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        check_and_reset_recurring_tasks()
        yield

    app = FastAPI(title="KushL API", version=__version__, lifespan=lifespan)

    if settings.app_env != "prod":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    @app.get("/health")
    def health():
        return {"ok": True, "version": __version__, "storage": settings.storage_backend}

    app.include_router(auth_router.router)
    app.include_router(projects_router.router)
    app.include_router(tasks_router.router)
    app.include_router(admin_router.router)
    app.include_router(public_router.router)
    app.include_router(gamification_router.router)
    return app


app = create_app()
