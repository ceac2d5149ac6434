import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.datastructures import Headers

from hkids.api.auth import router as auth_router
from hkids.api.books import router as books_router
from hkids.config import settings
from hkids.database import create_store_engine, get_session, init_db
from hkids.errors import HKidsError, StoreUnavailable
from hkids.seed import ensure_admin

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """Answers successful preflight requests without a body."""

    def preflight_response(self, request_headers: Headers):
        response = super().preflight_response(request_headers)
        if response.status_code == 200:
            response.body = b""
            response.headers["content-length"] = "0"
            del response.headers["content-type"]
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = app.state.engine
    init_db(engine)
    Path(settings.media_dir).mkdir(parents=True, exist_ok=True)
    if settings.admin_username and settings.admin_email and settings.admin_password:
        with Session(engine) as session:
            ensure_admin(
                session,
                settings.admin_username,
                settings.admin_email,
                settings.admin_password,
            )
    else:
        logger.info("No HKIDS_ADMIN_* credentials set. Skipping admin seed.")
    yield
    engine.dispose()


def _validation_message(exc: RequestValidationError) -> str:
    error = exc.errors()[0]
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "body"
    if error.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {error.get('msg')}"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HKidsError)
    async def hkids_error_handler(request: Request, exc: HKidsError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Store error on %s %s", request.method, request.url.path)
        error = StoreUnavailable("Server error")
        return JSONResponse(status_code=error.status_code, content={"detail": error.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Server error"})


def create_app(database_url: str | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title="HKids", version="0.1.0", lifespan=lifespan)
    app.state.engine = create_store_engine(database_url or settings.database_url)

    app.add_middleware(
        EmptyPreflightCORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # The client and the serverless deployment address the API under /api
    for router in (auth_router, books_router):
        app.include_router(router)
        app.include_router(router, prefix="/api", include_in_schema=False)

    @app.get("/health")
    @app.get("/api/health", include_in_schema=False)
    async def health(session: Session = Depends(get_session)):
        timestamp = datetime.now(UTC).isoformat()
        try:
            session.connection().execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("Health check failed: %s", exc)
            return JSONResponse(
                status_code=500,
                content={
                    "status": "ERROR",
                    "message": "Database connection failed",
                    "error": str(exc),
                    "timestamp": timestamp,
                },
            )
        return {
            "status": "OK",
            "message": "HKids API is running",
            "timestamp": timestamp,
            "environment": settings.environment,
            "database": "connected",
        }

    app.mount(
        "/uploads",
        StaticFiles(directory=settings.media_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()
