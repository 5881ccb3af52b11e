"""
coursecore/main.py
FastAPI application factory

    uvicorn coursecore.main:app
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from coursecore import __version__
from coursecore.config.settings import Settings, load_settings
from coursecore.database import close_db, create_engine, create_session_factory, init_db
from coursecore.errors import APIError, ErrorCode, StoreTransientError, get_error_summary
from coursecore.routes import build_router
from coursecore.services.registry import CoreServices, build_services

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


def create_app(settings: Optional[Settings] = None, services: Optional[CoreServices] = None) -> FastAPI:
    """
    Build the app.

    With services given (tests), the caller owns the engine and the lifespan
    neither creates tables nor disposes anything.
    """
    if settings is None:
        load_dotenv()
        settings = load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if services is None:
            logger.info("Starting curriculum/progress engine...")
            engine = create_engine(settings.database_url)
            try:
                if settings.auto_create_tables:
                    await init_db(engine)
                logger.info(f"Database connected: {settings.to_dict()['database_backend']}")
            except Exception as e:
                logger.error(f"Failed to connect to database: {str(e)}")
                raise
            app.state.services = build_services(create_session_factory(engine), settings=settings)

        yield

        if engine is not None:
            logger.info("Shutting down...")
            try:
                await close_db(engine)
                logger.info("Database connection closed")
            except Exception as e:
                logger.error(f"Error closing database connection: {str(e)}")

    app = FastAPI(
        title="Coursecore API",
        description="Curriculum composition and learner progress engine",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEFAULT_ORIGINS + settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        error_details = [
            {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation Error",
                "message": "Request validation failed",
                "code": ErrorCode.VALIDATION_ERROR,
                "details": error_details,
            }
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        return exc.to_response()

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        # Reached only after the executor spent its retry budget
        logger.error(f"Store failure on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return StoreTransientError(operation=request.url.path).to_response()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal Error",
                "message": "An unexpected error occurred. Please try again later.",
                "code": ErrorCode.INTERNAL_ERROR,
                "details": {"log_id": log_id},
            }
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.environment,
            "version": __version__,
        }

    @app.get("/api/errors/health", tags=["Health"])
    async def error_handling_health():
        return get_error_summary()

    app.include_router(build_router(), prefix="/api")
    return app


app = create_app()
