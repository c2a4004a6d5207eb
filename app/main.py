from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.cors import CORSMiddleware

from app.core.config import settings, app_logger
from app.core.db import dispose_db, init_db
from app.core.dependencies import get_async_session
from app.core.exceptions.handlers import (
    authentication_exception_handler,
    bad_request_exception_handler,
    conflict_exception_handler,
    database_exception_handler,
    exception_schema,
    general_exception_handler,
    not_found_exception_handler,
    rate_limit_exception_handler,
    transaction_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions.types import (
    AppException,
    AuthenticationException,
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
    RateLimitExceededException,
    TransactionException,
)
from app.core.routers import auth_router, company_router
from app.core.services import BrevoService, Renderer
from app.core.utils import generate_openapi_json, write_to_file_async
from app.infrastructure.messaging.connection import close_connection


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting application...")

    if settings.DB_CREATE_TABLES_ON_STARTUP:
        app_logger.info("Creating database tables...")
        await init_db()

    # Initialize Brevo Service
    app_logger.info("Initializing Brevo service...")
    await BrevoService.init(
        api_key=settings.BREVO_API_KEY,
        sender_email=settings.BREVO_SENDER_EMAIL,
        sender_name=settings.BREVO_SENDER_NAME,
    )
    app_logger.info("Brevo service initialized successfully.")

    # Initialize template renderer
    app_logger.info("Initializing template renderer...")
    Renderer.initialize("app/templates")
    app_logger.info("Template renderer initialized successfully.")

    # Generate and write OpenAPI schema to file
    app_logger.info("Generating OpenAPI schema...")
    openapi_schema = generate_openapi_json(app)
    await write_to_file_async("openapi.json", openapi_schema)

    yield

    app_logger.info("Shutting down application...")

    app_logger.info("Closing Brevo service...")
    await BrevoService.aclose()

    app_logger.info("Closing RabbitMQ connection...")
    await close_connection()

    await dispose_db()
    app_logger.info("Application shut down.")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    debug=settings.DEBUG,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    responses=exception_schema,
    root_path_in_servers=False,
    servers=[
        {
            "url": f"{settings.API_DOMAIN}",
        },
    ],
)

# Register exception handlers (order matters - more specific first)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RateLimitExceededException, rate_limit_exception_handler)
app.add_exception_handler(AuthenticationException, authentication_exception_handler)
app.add_exception_handler(NotFoundException, not_found_exception_handler)
app.add_exception_handler(ConflictException, conflict_exception_handler)
app.add_exception_handler(TransactionException, transaction_exception_handler)
app.add_exception_handler(BadRequestException, bad_request_exception_handler)
app.add_exception_handler(DatabaseException, database_exception_handler)
# Generic fallback
app.add_exception_handler(AppException, general_exception_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(company_router)


@app.get("/", include_in_schema=False)
async def root(request: Request):
    base_url = request.base_url._url.rstrip("/")
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "documentations": {
            "swagger": f"{base_url}/docs",
            "redoc": f"{base_url}/redoc",
        },
        "version": settings.APP_VERSION,
    }


@app.head("/health", include_in_schema=False)
@app.get("/health")
async def health_check(session: Annotated[AsyncSession, Depends(get_async_session)]):
    """
    Health check endpoint to verify if the API is running.

    Checks:
        - Database connectivity
    """
    health_status = {
        "status": "ok",
        "message": f"{settings.APP_NAME} is running.",
        "checks": {
            "database": "ok",
        },
    }

    try:
        async with session.begin():
            result = await session.execute(text("SELECT 1"))
            if result.scalar() != 1:
                health_status["checks"]["database"] = "unhealthy"
                health_status["status"] = "degraded"
    except SQLAlchemyError as e:
        app_logger.error(f"Database health check failed: {e}")
        health_status["checks"]["database"] = "unhealthy"
        health_status["status"] = "degraded"

    if health_status["status"] != "ok":
        raise AppException(
            "One or more health checks failed.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=health_status,
        )

    return health_status
