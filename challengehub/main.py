from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

import structlog

from challengehub.core.config import APP_NAME, APP_VERSION, DEBUG, FRONTEND_URL, STORAGE_BACKEND, SCHEDULER_ENABLED
from challengehub.core.logging import setup_logging
from challengehub.core.scheduler import setup_scheduler, start_scheduler, stop_scheduler
from challengehub.database import Database
from challengehub.routes.admin.admin_routes import router as admin_router
from challengehub.routes.auth.user_routes import router as user_router
from challengehub.routes.challenge.challenge_routes import router as challenge_router
from challengehub.routes.challenge.leaderboard_routes import router as leaderboard_router
from challengehub.routes.challenge.submission_routes import router as submission_router
from challengehub.services.store.factory import RecordStoreFactory
from challengehub.utils.response import validation_error_response

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for the application"""
    # Startup
    setup_logging()
    
    if STORAGE_BACKEND == "mongo":
        await Database.connect_db()
    
    if SCHEDULER_ENABLED:
        setup_scheduler()
        start_scheduler()
    
    logger.info("application_started", app=APP_NAME, version=APP_VERSION, storage=STORAGE_BACKEND)
    yield
    # Shutdown
    stop_scheduler()
    RecordStoreFactory.clear_cache()
    await Database.close_db()


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="ChallengeHub API: innovation challenges, submissions, reviews and points",
    lifespan=lifespan
)

# CORS middleware
# In development, allow all origins for easier testing
cors_origins = [
    FRONTEND_URL,
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if not DEBUG else ["*"],
    allow_credentials=not DEBUG,  # Can't use credentials with wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests in the standard error envelope"""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "header"))
        errors[field or "request"] = error["msg"]
    
    return validation_error_response(message="Invalid request", errors=errors)


# Include routers with /api prefix
app.include_router(challenge_router, prefix="/api")
app.include_router(submission_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(user_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def read_root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {APP_NAME} API",
        "version": APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
